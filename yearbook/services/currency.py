"""
Currency-aware price display.

Prices are stored in USD. Callers build a CurrencyConfig once (selected
currency plus the USD->NGN rate) and pass it to whatever needs to render
prices, instead of reading an ambient preference.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional

from yearbook.core.config import settings

Currency = Literal["USD", "NGN"]
SUPPORTED_CURRENCIES: tuple[str, ...] = ("USD", "NGN")

SCHOOL_YEAR_PRICE = 16.99
VIEWER_YEAR_PRICE = 6.99
BADGE_SLOT_PRICE = 0.99

PRODUCT_PRICES: Dict[str, float] = {
    "school_year": SCHOOL_YEAR_PRICE,
    "viewer_year": VIEWER_YEAR_PRICE,
    "badge_slot": BADGE_SLOT_PRICE,
}


@dataclass(frozen=True)
class CurrencyConfig:
    currency: Currency = "USD"
    exchange_rate: float = settings.FALLBACK_NGN_RATE

    def __post_init__(self) -> None:
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")
        if self.exchange_rate <= 0:
            raise ValueError("exchange_rate must be positive")


def convert_price(usd_amount: float, config: CurrencyConfig) -> float:
    if config.currency == "NGN":
        return usd_amount * config.exchange_rate
    return usd_amount


def format_price(amount: float, currency: Currency) -> str:
    if currency == "NGN":
        return f"₦{amount:,.2f}"
    return f"${amount:.2f}"


def build_price_list(
    config: CurrencyConfig, prices: Optional[Dict[str, float]] = None
) -> List[dict]:
    rows = []
    for product, usd_amount in (prices or PRODUCT_PRICES).items():
        amount = round(convert_price(usd_amount, config), 2)
        rows.append(
            {
                "product": product,
                "usd_amount": usd_amount,
                "amount": amount,
                "formatted": format_price(amount, config.currency),
            }
        )
    return rows
