from dotenv import load_dotenv
load_dotenv()
import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """
    Service configuration.

    Values can be overridden via environment variables (or a local `.env`).
    """

    # School directory source (JSON array of school objects)
    SCHOOLS_DATA_PATH: Path = Path(os.getenv("SCHOOLS_DATA_PATH", "data/schools.json"))

    # Calendar anchors for founding-decade facets
    CURRENT_YEAR: int = int(os.getenv("CURRENT_YEAR", "2026"))
    MIN_FOUNDING_YEAR: int = int(os.getenv("MIN_FOUNDING_YEAR", "1800"))

    # Pricing (USD is the base currency)
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")
    FALLBACK_NGN_RATE: float = float(os.getenv("FALLBACK_NGN_RATE", "1650"))
    EXCHANGE_RATE_URL: str = os.getenv(
        "EXCHANGE_RATE_URL", "https://open.er-api.com/v6/latest/USD"
    )
    EXCHANGE_RATE_TTL_SECONDS: float = float(os.getenv("EXCHANGE_RATE_TTL_SECONDS", "3600"))

    # Feature flags for the email subsystems
    EMAIL_ENABLED: bool = _env_flag("EMAIL_ENABLED")
    EMAIL_VERIFICATION_ENABLED: bool = _env_flag("EMAIL_VERIFICATION_ENABLED")
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    RESEND_FROM_EMAIL: str = os.getenv("RESEND_FROM_EMAIL", "")
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://localhost:5000")
    VERIFICATION_TTL_HOURS: int = int(os.getenv("VERIFICATION_TTL_HOURS", "72"))

    # HTTP surface
    CORS_ORIGINS: list[str] = field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
            if o.strip()
        ]
    )
    LOG_LINE_LIMIT: int = int(os.getenv("LOG_LINE_LIMIT", "80"))


settings = Settings()
