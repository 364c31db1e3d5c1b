from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

import polars as pl

from yearbook.core.config import settings
from yearbook.core.errors import UnknownPresetError
from yearbook.schemas.schools import ALL, FilterCriteria, SchoolRecord
from yearbook.services.school_loader import build_schools_index

SchoolsInput = Union[pl.DataFrame, Iterable[Union[SchoolRecord, dict]]]

_DECADE_LABEL = re.compile(r"^(-?\d+)s$")


@dataclass(frozen=True)
class DecadeBucket:
    label: str
    start: int
    end: int

    @classmethod
    def for_decade(cls, decade: int) -> "DecadeBucket":
        return cls(label=f"{decade}s", start=decade, end=decade + 9)


@dataclass(frozen=True)
class DisplayLimits:
    """Presentation caps layered on top of the filter. `None` means uncapped."""

    no_query_limit: Optional[int] = None
    query_limit: Optional[int] = None


@dataclass(frozen=True)
class SearchPreset:
    name: str
    text_fields: tuple[str, ...] = ("name",)
    facets_enabled: bool = True
    # Whitespace-only queries count as empty when set.
    trim_query: bool = False
    limits: DisplayLimits = field(default_factory=DisplayLimits)


# Dropdown selector: name-only text match, country/decade filters available.
SCHOOL_SELECT = SearchPreset(name="school_select")

# Landing-page search: name/city/state text match, short capped result lists.
ADVANCED_SEARCH = SearchPreset(
    name="advanced_search",
    text_fields=("name", "city", "state"),
    facets_enabled=False,
    trim_query=True,
    limits=DisplayLimits(no_query_limit=5, query_limit=8),
)

PRESETS: dict[str, SearchPreset] = {p.name: p for p in (SCHOOL_SELECT, ADVANCED_SEARCH)}


def get_preset(name: str) -> SearchPreset:
    try:
        return PRESETS[name]
    except KeyError:
        raise UnknownPresetError(
            f"Unknown search preset '{name}'. Expected one of: {', '.join(sorted(PRESETS))}"
        ) from None


def as_school_frame(records: SchoolsInput) -> pl.DataFrame:
    if isinstance(records, pl.DataFrame):
        return records
    return build_schools_index(records)


def decade_of(year: int) -> int:
    return year // 10 * 10


def parse_decade_label(label: str) -> Optional[DecadeBucket]:
    """Return the bucket for a label like '1990s', or None if it is not one."""
    match = _DECADE_LABEL.match(label.strip())
    if not match:
        return None
    decade = int(match.group(1))
    if decade % 10 != 0:
        return None
    return DecadeBucket.for_decade(decade)


def derive_country_facet(records: SchoolsInput) -> list[str]:
    """Distinct, non-empty countries in ascending order."""
    df = as_school_frame(records)
    if df.is_empty():
        return []
    return (
        df.select(pl.col("country"))
        .drop_nulls()
        .filter(pl.col("country").str.strip_chars() != "")
        .unique()
        .sort("country")
        .to_series()
        .to_list()
    )


def derive_decade_facet(
    records: SchoolsInput, current_year: Optional[int] = None
) -> list[DecadeBucket]:
    """
    Contiguous founding-decade buckets, most recent first.

    The range spans the observed founding years. When no record carries a
    founding year, it falls back to MIN_FOUNDING_YEAR through `current_year`.
    Decades with no schools in them are still emitted.
    """
    df = as_school_frame(records)
    years = df.get_column("year_founded").drop_nulls() if not df.is_empty() else None

    if years is None or years.len() == 0:
        min_year = settings.MIN_FOUNDING_YEAR
        max_year = current_year if current_year is not None else settings.CURRENT_YEAR
    else:
        min_year = int(years.min())
        max_year = int(years.max())

    first = decade_of(min_year)
    last = decade_of(max_year)
    return [DecadeBucket.for_decade(d) for d in range(last, first - 1, -10)]


def _text_mask(query: str, fields: Iterable[str]) -> pl.Expr:
    term = query.lower()
    mask = pl.lit(False)
    for name in fields:
        mask = mask | (
            pl.col(name).str.to_lowercase().str.contains(term, literal=True).fill_null(False)
        )
    return mask


def filter_schools(
    records: SchoolsInput,
    criteria: FilterCriteria,
    preset: SearchPreset = SCHOOL_SELECT,
) -> pl.DataFrame:
    """
    Keep the schools matching every active criterion, in input order.

    Filters:
    - query (case-insensitive substring over the preset's text fields)
    - country (exact match, unless 'all')
    - founding decade (inclusive year range of the bucket, unless 'all')

    Facet criteria are ignored by presets with facets disabled. Missing
    country/founding year never match a concrete selection.
    """
    df = as_school_frame(records)
    mask = pl.lit(True)

    active_query = criteria.query.strip() if preset.trim_query else criteria.query
    if active_query:
        mask = mask & _text_mask(criteria.query, preset.text_fields)

    if preset.facets_enabled:
        if criteria.country != ALL:
            mask = mask & (pl.col("country") == criteria.country).fill_null(False)

        if criteria.founding_decade != ALL:
            bucket = parse_decade_label(criteria.founding_decade)
            if bucket is None:
                mask = mask & pl.lit(False)
            else:
                in_bucket = (
                    pl.col("year_founded")
                    .is_between(bucket.start, bucket.end, closed="both")
                    .fill_null(False)
                )
                mask = mask & in_bucket

    return df.filter(mask)


def apply_display_limits(
    df: pl.DataFrame, criteria: FilterCriteria, limits: DisplayLimits
) -> pl.DataFrame:
    limit = limits.query_limit if criteria.query.strip() else limits.no_query_limit
    if limit is None:
        return df
    return df.head(limit)


def search_schools(
    records: SchoolsInput,
    criteria: FilterCriteria,
    preset: SearchPreset = SCHOOL_SELECT,
    limits: Optional[DisplayLimits] = None,
) -> tuple[pl.DataFrame, int]:
    """Filter, then cap for display. Returns the capped frame and the match count."""
    matched = filter_schools(records, criteria, preset)
    capped = apply_display_limits(matched, criteria, limits or preset.limits)
    return capped, matched.height
