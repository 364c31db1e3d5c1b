from __future__ import annotations
import polars as pl
from typing import Dict, Any, Optional
from yearbook.services.filtering_engine import (
    PRESETS,
    derive_country_facet,
    derive_decade_facet,
)
from yearbook.services.school_loader import get_schools_index


def get_filter_metadata(
    df: Optional[pl.DataFrame] = None, current_year: Optional[int] = None
) -> Dict[str, Any]:
    """
    Filter-control options derived from the current school list.
    Decades are listed most recent first.
    """

    if df is None:
        df = get_schools_index()

    decades = [
        {"label": b.label, "start": b.start, "end": b.end}
        for b in derive_decade_facet(df, current_year=current_year)
    ]

    return {
        "countries": derive_country_facet(df),
        "decades": decades,
        "presets": sorted(PRESETS),
    }
