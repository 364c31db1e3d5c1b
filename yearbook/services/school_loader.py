"""
School directory ingestion and normalization.

Responsibilities:
- Read the school list (a JSON array exported by the yearbook database).
- Normalize key fields (ids, blank strings, founding year).
- Keep a normalized polars DataFrame in memory for the search endpoints.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import polars as pl

from yearbook.core.config import settings

logger = logging.getLogger(__name__)

STRING_COLUMNS = ("id", "name", "country", "city", "state", "logo")

SCHOOL_SCHEMA = {
    "id": pl.Utf8,
    "name": pl.Utf8,
    "country": pl.Utf8,
    "year_founded": pl.Int64,
    "city": pl.Utf8,
    "state": pl.Utf8,
    "logo": pl.Utf8,
}

# Upstream JSON uses camelCase.
_FIELD_ALIASES = {"yearFounded": "year_founded"}

_INDEX: Optional[pl.DataFrame] = None


def empty_schools_frame() -> pl.DataFrame:
    return pl.DataFrame(schema=SCHOOL_SCHEMA)


def _to_row(record: Any) -> dict[str, Optional[str]]:
    if hasattr(record, "model_dump"):
        record = record.model_dump()
    row: dict[str, Optional[str]] = {}
    for key, value in dict(record).items():
        key = _FIELD_ALIASES.get(key, key)
        if key in SCHOOL_SCHEMA:
            row[key] = None if value is None else str(value)
    return row


def _normalize_dataframe(df: pl.DataFrame) -> pl.DataFrame:
    """
    Apply normalization steps to the raw (all-string) schools dataframe.

    - trim strings and turn blanks into nulls
    - parse the founding year, leaving unparseable values null
    - drop rows without id or name, then keep the first row per id
    """
    df = df.with_columns(
        [
            pl.when(pl.col(c).str.strip_chars() == "")
            .then(None)
            .otherwise(pl.col(c).str.strip_chars())
            .alias(c)
            for c in STRING_COLUMNS
        ]
    )

    df = df.with_columns(
        pl.col("year_founded")
        .str.strip_chars()
        .str.extract(r"^(-?\d+)", 1)
        .cast(pl.Int64, strict=False)
        .alias("year_founded")
    )

    initial_count = df.height
    df = df.drop_nulls(["id", "name"])
    df = df.unique(subset=["id"], keep="first", maintain_order=True)
    dropped = initial_count - df.height
    if dropped:
        logger.warning("Dropped %d school rows (missing id/name or duplicate id)", dropped)

    return df.select(list(SCHOOL_SCHEMA))


def load_school_records(path: Union[str, Path]) -> list[dict]:
    with Path(path).open(encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        # Accept `{"schools": [...]}` exports as well as bare arrays.
        data = data.get("schools", [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of schools in {path}")
    return data


def build_schools_index(
    records: Optional[Iterable[Any]] = None,
    path: Optional[Union[str, Path]] = None,
) -> pl.DataFrame:
    """
    Build the normalized schools DataFrame.

    `records` (dicts or SchoolRecord models) takes precedence; otherwise the
    JSON file at `path` (default: settings.SCHOOLS_DATA_PATH) is read. A
    missing file yields an empty frame.
    """
    if records is None:
        source = Path(path) if path is not None else settings.SCHOOLS_DATA_PATH
        if not source.exists():
            logger.warning("School data file %s not found; starting with an empty index", source)
            return empty_schools_frame()
        records = load_school_records(source)

    rows = [_to_row(r) for r in records]
    if not rows:
        return empty_schools_frame()

    raw_schema = {name: pl.Utf8 for name in SCHOOL_SCHEMA}
    df = pl.from_dicts(rows, schema=raw_schema)
    return _normalize_dataframe(df)


def get_schools_index(force_reload: bool = False) -> pl.DataFrame:
    """
    Retrieve the in-memory schools index, loading it on first use.

    This is the canonical entrypoint other parts of the backend should use.
    """
    global _INDEX

    if _INDEX is None or force_reload:
        _INDEX = build_schools_index()
        logger.info("Loaded %d schools into the index", _INDEX.height)
    return _INDEX


def set_schools_index(records: Union[pl.DataFrame, Iterable[Any]]) -> pl.DataFrame:
    global _INDEX

    _INDEX = records if isinstance(records, pl.DataFrame) else build_schools_index(records)
    return _INDEX
