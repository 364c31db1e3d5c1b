from __future__ import annotations

import polars as pl
import pytest

from yearbook.core.errors import UnknownPresetError
from yearbook.schemas.schools import FilterCriteria, SchoolRecord
from yearbook.services.filtering_engine import (
    ADVANCED_SEARCH,
    SCHOOL_SELECT,
    DecadeBucket,
    DisplayLimits,
    apply_display_limits,
    decade_of,
    derive_country_facet,
    derive_decade_facet,
    filter_schools,
    get_preset,
    parse_decade_label,
    search_schools,
)


SCENARIO_RECORDS = [
    {"id": "1", "name": "Lagos Grammar School", "country": "Nigeria", "yearFounded": 1945},
    {"id": "2", "name": "Kings College", "country": "Nigeria", "yearFounded": 1909},
    {"id": "3", "name": "American International", "country": "USA", "yearFounded": 1995},
]


@pytest.fixture
def schools() -> list[dict]:
    return [
        {"id": "a", "name": "Kings College", "city": "Lagos", "state": "Lagos",
         "country": "Nigeria", "yearFounded": 1909},
        {"id": "b", "name": "Achimota School", "city": "Accra", "state": "Greater Accra",
         "country": "Ghana", "yearFounded": 1927},
        {"id": "c", "name": "Riverside Academy", "city": "Port Harcourt", "state": "Rivers",
         "country": None, "yearFounded": None},
        {"id": "d", "name": "Lincoln High School", "city": "Portland", "state": "Oregon",
         "country": "USA", "yearFounded": 1869},
        {"id": "e", "name": "Queen's College", "city": "Yaba", "state": "Lagos",
         "country": "Nigeria", "yearFounded": 1927},
    ]


def names(df: pl.DataFrame) -> list[str]:
    return df.get_column("name").to_list()


def test_country_filter_keeps_input_order():
    result = filter_schools(SCENARIO_RECORDS, FilterCriteria(country="Nigeria"))
    assert names(result) == ["Lagos Grammar School", "Kings College"]


def test_name_query_is_case_insensitive():
    result = filter_schools(SCENARIO_RECORDS, FilterCriteria(query="king"))
    assert names(result) == ["Kings College"]


def test_decade_filter_uses_inclusive_bucket():
    result = filter_schools(SCENARIO_RECORDS, FilterCriteria(foundingDecade="1990s"))
    assert names(result) == ["American International"]


def test_accepts_school_records_and_frames():
    models = [SchoolRecord.model_validate(r) for r in SCENARIO_RECORDS]
    from_models = filter_schools(models, FilterCriteria(query="COLLEGE"))
    frame = filter_schools(SCENARIO_RECORDS, FilterCriteria())
    assert isinstance(frame, pl.DataFrame)
    from_frame = filter_schools(frame, FilterCriteria(query="college"))
    assert names(from_models) == names(from_frame) == ["Kings College"]


def test_repeated_calls_are_identical(schools):
    criteria = FilterCriteria(query="o", country="Nigeria")
    first = filter_schools(schools, criteria)
    second = filter_schools(schools, criteria)
    assert first.to_dicts() == second.to_dicts()


def test_filter_does_not_mutate_input_frame(schools):
    df = filter_schools(schools, FilterCriteria())
    before = df.to_dicts()
    filter_schools(df, FilterCriteria(country="Ghana", foundingDecade="1920s"))
    assert df.to_dicts() == before


def test_refining_criteria_only_narrows(schools):
    base = FilterCriteria(query="o")
    base_ids = set(filter_schools(schools, base).get_column("id").to_list())
    for country in ["Nigeria", "Ghana", "USA", "Atlantis"]:
        refined = FilterCriteria(query="o", country=country)
        assert set(filter_schools(schools, refined).get_column("id").to_list()) <= base_ids
    for decade in ["1900s", "1920s", "1860s", "2000s"]:
        refined = FilterCriteria(query="o", foundingDecade=decade)
        assert set(filter_schools(schools, refined).get_column("id").to_list()) <= base_ids


def test_relative_order_is_preserved(schools):
    result = filter_schools(schools, FilterCriteria(foundingDecade="1920s"))
    assert result.get_column("id").to_list() == ["b", "e"]


def test_missing_country_never_matches_concrete_country(schools):
    for country in ["Nigeria", "Ghana", "USA"]:
        ids = filter_schools(schools, FilterCriteria(country=country)).get_column("id").to_list()
        assert "c" not in ids


def test_missing_year_never_matches_concrete_decade(schools):
    for bucket in derive_decade_facet(schools):
        ids = filter_schools(schools, FilterCriteria(foundingDecade=bucket.label)).get_column("id").to_list()
        assert "c" not in ids


@pytest.mark.parametrize("label", ["1995s", "nineties", "1990", "1700s"])
def test_unknown_decade_label_matches_nothing(schools, label):
    assert filter_schools(schools, FilterCriteria(foundingDecade=label)).is_empty()


def test_empty_inputs_do_not_fail():
    assert filter_schools([], FilterCriteria()).is_empty()
    assert filter_schools([], FilterCriteria(query="x", country="USA", foundingDecade="1990s")).is_empty()
    assert derive_country_facet([]) == []


def test_whitespace_query_is_trimmed_only_by_advanced_search(schools):
    criteria = FilterCriteria(query="   ")
    assert filter_schools(schools, criteria, ADVANCED_SEARCH).height == len(schools)
    # No school name holds three spaces in a row.
    assert filter_schools(schools, criteria, SCHOOL_SELECT).is_empty()


@pytest.mark.parametrize(
    "year, decade",
    [(1909, 1900), (1990, 1990), (1999, 1990), (2000, 2000), (1869, 1860)],
)
def test_decade_of_rounds_down(year, decade):
    assert decade_of(year) == decade


def test_query_is_not_treated_as_regex():
    records = [{"id": "1", "name": "St. Mary's (Girls)"}, {"id": "2", "name": "Stanford Prep"}]
    assert names(filter_schools(records, FilterCriteria(query="(girls)"))) == ["St. Mary's (Girls)"]
    assert filter_schools(records, FilterCriteria(query=".*")).is_empty()


def test_country_facet_is_sorted_and_distinct(schools):
    extra = schools + [{"id": "z", "name": "Blank", "country": "  "}]
    assert derive_country_facet(extra) == ["Ghana", "Nigeria", "USA"]


def test_decade_facet_is_contiguous_and_descending():
    records = [
        {"id": str(i), "name": f"School {i}", "yearFounded": y}
        for i, y in enumerate([1923, 1987, 1990])
    ]
    buckets = derive_decade_facet(records)
    labels = [b.label for b in buckets]

    assert labels[0] == "1990s"
    assert labels[1] == "1980s"
    assert labels[-1] == "1920s"
    assert labels == [f"{d}s" for d in range(1990, 1919, -10)]
    assert all(b.end == b.start + 9 for b in buckets)


def test_decade_facet_single_decade():
    records = [{"id": "1", "name": "A", "yearFounded": 1991}, {"id": "2", "name": "B", "yearFounded": 1998}]
    assert derive_decade_facet(records) == [DecadeBucket("1990s", 1990, 1999)]


def test_decade_facet_defaults_without_years():
    buckets = derive_decade_facet([{"id": "1", "name": "A"}], current_year=2026)
    assert buckets[0] == DecadeBucket("2020s", 2020, 2029)
    assert buckets[-1] == DecadeBucket("1800s", 1800, 1809)
    assert len(buckets) == 23


def test_parse_decade_label():
    assert parse_decade_label("1990s") == DecadeBucket("1990s", 1990, 1999)
    assert parse_decade_label("1995s") is None
    assert parse_decade_label("all") is None


def test_school_select_ignores_city_and_state(schools):
    assert filter_schools(schools, FilterCriteria(query="lagos"), SCHOOL_SELECT).is_empty()


def test_advanced_search_matches_city_and_state(schools):
    result = filter_schools(schools, FilterCriteria(query="lagos"), ADVANCED_SEARCH)
    assert result.get_column("id").to_list() == ["a", "e"]
    result = filter_schools(schools, FilterCriteria(query="oregon"), ADVANCED_SEARCH)
    assert result.get_column("id").to_list() == ["d"]


def test_advanced_search_ignores_facet_criteria(schools):
    criteria = FilterCriteria(country="Ghana", foundingDecade="1920s")
    assert filter_schools(schools, criteria, ADVANCED_SEARCH).height == len(schools)


def test_advanced_search_caps_results():
    records = [{"id": str(i), "name": f"Academy {i}"} for i in range(12)]

    shown, total = search_schools(records, FilterCriteria(), ADVANCED_SEARCH)
    assert (shown.height, total) == (5, 12)

    shown, total = search_schools(records, FilterCriteria(query="academy"), ADVANCED_SEARCH)
    assert (shown.height, total) == (8, 12)
    assert shown.get_column("id").to_list() == [str(i) for i in range(8)]


def test_display_limits_are_configurable():
    df = filter_schools([{"id": str(i), "name": f"S{i}"} for i in range(4)], FilterCriteria())
    assert apply_display_limits(df, FilterCriteria(), DisplayLimits(no_query_limit=2)).height == 2
    assert apply_display_limits(df, FilterCriteria(query="s"), DisplayLimits(no_query_limit=2)).height == 4


def test_get_preset():
    assert get_preset("advanced_search") is ADVANCED_SEARCH
    with pytest.raises(UnknownPresetError):
        get_preset("fancy")
