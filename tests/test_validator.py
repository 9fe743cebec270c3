"""
Tests for request validation against the catalog.
"""

import logging

import numpy as np
import pytest

from crimedata.data.models import ALL_CITIES, Catalog, DataType, OutputFormat
from crimedata.exceptions import (
    CatalogUnavailableError,
    CitiesUnavailableError,
    InvalidArgumentError,
    NoMatchingDataError,
    YearsUnavailableError,
)
from crimedata.pipeline.validator import check_arguments, find_advisories, validate


class TestCheckArguments:
    """Argument shape checks that need no catalog."""

    def test_defaults(self):
        args = check_arguments()
        assert args.years is None
        assert args.cities is None
        assert args.data_type is DataType.SAMPLE
        assert args.output_format is OutputFormat.TABLE

    @pytest.mark.parametrize("years, expected", [
        (2019, {2019}),
        ([2019, 2018, 2019], {2018, 2019}),
        ((2018.0,), {2018}),
        (np.array([2017, 2018]), {2017, 2018}),
        (range(2016, 2018), {2016, 2017}),
    ])
    def test_year_shapes(self, years, expected):
        assert check_arguments(years=years).years == frozenset(expected)

    @pytest.mark.parametrize("years", ["2019", [2019.5], [True], [], [None], [float("nan")]])
    def test_bad_years(self, years):
        with pytest.raises(InvalidArgumentError) as exc_info:
            check_arguments(years=years)
        assert exc_info.value.details["argument"] == "years"

    @pytest.mark.parametrize("cities, expected", [
        ("Chicago", {"chicago"}),
        (["Chicago", " DETROIT", "chicago"], {"chicago", "detroit"}),
        (("New York",), {"new york"}),
    ])
    def test_city_shapes(self, cities, expected):
        assert check_arguments(cities=cities).cities == frozenset(expected)

    @pytest.mark.parametrize("cities", [123, [1, 2], ["chicago", None], [], [" "], b"chicago"])
    def test_bad_cities(self, cities):
        with pytest.raises(InvalidArgumentError) as exc_info:
            check_arguments(cities=cities)
        assert exc_info.value.details["argument"] == "cities"

    @pytest.mark.parametrize("data_type", ["full", "CORE", None, 1])
    def test_bad_type(self, data_type):
        with pytest.raises(InvalidArgumentError) as exc_info:
            check_arguments(data_type=data_type)
        assert exc_info.value.details["argument"] == "type"

    @pytest.mark.parametrize("output, expected", [
        ("table", OutputFormat.TABLE),
        ("tbl", OutputFormat.TABLE),
        ("geo", OutputFormat.GEO),
        ("sf", OutputFormat.GEO),
    ])
    def test_output_aliases(self, output, expected):
        assert check_arguments(output_format=output).output_format is expected

    def test_bad_output(self):
        with pytest.raises(InvalidArgumentError):
            check_arguments(output_format="csv")

    @pytest.mark.parametrize("name", ["quiet", "use_cache"])
    def test_flags_must_be_bool(self, name):
        with pytest.raises(InvalidArgumentError):
            check_arguments(**{name: "yes"})


class TestValidateDefaults:
    """Defaulting policy."""

    def test_default_year_is_latest(self, catalog):
        request, _ = validate(None, None, "sample", catalog)
        assert request.years == frozenset({2019})

    def test_default_cities_is_all(self, catalog):
        request, _ = validate(None, None, "sample", catalog)
        assert request.cities == frozenset({ALL_CITIES})

    def test_empty_catalog(self):
        with pytest.raises(CatalogUnavailableError):
            validate(None, None, "sample", Catalog())

    def test_flags_carried(self, catalog):
        request, _ = validate(2019, "chicago", "core", catalog, use_cache=False, quiet=True, output_format="geo")
        assert request.use_cache is False
        assert request.quiet is True
        assert request.output_format is OutputFormat.GEO


class TestValidateAvailability:
    """Availability checks and their order."""

    def test_missing_year(self, catalog):
        with pytest.raises(YearsUnavailableError) as exc_info:
            validate([2099], None, "sample", catalog)
        assert exc_info.value.details["years"] == [2099]
        assert "osf.io" in str(exc_info.value)

    def test_year_checked_independently_of_city(self, catalog):
        """2018 exists (New York sample), so a 2018 Chicago sample request is not a year error."""
        with pytest.raises(NoMatchingDataError):
            validate([2018], ["chicago"], "sample", catalog)

    def test_missing_city(self, catalog):
        with pytest.raises(CitiesUnavailableError) as exc_info:
            validate([2019], ["Chicago", "Gotham"], "core", catalog)
        assert exc_info.value.details["cities"] == ["gotham"]
        assert "spelled" in str(exc_info.value)

    def test_years_checked_before_cities(self, catalog):
        with pytest.raises(YearsUnavailableError):
            validate([2099], ["Gotham"], "core", catalog)

    def test_no_matching_combination(self, catalog):
        with pytest.raises(NoMatchingDataError):
            validate([2018], ["chicago"], "extended", catalog)

    def test_case_insensitive_cities(self, catalog):
        request, _ = validate([2019], ["CHICAGO"], "core", catalog)
        assert request.cities == frozenset({"chicago"})


class TestAdvisories:
    """Partial-coverage advisories."""

    def test_missing_combination_reported(self, catalog, caplog):
        with caplog.at_level(logging.WARNING, logger="crimedata"):
            request, advisories = validate([2019], ["Chicago", "Detroit"], "core", catalog)
        assert [(a.city, a.year) for a in advisories] == [("detroit", 2019)]
        assert "Data are not available for crimes in Detroit in 2019" in caplog.text

    def test_quiet_still_returns_advisories(self, catalog, caplog):
        with caplog.at_level(logging.WARNING, logger="crimedata"):
            _, advisories = validate([2019], ["Chicago", "Detroit"], "core", catalog, quiet=True)
        assert len(advisories) == 1
        assert "not available" not in caplog.text

    def test_full_coverage_has_no_advisories(self, catalog):
        _, advisories = validate([2018, 2019], ["chicago"], "core", catalog)
        assert advisories == []

    def test_all_cities_uses_cities_with_data(self, catalog):
        """Detroit has core data for 2018 only, so 2019 is reported for it."""
        advisories = find_advisories(catalog, DataType.CORE, frozenset({2018, 2019}), frozenset({ALL_CITIES}))
        assert [(a.city, a.year) for a in advisories] == [("detroit", 2019)]

    def test_advisory_message_title_cases_city(self):
        from crimedata.data.models import Advisory
        assert Advisory(city="new york", year=2018).message.endswith("New York in 2018")
