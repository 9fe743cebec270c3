"""
Request validation - the single boundary between loose user input and
the immutable DataRequest every later stage consumes.

Two passes:
    check_arguments() - shapes and types only, no catalog needed
    validate()        - defaults and availability against a Catalog
"""

import math
import numbers
from collections.abc import Iterable
from typing import Any, NamedTuple, Optional

from crimedata.config import settings
from crimedata.data.models import (
    ALL_CITIES,
    Advisory,
    Catalog,
    DataRequest,
    DataType,
    OutputFormat,
)
from crimedata.exceptions import (
    CitiesUnavailableError,
    InvalidArgumentError,
    NoMatchingDataError,
    YearsUnavailableError,
)
from crimedata.logging_config import get_logger

logger = get_logger(__name__)


class Arguments(NamedTuple):
    """Arguments after type checks, before catalog defaults are applied."""

    years: Optional[frozenset[int]]
    cities: Optional[frozenset[str]]
    data_type: DataType
    use_cache: bool
    quiet: bool
    output_format: OutputFormat


# ─── Coercion ───────────────────────────────────────────


def _coerce_year(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError("years", "`years` must be `None` or integers.")
    if not math.isfinite(value) or value != int(value):
        raise InvalidArgumentError("years", f"`years` must be whole numbers, got {value!r}.")
    return int(value)


def coerce_years(raw: Any) -> Optional[frozenset[int]]:
    """Accept None, one integer, or a collection of integers."""
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        raise InvalidArgumentError("years", "`years` must be `None` or integers.")
    values = list(raw) if isinstance(raw, Iterable) else [raw]
    if not values:
        raise InvalidArgumentError("years", "`years` must not be empty.")
    return frozenset(_coerce_year(v) for v in values)


def coerce_cities(raw: Any) -> Optional[frozenset[str]]:
    """Accept None, one city name, or a collection of city names."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, Iterable) or isinstance(raw, bytes):
        raise InvalidArgumentError(
            "cities", "`cities` must be `None` or a list of city names."
        )
    values = list(raw)
    if not values or not all(isinstance(c, str) for c in values):
        raise InvalidArgumentError(
            "cities", "`cities` must be `None` or a list of city names."
        )
    cities = frozenset(c.strip().lower() for c in values)
    if "" in cities:
        raise InvalidArgumentError("cities", "City names must not be blank.")
    return cities


def check_arguments(
    years: Any = None,
    cities: Any = None,
    data_type: Any = DataType.SAMPLE,
    use_cache: Any = True,
    quiet: Any = False,
    output_format: Any = OutputFormat.TABLE,
) -> Arguments:
    """
    Check argument shapes and types without touching the catalog.

    Raises:
        InvalidArgumentError: On any malformed argument.
    """
    try:
        data_type = DataType(data_type)
    except ValueError:
        allowed = ", ".join(f'"{t.value}"' for t in DataType)
        raise InvalidArgumentError("type", f"`type` must be one of {allowed}, not {data_type!r}.") from None

    try:
        output_format = OutputFormat(output_format)
    except ValueError:
        allowed = ", ".join(f'"{f.value}"' for f in OutputFormat)
        raise InvalidArgumentError("output", f"`output` must be one of {allowed}, not {output_format!r}.") from None

    if not isinstance(quiet, bool):
        raise InvalidArgumentError("quiet", "`quiet` must be `True` or `False`.")
    if not isinstance(use_cache, bool):
        raise InvalidArgumentError("cache", "`cache` must be `True` or `False`.")

    return Arguments(
        years=coerce_years(years),
        cities=coerce_cities(cities),
        data_type=data_type,
        use_cache=use_cache,
        quiet=quiet,
        output_format=output_format,
    )


# ─── Availability ───────────────────────────────────────


def find_advisories(
    catalog: Catalog,
    data_type: DataType,
    years: frozenset[int],
    cities: frozenset[str],
) -> list[Advisory]:
    """
    List (city, year) pairs in the request that have no file.

    For the all-cities sentinel the cities are those with data of this
    type in at least one requested year.
    """
    selected = catalog.select(data_type, years, cities)
    available = {(e.city, e.year) for e in selected}
    if ALL_CITIES in cities:
        cities = frozenset(e.city for e in selected)
    return [
        Advisory(city=city, year=year)
        for year in sorted(years)
        for city in sorted(cities)
        if (city, year) not in available
    ]


def validate(
    raw_years: Any,
    raw_cities: Any,
    data_type: Any,
    catalog: Catalog,
    use_cache: Any = True,
    quiet: Any = False,
    output_format: Any = OutputFormat.TABLE,
) -> tuple[DataRequest, list[Advisory]]:
    """
    Resolve user input against the catalog.

    Args:
        raw_years: None, an integer, or a collection of integers.
        raw_cities: None, a city name, or a collection of city names.
        data_type: "sample", "core" or "extended".
        catalog: Available files, as returned by fetch_catalog().
        use_cache: Whether cached results may be reused.
        quiet: Suppress advisory log records.
        output_format: "table" or "geo".

    Returns:
        The validated request and the advisories for missing (city, year) pairs.

    Raises:
        InvalidArgumentError: On malformed arguments.
        YearsUnavailableError: If any year is absent from the catalog.
        CitiesUnavailableError: If any named city is absent from the catalog.
        NoMatchingDataError: If no file matches type, years and cities together.
    """
    args = check_arguments(raw_years, raw_cities, data_type, use_cache, quiet, output_format)
    docs_url = settings.osf.docs_url

    # If years are not specified, use the most recent available year
    years = args.years if args.years is not None else frozenset({catalog.max_year()})
    cities = args.cities if args.cities is not None else frozenset({ALL_CITIES})

    missing_years = sorted(years - catalog.years())
    if missing_years:
        raise YearsUnavailableError(missing_years, docs_url)

    if ALL_CITIES not in cities:
        missing_cities = sorted(cities - catalog.cities())
        if missing_cities:
            raise CitiesUnavailableError(missing_cities, docs_url)

    if not catalog.select(args.data_type, years, cities):
        raise NoMatchingDataError(
            message=(
                "The Crime Open Database does not contain data for any of the "
                "specified cities for the specified years."
            ),
            details={
                "data_type": args.data_type.value,
                "years": sorted(years),
                "cities": sorted(cities),
            },
        )

    advisories = find_advisories(catalog, args.data_type, years, cities)
    if not args.quiet:
        for advisory in advisories:
            logger.warning(advisory.message)

    request = DataRequest(
        years=years,
        cities=cities,
        data_type=args.data_type,
        use_cache=args.use_cache,
        quiet=args.quiet,
        output_format=args.output_format,
    )
    return request, advisories
