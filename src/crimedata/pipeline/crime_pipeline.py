import sys
from typing import Any, Optional

from crimedata.data.cache import CacheStore, get_default_store, make_key
from crimedata.data.models import CrimeDataResult, DataType, OutputFormat
from crimedata.logging_config import get_logger
from crimedata.pipeline.assemble import fetch
from crimedata.pipeline.catalog import fetch_catalog
from crimedata.pipeline.normalize import normalize
from crimedata.pipeline.validator import check_arguments, validate
from crimedata.sources.osf import OSFClient

logger = get_logger(__name__)


def is_interactive() -> bool:
    """True when running in an interactive interpreter or notebook."""
    return hasattr(sys, "ps1") or bool(sys.flags.interactive)


class CrimeDataPipeline:
    """Resolves, fetches, caches and normalizes one Crime Open Database request."""

    def __init__(self, client: OSFClient | None = None, cache: CacheStore | None = None):
        self.client = client or OSFClient()
        self.cache = cache if cache is not None else get_default_store()

    def run(
        self,
        years: Any = None,
        cities: Any = None,
        type: Any = DataType.SAMPLE,
        cache: Any = True,
        quiet: Optional[bool] = None,
        output: Any = OutputFormat.TABLE,
    ) -> CrimeDataResult:
        """
        Executes the pipeline and returns the table with its advisories.

        Argument errors are raised before the catalog is fetched; catalog
        errors before any data file is downloaded.
        """
        if quiet is None:
            quiet = not is_interactive()

        # Fail fast on malformed arguments, before any network activity
        check_arguments(years, cities, type, cache, quiet, output)

        catalog = fetch_catalog(quiet=quiet, client=self.client)
        request, advisories = validate(
            years, cities, type, catalog,
            use_cache=cache, quiet=quiet, output_format=output,
        )
        key = make_key(request.data_type, request.years, request.cities)
        logger.debug(
            "Request %s: type=%s years=%s cities=%s",
            key, request.data_type.value, sorted(request.years), sorted(request.cities),
        )

        from_cache = False
        with self.cache.lock(key):
            if not request.use_cache and self.cache.invalidate(key) and not quiet:
                logger.info("Deleting cached data and re-downloading from server.")

            # Re-checked under the lock: a concurrent identical request may have just stored it
            entry = self.cache.lookup(key) if request.use_cache else None
            if entry is not None:
                if not quiet:
                    logger.info(
                        "Loading cached data from previous request in this session. "
                        "The data is updated only once per year, so this is almost "
                        "certainly safe. To download data again, use `cache=False`."
                    )
                data = entry.data
                from_cache = True
            else:
                selected = catalog.select(request.data_type, request.years, request.cities)
                data = fetch(selected, quiet=quiet, client=self.client)
                self.cache.store(key, data)

        return CrimeDataResult(
            data=normalize(data, request.output_format),
            request=request,
            advisories=tuple(advisories),
            from_cache=from_cache,
        )


def get_crime_data(
    years: Any = None,
    cities: Any = None,
    type: Any = "sample",
    cache: bool = True,
    quiet: Optional[bool] = None,
    output: Any = "table",
    *,
    client: OSFClient | None = None,
    store: CacheStore | None = None,
):
    """
    Get data from the Crime Open Database.

    By default this returns a one-percent sample of the core data for the
    most recent year and every city, to avoid accidentally requesting
    large files. Latitude and longitude use WGS 84 (EPSG:4326).

    Args:
        years: A year or collection of years. Defaults to the most recent year available.
        cities: A city name or collection of names, case-insensitive. Defaults to all cities.
        type: "sample" (default), "core" (harmonized fields) or "extended"
            (every field published by each police department, not harmonized).
        cache: Reuse a cached result for the same type, years and cities.
            ``False`` deletes any cached copy and downloads again.
        quiet: Suppress progress and availability messages. Defaults to
            ``True`` unless running interactively.
        output: "table" (default) for a pandas DataFrame or "geo" for a
            geopandas GeoDataFrame with point geometry.
        client: OSF client override, mainly for testing.
        store: Cache store override, mainly for testing.

    Returns:
        pandas.DataFrame or geopandas.GeoDataFrame sorted by ``uid``.

    Raises:
        InvalidArgumentError, CatalogUnavailableError, YearsUnavailableError,
        CitiesUnavailableError, NoMatchingDataError, DownloadFailedError,
        AssemblyFailedError
    """
    pipeline = CrimeDataPipeline(client=client, cache=store)
    return pipeline.run(
        years=years, cities=cities, type=type,
        cache=cache, quiet=quiet, output=output,
    ).data
