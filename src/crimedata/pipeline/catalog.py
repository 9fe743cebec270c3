"""
Catalog resolver - turns the OSF file listing into a Catalog.

Data files are named

    crime_open_database_<type>_<city>_<year>.Rds

with underscores standing in for spaces in the city name, e.g.
``crime_open_database_core_new_york_2019.Rds``. CSV exports (``.csv`` or
``.csv.gz``) with the same stem are accepted too. Anything else in the
project (documentation, other formats) is ignored.
"""

import re
from typing import Iterable, Optional

from crimedata.data.models import Catalog, CatalogEntry, DataType
from crimedata.exceptions import CatalogUnavailableError, RemoteRequestError
from crimedata.logging_config import get_logger
from crimedata.sources.osf import OSFClient, RemoteFile

logger = get_logger(__name__)

FILE_NAME_RE = re.compile(
    r"^crime_open_database_(?P<type>core|extended|sample)_(?P<city>.+)_(?P<year>\d{4})"
    r"\.(?P<ext>rds|csv|csv\.gz)$",
    re.IGNORECASE,
)


def parse_file_name(name: str) -> Optional[tuple[DataType, str, int]]:
    """
    Extract (data_type, city, year) from a data file name.

    Returns:
        The parsed tuple, or None if the name is not a data file.
    """
    match = FILE_NAME_RE.match(name.strip())
    if not match:
        return None
    city = match.group("city").replace("_", " ").strip().lower()
    return DataType(match.group("type").lower()), city, int(match.group("year"))


def build_catalog(files: Iterable[RemoteFile]) -> Catalog:
    """Build a Catalog from listed files, keeping the first file per (city, year, type)."""
    entries = []
    for f in files:
        parsed = parse_file_name(f.name)
        if parsed is None:
            logger.debug("Ignoring %s: not a data file", f.name)
            continue
        data_type, city, year = parsed
        entries.append(
            CatalogEntry(
                city=city,
                year=year,
                data_type=data_type,
                remote_reference=f.download_url,
                file_name=f.name,
                size=f.size,
            )
        )
    catalog = Catalog.from_entries(entries)
    if len(catalog) < len(entries):
        logger.debug("Dropped %d duplicate catalog entries", len(entries) - len(catalog))
    return catalog


def fetch_catalog(quiet: bool = False, client: OSFClient | None = None) -> Catalog:
    """
    Fetch the list of available data files.

    Args:
        quiet: Suppress the progress notice.
        client: OSF client to list files with; a default one is created if omitted.

    Returns:
        Catalog with lowercase city names.

    Raises:
        CatalogUnavailableError: If the listing cannot be retrieved or holds no data files.
    """
    if not quiet:
        logger.info("Getting URLs for data files")

    client = client or OSFClient()
    try:
        catalog = build_catalog(client.list_files())
    except RemoteRequestError as e:
        raise CatalogUnavailableError(
            message=f"Could not retrieve the list of available data files: {e.message}",
            details=e.details,
        ) from e

    if len(catalog) == 0:
        raise CatalogUnavailableError(
            message="The list of available data files is empty",
            details={"project_id": getattr(client, "project_id", None)},
        )

    logger.debug(
        "Catalog holds %d files covering %d cities and years %d-%d",
        len(catalog), len(catalog.cities()), min(catalog.years()), catalog.max_year(),
    )
    return catalog
