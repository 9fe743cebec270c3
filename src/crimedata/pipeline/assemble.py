"""
Fetch & assemble - download the selected files and stack them into one table.

Files are staged in a temporary directory that is removed whether the
call succeeds or fails, so nothing half-downloaded can reach the cache.
"""

import tempfile
from pathlib import Path
from typing import Sequence

import pandas as pd
import pyreadr
from pyreadr.custom_errors import LibrdataError, PyreadrError

from crimedata.data.models import CatalogEntry
from crimedata.exceptions import AssemblyFailedError, DownloadFailedError, RemoteRequestError
from crimedata.logging_config import get_logger
from crimedata.sources.osf import OSFClient

logger = get_logger(__name__)

SORT_COLUMN = "uid"
RDS_SUFFIX = ".rds"


def _progress_logger(file_name: str, quiet: bool):
    """Progress callback logging every 10% of a file."""
    if quiet:
        return None
    last = {"step": -1}

    def report(written: int, total: int | None) -> None:
        if not total:
            return
        step = min(10, written * 10 // total)
        if step > last["step"]:
            last["step"] = step
            logger.info("Downloading %s: %d%%", file_name, step * 10)

    return report


def download_entries(
    entries: Sequence[CatalogEntry],
    staging_dir: Path,
    client: OSFClient,
    quiet: bool = False,
) -> list[Path]:
    """
    Download every entry into ``staging_dir``, overwriting existing files.

    Raises:
        DownloadFailedError: On the first file that cannot be downloaded.
    """
    paths = []
    for i, entry in enumerate(entries, start=1):
        file_name = entry.file_name or f"{entry.data_type.value}_{entry.city}_{entry.year}.Rds"
        destination = staging_dir / file_name
        if not quiet:
            logger.info("Downloading file %d of %d: %s", i, len(entries), file_name)
        try:
            client.download(
                entry.remote_reference,
                destination,
                progress=_progress_logger(file_name, quiet),
            )
        except RemoteRequestError as e:
            raise DownloadFailedError(
                message=f"Could not download {file_name}: {e.message}",
                details={
                    "file": file_name,
                    "downloaded": i - 1,
                    "requested": len(entries),
                    **e.details,
                },
            ) from e
        paths.append(destination)
    return paths


def read_file(path: Path) -> pd.DataFrame:
    """
    Parse one staged file, choosing the reader by extension.

    ``.Rds`` files hold a single R data frame; anything else is read as
    CSV (gzip inferred from the extension).

    Raises:
        AssemblyFailedError: If the file is unreadable or has no ``uid`` column.
    """
    try:
        if path.suffix.lower() == RDS_SUFFIX:
            table = pyreadr.read_r(str(path))[None]
        else:
            table = pd.read_csv(path, low_memory=False)
    except (
        OSError, ValueError, EOFError, KeyError,
        pd.errors.ParserError, PyreadrError, LibrdataError,
    ) as e:
        raise AssemblyFailedError(
            message=f"Could not parse {path.name}: {e}",
            details={"file": path.name},
        ) from e
    if SORT_COLUMN not in table.columns:
        raise AssemblyFailedError(
            message=f"{path.name} has no `{SORT_COLUMN}` column",
            details={"file": path.name, "columns": list(table.columns)},
        )
    return table


def assemble(tables: Sequence[pd.DataFrame]) -> pd.DataFrame:
    """Row-union of same-schema tables, sorted by ``uid``."""
    if not tables:
        raise AssemblyFailedError(message="No data files to assemble")
    combined = pd.concat(tables, ignore_index=True)
    return combined.sort_values(SORT_COLUMN, kind="mergesort").reset_index(drop=True)


def fetch(
    selected_entries: Sequence[CatalogEntry],
    quiet: bool = False,
    client: OSFClient | None = None,
) -> pd.DataFrame:
    """
    Download, parse and concatenate the selected files.

    Args:
        selected_entries: Catalog entries sharing one data type.
        quiet: Suppress progress log records.
        client: Download client; a default OSFClient is created if omitted.

    Returns:
        One DataFrame sorted by ``uid`` ascending.

    Raises:
        DownloadFailedError: If any file fails to download.
        AssemblyFailedError: If any file fails to parse, or nothing was selected.
    """
    if not selected_entries:
        raise AssemblyFailedError(message="No data files were selected for download")

    client = client or OSFClient()
    with tempfile.TemporaryDirectory(prefix="crimedata_staging_") as staging:
        paths = download_entries(selected_entries, Path(staging), client, quiet=quiet)
        tables = [read_file(path) for path in paths]
        result = assemble(tables)

    if not quiet:
        logger.info("Assembled %d rows from %d files", len(result), len(paths))
    return result
