"""
Shared fixtures: an in-memory stand-in for the OSF project and a small
catalog of crime data files.
"""

import gzip
import tempfile
from pathlib import Path

import pandas as pd
import pyreadr
import pytest

from crimedata.data.cache import MemoryCacheStore
from crimedata.exceptions import RemoteRequestError
from crimedata.sources.osf import RemoteFile


def make_rows(city: str, year: int, uids: list[int]) -> pd.DataFrame:
    """Core-schema rows for one city and year."""
    rows = []
    for i, uid in enumerate(uids):
        rows.append({
            "uid": uid,
            "city_name": city,
            "offense_code": "13A" if i % 2 == 0 else "23H",
            "offense_type": "aggravated assault" if i % 2 == 0 else "all other larceny",
            "offense_group": "assault offenses" if i % 2 == 0 else "larceny/theft offenses",
            "offense_against": "persons" if i % 2 == 0 else "property",
            "date_single": f"{year}-0{1 + i % 9}-15 1{i % 10}:30",
            "longitude": round(-87.6 - i / 100, 6),
            "latitude": round(41.8 + i / 100, 6),
            "location_type": "residence/home",
            "location_category": "residence",
        })
    return pd.DataFrame(rows)


# File name → rows. uids within a file are deliberately out of order.
FILES = {
    "crime_open_database_core_chicago_2018.csv": make_rows("Chicago", 2018, [12, 11]),
    "crime_open_database_core_chicago_2019.csv": make_rows("Chicago", 2019, [30, 10, 20]),
    "crime_open_database_core_detroit_2018.csv.gz": make_rows("Detroit", 2018, [7, 3]),
    "crime_open_database_extended_chicago_2019.csv": make_rows("Chicago", 2019, [31, 21]),
    "crime_open_database_sample_chicago_2019.csv": make_rows("Chicago", 2019, [40, 2]),
    "crime_open_database_sample_detroit_2019.csv": make_rows("Detroit", 2019, [15, 5]),
    "crime_open_database_sample_new_york_2018.Rds": make_rows("New York", 2018, [99]),
}


def encode(name: str, table: pd.DataFrame) -> bytes:
    if name.lower().endswith(".rds"):
        return rds_bytes(table)
    data = table.to_csv(index=False).encode("utf-8")
    return gzip.compress(data) if name.endswith(".gz") else data


def rds_bytes(table: pd.DataFrame) -> bytes:
    """Serialize a frame the way R's saveRDS would, via pyreadr."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "table.Rds"
        pyreadr.write_rds(str(path), table)
        return path.read_bytes()


class FakeOSFClient:
    """Serves FILES (plus a README) without touching the network."""

    project_id = "test"

    def __init__(self, files: dict[str, pd.DataFrame] | None = None, fail_on: set[str] | None = None):
        self.files = {
            name: encode(name, table)
            for name, table in (FILES if files is None else files).items()
        }
        self.files["README.md"] = b"# Crime Open Database\n"
        self.fail_on = fail_on or set()
        self.list_calls = 0
        self.downloads: list[str] = []
        self.fail_listing = False

    def list_files(self):
        self.list_calls += 1
        if self.fail_listing:
            raise RemoteRequestError(message="listing unavailable", details={"url": "fake://"})
        for name, body in self.files.items():
            yield RemoteFile(name=name, download=f"fake://{name}", size=len(body))

    def download(self, url: str, destination: Path, progress=None) -> Path:
        name = url.removeprefix("fake://")
        if name in self.fail_on:
            raise RemoteRequestError(message=f"HTTP 503 for {url}", details={"url": url})
        body = self.files[name]
        Path(destination).write_bytes(body)
        if progress is not None:
            progress(len(body), len(body))
        self.downloads.append(name)
        return Path(destination)


@pytest.fixture
def fake_client():
    return FakeOSFClient()


@pytest.fixture
def memory_store():
    return MemoryCacheStore()


@pytest.fixture
def catalog(fake_client):
    from crimedata.pipeline.catalog import fetch_catalog
    return fetch_catalog(quiet=True, client=fake_client)
