"""
Value types shared by the catalog, validator, cache and pipeline.

All models are frozen: a catalog entry or a validated request never
changes after construction.
"""

from enum import Enum
from typing import Any, Iterable, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from crimedata.exceptions import CatalogUnavailableError

ALL_CITIES = "all cities"


class DataType(str, Enum):
    """Level of detail of the requested data."""

    SAMPLE = "sample"
    CORE = "core"
    EXTENDED = "extended"


class OutputFormat(str, Enum):
    """Shape of the returned table."""

    TABLE = "table"
    GEO = "geo"

    @classmethod
    def _missing_(cls, value: object) -> Optional["OutputFormat"]:
        # Names used by the R client
        aliases = {"tbl": cls.TABLE, "sf": cls.GEO}
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


# --- Catalog ---


class CatalogEntry(BaseModel):
    """One remotely available data file."""

    model_config = ConfigDict(frozen=True)

    city: str
    year: int
    data_type: DataType
    remote_reference: str
    file_name: str = ""
    size: Optional[int] = None

    @field_validator("city")
    @classmethod
    def lowercase_city(cls, v: str) -> str:
        return v.strip().lower()


class Catalog(BaseModel):
    """
    The set of available files, at most one per (city, year, data_type).

    Usage:
        catalog = Catalog.from_entries(entries)
        catalog.max_year()
        catalog.select(DataType.CORE, {2019}, {"chicago"})
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[CatalogEntry, ...] = ()

    @classmethod
    def from_entries(cls, entries: Iterable[CatalogEntry]) -> "Catalog":
        """Build a catalog, keeping the first entry seen for each (city, year, type)."""
        seen: dict[tuple[str, int, DataType], CatalogEntry] = {}
        for entry in entries:
            seen.setdefault((entry.city, entry.year, entry.data_type), entry)
        return cls(entries=tuple(seen.values()))

    def __len__(self) -> int:
        return len(self.entries)

    def years(self) -> set[int]:
        return {e.year for e in self.entries}

    def cities(self) -> set[str]:
        return {e.city for e in self.entries}

    def max_year(self) -> int:
        years = self.years()
        if not years:
            raise CatalogUnavailableError(message="The list of available data files is empty")
        return max(years)

    def select(
        self,
        data_type: DataType,
        years: Iterable[int],
        cities: Iterable[str],
    ) -> list[CatalogEntry]:
        """Return entries of one data type matching any of the years and cities."""
        years = set(years)
        cities = set(cities)
        all_cities = ALL_CITIES in cities
        return [
            e for e in self.entries
            if e.data_type == data_type
            and e.year in years
            and (all_cities or e.city in cities)
        ]


# --- Request ---


class DataRequest(BaseModel):
    """A validated request; produced only by the validator."""

    model_config = ConfigDict(frozen=True)

    years: frozenset[int] = Field(..., min_length=1)
    cities: frozenset[str] = Field(..., min_length=1)
    data_type: DataType = DataType.SAMPLE
    use_cache: bool = True
    quiet: bool = False
    output_format: OutputFormat = OutputFormat.TABLE


class Advisory(BaseModel):
    """Non-fatal notice about a (city, year) combination with no data."""

    model_config = ConfigDict(frozen=True)

    city: str
    year: int

    @property
    def message(self) -> str:
        return f"Data are not available for crimes in {self.city.title()} in {self.year}"


# --- Results ---


class CacheEntry(BaseModel):
    """A materialized table and the key that produced it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    data: pd.DataFrame


class CrimeDataResult(BaseModel):
    """Everything one pipeline run produced."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: Any = Field(..., description="pandas.DataFrame or geopandas.GeoDataFrame")
    request: DataRequest
    advisories: tuple[Advisory, ...] = ()
    from_cache: bool = False
