"""Data layer - value types and the result cache."""

from crimedata.data.models import (
    ALL_CITIES, DataType, OutputFormat,
    CatalogEntry, Catalog, DataRequest, Advisory,
    CacheEntry, CrimeDataResult,
)
from crimedata.data.cache import (
    CacheStore, FileCacheStore, MemoryCacheStore,
    make_key, get_default_store,
)

__all__ = [
    "ALL_CITIES", "DataType", "OutputFormat",
    "CatalogEntry", "Catalog", "DataRequest", "Advisory",
    "CacheEntry", "CrimeDataResult",
    "CacheStore", "FileCacheStore", "MemoryCacheStore",
    "make_key", "get_default_store",
]
