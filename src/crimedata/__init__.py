"""Client for the Crime Open Database, hosted on the Open Science Framework."""

from crimedata.data.models import ALL_CITIES, DataType, OutputFormat
from crimedata.exceptions import (
    CrimeDataError,
    InvalidArgumentError,
    CatalogUnavailableError,
    YearsUnavailableError,
    CitiesUnavailableError,
    NoMatchingDataError,
    DownloadFailedError,
    AssemblyFailedError,
)
from crimedata.pipeline.crime_pipeline import CrimeDataPipeline, get_crime_data

__version__ = "0.1.0"

__all__ = [
    "get_crime_data",
    "CrimeDataPipeline",
    "ALL_CITIES",
    "DataType",
    "OutputFormat",
    "CrimeDataError",
    "InvalidArgumentError",
    "CatalogUnavailableError",
    "YearsUnavailableError",
    "CitiesUnavailableError",
    "NoMatchingDataError",
    "DownloadFailedError",
    "AssemblyFailedError",
]
