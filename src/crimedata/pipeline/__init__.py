"""Pipeline stages - catalog, validation, fetch, normalization and the orchestrator."""

from crimedata.pipeline.catalog import fetch_catalog, parse_file_name
from crimedata.pipeline.validator import check_arguments, validate
from crimedata.pipeline.assemble import fetch
from crimedata.pipeline.normalize import normalize
from crimedata.pipeline.crime_pipeline import CrimeDataPipeline, get_crime_data

__all__ = [
    "fetch_catalog", "parse_file_name",
    "check_arguments", "validate",
    "fetch", "normalize",
    "CrimeDataPipeline", "get_crime_data",
]
