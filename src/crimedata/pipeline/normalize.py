"""
Column normalization for assembled crime tables.

Offense and location descriptors become categoricals, date strings
become timestamps, and geo output adds WGS 84 point geometry while
keeping the longitude/latitude columns.
"""

import geopandas as gpd
import pandas as pd

from crimedata.data.models import OutputFormat
from crimedata.exceptions import InvalidArgumentError
from crimedata.logging_config import get_logger

logger = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M"
CRS = "EPSG:4326"

OFFENSE_COLUMNS = ("city_name", "offense_code", "offense_type", "offense_group", "offense_against")
LOCATION_COLUMNS = ("location_type", "location_category")
DATE_COLUMNS = ("date_single", "date_start", "date_end")
COORDINATE_COLUMNS = ("longitude", "latitude")


def to_categorical(table: pd.DataFrame, columns) -> pd.DataFrame:
    """Convert those of ``columns`` present in ``table`` to category dtype."""
    for column in columns:
        if column in table.columns and not isinstance(table[column].dtype, pd.CategoricalDtype):
            table[column] = table[column].astype("category")
    return table


def to_timestamp(table: pd.DataFrame, columns) -> pd.DataFrame:
    """Parse those of ``columns`` present in ``table`` with DATE_FORMAT; bad values become NaT."""
    for column in columns:
        if column in table.columns and not pd.api.types.is_datetime64_any_dtype(table[column]):
            table[column] = pd.to_datetime(table[column], format=DATE_FORMAT, errors="coerce")
    return table


def to_geo(table: pd.DataFrame) -> gpd.GeoDataFrame:
    """
    Add point geometry from longitude/latitude in WGS 84.

    Raises:
        InvalidArgumentError: If the coordinate columns are missing.
    """
    if isinstance(table, gpd.GeoDataFrame):
        return table
    missing = [c for c in COORDINATE_COLUMNS if c not in table.columns]
    if missing:
        raise InvalidArgumentError(
            "output",
            f"Geo output needs {', '.join(COORDINATE_COLUMNS)} columns; missing {', '.join(missing)}.",
        )
    geometry = gpd.points_from_xy(table["longitude"], table["latitude"], crs=CRS)
    return gpd.GeoDataFrame(table, geometry=geometry, crs=CRS)


def normalize(table: pd.DataFrame, output_format: OutputFormat | str = OutputFormat.TABLE):
    """
    Normalize column types; the input frame is not modified.

    Args:
        table: Assembled crime table.
        output_format: "table" for a DataFrame, "geo" for a GeoDataFrame.

    Returns:
        pandas.DataFrame or geopandas.GeoDataFrame.
    """
    output_format = OutputFormat(output_format)
    result = table.copy()
    result = to_categorical(result, OFFENSE_COLUMNS + LOCATION_COLUMNS)
    result = to_timestamp(result, DATE_COLUMNS)
    if output_format is OutputFormat.GEO:
        result = to_geo(result)
    logger.debug("Normalized %d rows (%s)", len(result), output_format.value)
    return result
