"""
Custom exception hierarchy for crimedata.

Every failure a caller can see is one of these types, grouped by the
stage that raises it: argument validation, catalog matching, and
download/assembly.
"""


class CrimeDataError(Exception):
    """Base exception for all crimedata errors."""

    def __init__(self, message: str = "", details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# --- Validation Exceptions ---


class ValidationError(CrimeDataError):
    """Base exception for input validation errors."""
    pass


class InvalidArgumentError(ValidationError):
    """Raised when an argument has the wrong shape, type or value."""

    def __init__(self, argument: str, message: str):
        super().__init__(
            message=message,
            details={"argument": argument},
        )


# --- Remote Exceptions ---


class RemoteRequestError(CrimeDataError):
    """Raised when an HTTP request to the data host fails after all retries."""
    pass


# --- Catalog Exceptions ---


class CatalogError(CrimeDataError):
    """Base exception for errors resolving a request against the catalog."""
    pass


class CatalogUnavailableError(CatalogError):
    """Raised when the list of remote data files cannot be retrieved."""
    pass


class YearsUnavailableError(CatalogError):
    """Raised when one or more requested years are not in the catalog."""

    def __init__(self, years: list[int], docs_url: str):
        super().__init__(
            message=(
                "One or more of the requested years of data is not available: "
                f"{', '.join(str(y) for y in years)}. "
                f"For details of data available in the Crime Open Database, see <{docs_url}>. "
                "Data for the current year are not available because the database "
                "is updated annually."
            ),
            details={"years": years},
        )


class CitiesUnavailableError(CatalogError):
    """Raised when one or more requested cities are not in the catalog."""

    def __init__(self, cities: list[str], docs_url: str):
        super().__init__(
            message=(
                "Data is not available for one or more of the specified cities: "
                f"{', '.join(cities)}. Have you spelled the city names correctly? "
                f"For details of data available in the Crime Open Database, see <{docs_url}>."
            ),
            details={"cities": cities},
        )


class NoMatchingDataError(CatalogError):
    """Raised when no catalog file matches the type, years and cities together."""
    pass


# --- Fetch Exceptions ---


class FetchError(CrimeDataError):
    """Base exception for download and assembly errors."""
    pass


class DownloadFailedError(FetchError):
    """Raised when one or more data files could not be downloaded."""
    pass


class AssemblyFailedError(FetchError):
    """Raised when downloaded files cannot be parsed into a single table."""
    pass
