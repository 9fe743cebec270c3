"""Remote sources - base HTTP client and the OSF storage client."""

from crimedata.sources.base import BaseClient, ProgressCallback
from crimedata.sources.osf import OSFClient, RemoteFile

__all__ = [
    "BaseClient",
    "ProgressCallback",
    "OSFClient",
    "RemoteFile",
]
