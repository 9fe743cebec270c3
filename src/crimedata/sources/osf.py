"""
OSF Client - Lists and downloads files from an Open Science Framework project.

Source: https://api.osf.io/v2 (JSON:API)

The project's osfstorage tree is walked recursively; folders are
followed and paginated listings are read to the end.
"""

from typing import Any, Iterator, Optional

from crimedata.config import settings
from crimedata.exceptions import RemoteRequestError
from crimedata.logging_config import get_logger
from crimedata.sources.base import BaseClient

logger = get_logger(__name__)


class RemoteFile(dict):
    """A file listed by OSF: ``name``, ``download`` (URL) and ``size``."""

    @property
    def name(self) -> str:
        return self["name"]

    @property
    def download_url(self) -> str:
        return self["download"]

    @property
    def size(self) -> Optional[int]:
        return self.get("size")


class OSFClient(BaseClient):
    """
    Client for one OSF project's file storage.

    Usage:
        with OSFClient() as client:
            for f in client.list_files():
                client.download(f.download_url, staging / f.name)
    """

    MAX_DEPTH = 8

    def __init__(
        self,
        project_id: str | None = None,
        api_url: str | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.project_id = project_id or settings.osf.project_id
        self.api_url = (api_url or settings.osf.api_url).rstrip("/")

    @property
    def root_url(self) -> str:
        return f"{self.api_url}/nodes/{self.project_id}/files/osfstorage/"

    def list_files(self) -> Iterator[RemoteFile]:
        """
        Yield every file in the project, descending into folders.

        Raises:
            RemoteRequestError: If a listing page cannot be fetched or parsed.
        """
        yield from self._walk(self.root_url, depth=0)

    def _walk(self, url: str, depth: int) -> Iterator[RemoteFile]:
        if depth > self.MAX_DEPTH:
            logger.warning("Not descending below %s: depth limit reached", url)
            return

        for item in self._paginate(url):
            attributes = item.get("attributes") or {}
            kind = attributes.get("kind")
            if kind == "folder":
                href = self._folder_href(item)
                if href:
                    yield from self._walk(href, depth + 1)
            elif kind == "file":
                download = (item.get("links") or {}).get("download")
                if not download:
                    logger.debug("Skipping %s: no download link", attributes.get("name"))
                    continue
                yield RemoteFile(
                    name=attributes.get("name", ""),
                    download=download,
                    size=attributes.get("size"),
                )

    def _paginate(self, url: str) -> Iterator[dict[str, Any]]:
        """Yield items from every page of a JSON:API listing."""
        params: dict[str, Any] | None = {"page[size]": settings.osf.page_size}
        next_url: str | None = url
        while next_url:
            payload = self.get_json(next_url, params=params)
            data = payload.get("data")
            if not isinstance(data, list):
                raise RemoteRequestError(
                    message=f"Unexpected listing format from {next_url}",
                    details={"url": next_url},
                )
            yield from data
            next_url = (payload.get("links") or {}).get("next")
            # "next" links already carry the query string
            params = None

    @staticmethod
    def _folder_href(item: dict[str, Any]) -> Optional[str]:
        try:
            return item["relationships"]["files"]["links"]["related"]["href"]
        except (KeyError, TypeError):
            return None
