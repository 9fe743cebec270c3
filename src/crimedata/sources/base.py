"""
Base HTTP client with retry logic and session management.

Remote clients inherit from BaseClient and get:
- Automatic retry with exponential backoff
- A lazily created requests session with a fixed User-Agent
- Streaming downloads to disk with a progress callback
- Structured logging
"""

import random
import time
from pathlib import Path
from typing import Callable, Optional

import requests

from crimedata.config import settings
from crimedata.exceptions import RemoteRequestError
from crimedata.logging_config import get_logger

logger = get_logger(__name__)

# Called with (bytes_written, total_bytes_or_None) after every chunk
ProgressCallback = Callable[[int, Optional[int]], None]

USER_AGENT = "crimedata-python (+https://osf.io/zyaqn/)"


class BaseClient:
    """
    Shared HTTP plumbing.

    Provides:
        - retry_request(): HTTP requests with retry + backoff
        - get_json(): GET and decode a JSON body
        - download(): Stream a URL to a local file, overwriting it
    """

    MAX_RETRIES: int = settings.osf.max_retries
    BACKOFF_BASE: float = settings.osf.backoff_base  # Exponential backoff base (seconds)

    def __init__(self, timeout: int | None = None, session: requests.Session | None = None):
        self.timeout = timeout or settings.osf.timeout
        self._session: Optional[requests.Session] = session

    # ─── HTTP Requests ──────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Lazy-init a requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({
                "User-Agent": USER_AGENT,
                "Accept": "application/vnd.api+json, application/json;q=0.9, */*;q=0.8",
            })
        return self._session

    def retry_request(
        self,
        url: str,
        method: str = "GET",
        max_retries: int | None = None,
        **kwargs,
    ) -> requests.Response:
        """
        Make an HTTP request with retry + exponential backoff.

        Args:
            url: Target URL.
            method: HTTP method.
            max_retries: Override default retry count.
            **kwargs: Passed to requests.Session.request().

        Returns:
            Response object with a 2xx status.

        Raises:
            RemoteRequestError: If all retries are exhausted, or on a
                client error (4xx other than 429), which is not retried.
        """
        retries = max_retries or self.MAX_RETRIES
        last_error = None

        for attempt in range(1, retries + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
                if response.ok:
                    return response
                if 400 <= response.status_code < 500 and response.status_code != 429:
                    raise RemoteRequestError(
                        message=f"Request to {url} failed (HTTP {response.status_code})",
                        details={"url": url, "status": response.status_code},
                    )
                response.raise_for_status()

            except RemoteRequestError:
                raise  # Don't retry on client errors
            except requests.RequestException as e:
                last_error = e
                if attempt == retries:
                    break
                wait = self.BACKOFF_BASE ** attempt + random.uniform(0, 1)
                logger.warning(
                    "Request attempt %d/%d failed for %s: %s - retrying in %.1fs",
                    attempt, retries, url, e, wait,
                )
                time.sleep(wait)

        raise RemoteRequestError(
            message=f"All {retries} attempts failed for {url}",
            details={"url": url, "last_error": str(last_error)},
        )

    def get_json(self, url: str, **kwargs) -> dict:
        """
        Fetch a URL and decode its JSON body.

        Raises:
            RemoteRequestError: On HTTP failure or a body that is not JSON.
        """
        response = self.retry_request(url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteRequestError(
                message=f"Response from {url} is not valid JSON",
                details={"url": url},
            ) from e

    def download(
        self,
        url: str,
        destination: Path,
        progress: ProgressCallback | None = None,
        chunk_size: int | None = None,
    ) -> Path:
        """
        Stream ``url`` into ``destination``, replacing any existing file.

        Args:
            url: Download URL.
            destination: Local file path.
            progress: Optional callback receiving (bytes_written, total).
            chunk_size: Bytes per read; defaults to settings.

        Returns:
            The destination path.
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        chunk_size = chunk_size or settings.osf.chunk_size

        response = self.retry_request(url, stream=True)
        total = response.headers.get("Content-Length")
        total = int(total) if total and total.isdigit() else None
        written = 0
        try:
            with open(destination, "wb") as fh:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if not chunk:
                        continue
                    fh.write(chunk)
                    written += len(chunk)
                    if progress is not None:
                        progress(written, total)
        except requests.RequestException as e:
            raise RemoteRequestError(
                message=f"Download interrupted for {url}: {e}",
                details={"url": url, "bytes_written": written},
            ) from e
        finally:
            response.close()

        logger.debug("Downloaded %s → %s (%d bytes)", url, destination, written)
        return destination

    # ─── Context Manager ────────────────────────────────────

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
