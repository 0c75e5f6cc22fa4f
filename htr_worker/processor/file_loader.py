from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from htr_worker.processor.exceptions import SourceFetchError, UnsupportedSourceError

_REMOTE_SCHEMES = ("http", "https")


class FileLoader:
    """Fetches a source image or hOCR file given by URI.

    http(s) URIs are downloaded. ``file://`` URIs and bare paths are read from
    disk only when ``allow_local`` is set; the microservice turns it off so a
    request can never name a file on the server.
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        timeout_seconds: int = 30,
        allow_local: bool = True,
    ) -> None:
        self._http = http_client if http_client is not None else httpx.Client(
            timeout=timeout_seconds, follow_redirects=True
        )
        self._allow_local = allow_local

    def load(self, uri: str) -> bytes:
        """Read the resource bytes.

        Raises:
            UnsupportedSourceError: if the URI is local and local reads are off.
            SourceFetchError: if the resource cannot be read.
        """
        parsed = urlparse(uri)
        if parsed.scheme in _REMOTE_SCHEMES:
            return self._download(uri)
        if not self._allow_local:
            raise UnsupportedSourceError(f"Only http(s) sources are accepted, got {uri}")
        path = self._local_path(uri)
        if not path.is_file():
            raise SourceFetchError(f"File not found: {path}")
        return path.read_bytes()

    def close(self) -> None:
        self._http.close()

    @staticmethod
    def file_name(uri: str) -> str:
        """Name to stage the resource under: the last segment of its path."""
        name = Path(unquote(urlparse(uri).path)).name
        if not name:
            raise SourceFetchError(f"Cannot derive a file name from {uri}")
        return name

    def _download(self, uri: str) -> bytes:
        try:
            response = self._http.get(uri)
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Failed to fetch {uri}: {exc}") from exc
        if not response.is_success:
            raise SourceFetchError(
                f"Failed to fetch {uri}: status {response.status_code}"
            )
        return response.content

    @staticmethod
    def _local_path(uri: str) -> Path:
        parsed = urlparse(uri)
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        return Path(uri)
