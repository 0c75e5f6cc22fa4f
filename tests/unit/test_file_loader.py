from pathlib import Path

import httpx
import pytest

from htr_worker.processor.exceptions import SourceFetchError, UnsupportedSourceError
from htr_worker.processor.file_loader import FileLoader


def _make_loader(handler) -> FileLoader:
    return FileLoader(http_client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestLoadLocal:
    def test_reads_bare_path(self, tmp_path: Path) -> None:
        path = tmp_path / "page.jp2"
        path.write_bytes(b"jp2")

        assert FileLoader().load(str(path)) == b"jp2"

    def test_reads_file_uri(self, tmp_path: Path) -> None:
        path = tmp_path / "page one.jp2"
        path.write_bytes(b"jp2")

        assert FileLoader().load(path.as_uri()) == b"jp2"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceFetchError, match="File not found"):
            FileLoader().load(str(tmp_path / "missing.jp2"))


class TestLoadHttp:
    def test_downloads_content(self) -> None:
        loader = _make_loader(lambda request: httpx.Response(200, content=b"image"))

        assert loader.load("http://islandora.test/islandora/object/a:1/datastream/OBJ") == b"image"

    def test_error_status_raises(self) -> None:
        loader = _make_loader(lambda request: httpx.Response(403))

        with pytest.raises(SourceFetchError, match="status 403"):
            loader.load("https://islandora.test/page.jp2")

    def test_transport_error_raises(self) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(SourceFetchError, match="unreachable"):
            _make_loader(_handler).load("https://islandora.test/page.jp2")


class TestRemoteOnly:
    def test_bare_path_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "private_HOCR.shtml"
        path.write_text("secret token")

        with pytest.raises(UnsupportedSourceError):
            FileLoader(allow_local=False).load(str(path))

    def test_file_uri_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "private_HOCR.shtml"
        path.write_text("secret token")

        with pytest.raises(UnsupportedSourceError):
            FileLoader(allow_local=False).load(path.as_uri())

    def test_http_still_downloads(self) -> None:
        loader = FileLoader(
            http_client=httpx.Client(
                transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"img"))
            ),
            allow_local=False,
        )

        assert loader.load("https://islandora.test/page.jp2") == b"img"


class TestClose:
    def test_closes_http_client(self) -> None:
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        loader = FileLoader(http_client=http)

        loader.close()

        assert http.is_closed


class TestFileName:
    def test_last_path_segment(self) -> None:
        assert FileLoader.file_name("http://host/a/b/page_JP2.jp2?token=1") == "page_JP2.jp2"

    def test_unquotes_name(self) -> None:
        assert FileLoader.file_name("file:///tmp/page%20one.jp2") == "page one.jp2"

    def test_bare_path(self) -> None:
        assert FileLoader.file_name("/tmp/scan.tif") == "scan.tif"

    def test_uri_without_name_raises(self) -> None:
        with pytest.raises(SourceFetchError):
            FileLoader.file_name("http://host/")
