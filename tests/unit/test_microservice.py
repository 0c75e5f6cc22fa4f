from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from htr_worker.config.settings import Settings
from htr_worker.microservice.app import app
from htr_worker.microservice.dependencies import (
    get_file_loader,
    get_page_repository,
    get_processor,
    get_throttle,
    get_transkribus_client,
)
from htr_worker.processor.exceptions import PollTimeoutError, SourceFetchError
from htr_worker.processor.models import SinglePageOptions
from htr_worker.tools.exceptions import ExternalToolError
from htr_worker.transkribus.exceptions import ProcessExpiredError, RemoteServiceError

RESOURCE = "http://islandora.test/islandora/object/islandora:42/datastream/OBJ"


@pytest.fixture()
def processor() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def client(processor: MagicMock) -> Iterator[TestClient]:
    app.dependency_overrides[get_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()


def _headers(args: str) -> dict[str, str]:
    return {"X-Islandora-Args": args, "Apix-Ldp-Resource": RESOURCE}


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestPage:
    def test_returns_hocr(self, client: TestClient, processor: MagicMock) -> None:
        processor.process_single_page.return_value = b"<html/>"

        response = client.get("/", headers=_headers("page --htr-id 38230"))

        assert response.status_code == 200
        assert response.content == b"<html/>"
        assert response.headers["content-type"].startswith("application/xml")
        processor.process_single_page.assert_called_once_with(
            RESOURCE, SinglePageOptions(htr_id=38230)
        )

    def test_ocr_returns_text(self, client: TestClient, processor: MagicMock) -> None:
        processor.create_single_page_ocr.return_value = b"Item to Willm"

        response = client.get("/", headers=_headers("ocr"))

        assert response.status_code == 200
        assert response.text == "Item to Willm"
        assert response.headers["content-type"].startswith("text/plain")
        processor.create_single_page_ocr.assert_called_once_with(RESOURCE)


class TestErrors:
    def test_invalid_args_are_bad_request(self, client: TestClient, processor: MagicMock) -> None:
        response = client.get("/", headers=_headers("page"))

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid X-Islandora-Args")
        processor.process_single_page.assert_not_called()

    def test_missing_resource_header(self, client: TestClient) -> None:
        response = client.get("/", headers={"X-Islandora-Args": "ocr"})

        assert response.status_code == 422

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (PollTimeoutError("not finished after 1800s"), 504),
            (ProcessExpiredError(77), 502),
            (RemoteServiceError("bad gateway", status_code=500), 502),
            (SourceFetchError("File not found: page.jp2"), 500),
            (ExternalToolError("convert", 1, "corrupt image"), 500),
        ],
    )
    def test_errors_map_to_status_codes(
        self,
        client: TestClient,
        processor: MagicMock,
        error: Exception,
        status_code: int,
    ) -> None:
        processor.process_single_page.side_effect = error

        response = client.get("/", headers=_headers("page --htr-id 1"))

        assert response.status_code == status_code
        assert response.json() == {"detail": str(error)}


class TestLocalSources:
    @pytest.fixture()
    def service_client(self) -> Iterator[TestClient]:
        app.dependency_overrides[get_page_repository] = lambda: MagicMock()
        app.dependency_overrides[get_transkribus_client] = lambda: MagicMock()
        app.dependency_overrides[get_throttle] = lambda: MagicMock()
        yield TestClient(app)
        app.dependency_overrides.clear()

    @pytest.mark.parametrize("as_uri", [False, True])
    def test_server_files_are_not_readable(
        self, service_client: TestClient, tmp_path: Path, as_uri: bool
    ) -> None:
        private = tmp_path / "private_HOCR.shtml"
        private.write_text("secret token", encoding="utf-8")
        resource = private.as_uri() if as_uri else str(private)

        response = service_client.get(
            "/", headers={"X-Islandora-Args": "ocr", "Apix-Ldp-Resource": resource}
        )

        assert response.status_code == 400
        assert "secret token" not in response.text


class TestSharedLoader:
    def test_file_loader_is_a_singleton(self) -> None:
        assert get_file_loader() is get_file_loader()

    def test_processors_use_the_injected_loader(self, sample_hocr: str) -> None:
        loader = MagicMock()
        loader.file_name.return_value = "islandora_42_HOCR.shtml"
        loader.load.return_value = sample_hocr.encode("utf-8")
        collaborators = {
            "settings": Settings(),
            "page_repo": MagicMock(),
            "client": MagicMock(),
            "throttle": MagicMock(),
            "file_loader": loader,
        }

        for _ in range(2):
            get_processor(**collaborators).create_single_page_ocr(RESOURCE)

        assert loader.load.call_count == 2

    @patch("htr_worker.microservice.app.close_pool")
    @patch("htr_worker.microservice.app.ensure_schema")
    @patch("htr_worker.microservice.app.init_pool")
    @patch("htr_worker.microservice.app.get_transkribus_client")
    @patch("htr_worker.microservice.app.get_file_loader")
    def test_lifespan_closes_shared_clients(
        self,
        mock_loader: MagicMock,
        mock_client: MagicMock,
        mock_init: MagicMock,
        mock_schema: MagicMock,
        mock_close: MagicMock,
    ) -> None:
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

        mock_loader.return_value.close.assert_called_once()
        mock_client.return_value.close.assert_called_once()
        mock_close.assert_called_once()
