import pytest
from pydantic import ValidationError

from htr_worker.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_transkribus_client_id(self) -> None:
        s = Settings()
        assert s.transkribus_client_id == "processing-api-client"

    def test_default_single_page_poll_delay(self) -> None:
        s = Settings()
        assert s.single_page_poll_delay_seconds == 5

    def test_default_batch_initial_delay(self) -> None:
        s = Settings()
        assert s.batch_initial_delay_seconds == 15

    def test_default_tool_commands(self) -> None:
        s = Settings()
        assert (s.drush_command, s.convert_command, s.xslt_command) == (
            "drush",
            "convert",
            "xslt3",
        )


class TestSettingsFromEnv:
    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_transkribus_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRANSKRIBUS_USERNAME", "archivist@example.org")
        monkeypatch.setenv("TRANSKRIBUS_PASSWORD", "hunter2")
        s = Settings()
        assert s.transkribus_username == "archivist@example.org"
        assert s.transkribus_password == "hunter2"

    def test_loads_stylesheet_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALTO_TO_HOCR_SEF_PATH", "/opt/xslt/alto_to_hocr.sef.json")
        s = Settings()
        assert s.alto_to_hocr_sef_path == "/opt/xslt/alto_to_hocr.sef.json"

    def test_loads_submit_interval(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRANSKRIBUS_SUBMIT_INTERVAL_SECONDS", "2.5")
        s = Settings()
        assert s.transkribus_submit_interval_seconds == 2.5


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_poll_timeout_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SINGLE_PAGE_POLL_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ValidationError):
            Settings()
