from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "transkribus_process"
    db_username: str = "transkribus"
    db_password: str = "secret"

    transkribus_username: str = ""
    transkribus_password: str = ""
    transkribus_api_url: str = "https://transkribus.eu/processing/v1/processes"
    transkribus_token_url: str = (
        "https://account.readcoop.eu/auth/realms/readcoop/protocol/openid-connect/token"
    )
    transkribus_client_id: str = "processing-api-client"
    transkribus_timeout_seconds: int = 30
    transkribus_submit_interval_seconds: float = 1.0

    islandora_drupal_root: str = "/var/www/drupal7"
    islandora_user: str = "admin"
    islandora_uri: str = "http://localhost"

    drush_command: str = "drush"
    convert_command: str = "convert"
    xslt_command: str = "xslt3"
    alto_to_hocr_sef_path: str = "alto_to_hocr.sef.json"
    staging_root: str | None = None

    batch_initial_delay_seconds: int = 15
    batch_poll_interval_seconds: int = 15
    batch_poll_timeout_seconds: int = 86400
    single_page_poll_delay_seconds: int = 5
    single_page_poll_timeout_seconds: int = 1800

    microservice_host: str = "0.0.0.0"
    microservice_port: int = 8000
