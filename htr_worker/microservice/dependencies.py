"""Shared FastAPI dependencies for the microservice.

Settings, the page repository, the Transkribus client, the source loader and
the submission throttle are process-wide singletons; a processor is built per
request so every request stages its files under its own run id.
"""

from functools import lru_cache

from fastapi import Depends

from htr_worker.config.settings import Settings
from htr_worker.database.repositories.page_repository import PageRepository
from htr_worker.processor.file_loader import FileLoader
from htr_worker.processor.processor import Processor, build_processor
from htr_worker.transkribus.client import TranskribusClient, build_transkribus_client
from htr_worker.transkribus.throttle import Throttle


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@lru_cache()
def get_page_repository() -> PageRepository:
    return PageRepository()


@lru_cache()
def get_transkribus_client() -> TranskribusClient:
    return build_transkribus_client(get_settings())


@lru_cache()
def get_file_loader() -> FileLoader:
    """Loader for request-supplied URIs; never reads the server's own files."""
    return FileLoader(
        timeout_seconds=get_settings().transkribus_timeout_seconds, allow_local=False
    )


@lru_cache()
def get_throttle() -> Throttle:
    return Throttle(get_settings().transkribus_submit_interval_seconds)


def get_processor(
    settings: Settings = Depends(get_settings),
    page_repo: PageRepository = Depends(get_page_repository),
    client: TranskribusClient = Depends(get_transkribus_client),
    throttle: Throttle = Depends(get_throttle),
    file_loader: FileLoader = Depends(get_file_loader),
) -> Processor:
    """Provide a fresh processor wired to the shared collaborators."""
    return build_processor(
        settings,
        page_repo=page_repo,
        client=client,
        throttle=throttle,
        file_loader=file_loader,
    )
