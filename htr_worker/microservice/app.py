"""HTTP microservice for single pages.

Run:
    uvicorn htr_worker.microservice.app:app --host 0.0.0.0 --port 8000
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from htr_worker.cli import ArgumentsError, parse_microservice_args
from htr_worker.database.connection import close_pool, ensure_schema, init_pool
from htr_worker.logging.logger import Log
from htr_worker.microservice.dependencies import (
    get_file_loader,
    get_processor,
    get_settings,
    get_transkribus_client,
)
from htr_worker.processor.exceptions import (
    PollTimeoutError,
    ProcessorError,
    UnsupportedSourceError,
)
from htr_worker.processor.models import SinglePageOptions
from htr_worker.processor.processor import Processor
from htr_worker.tools.exceptions import ExternalToolError
from htr_worker.transkribus.exceptions import TranskribusError


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    Log.configure(settings.log_level)
    init_pool(settings)
    ensure_schema()
    Log.info("Running microservice")
    try:
        yield
    finally:
        get_file_loader().close()
        get_transkribus_client().close()
        close_pool()


app = FastAPI(
    title="Transkribus HTR microservice",
    description="Turns a page image into hOCR, or an hOCR file into plain text.",
    lifespan=lifespan,
)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    Log.error(f"Request failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(UnsupportedSourceError)
async def unsupported_source_handler(_: Request, exc: UnsupportedSourceError) -> JSONResponse:
    return _error(400, exc)


@app.exception_handler(PollTimeoutError)
async def poll_timeout_handler(_: Request, exc: PollTimeoutError) -> JSONResponse:
    return _error(504, exc)


@app.exception_handler(TranskribusError)
async def transkribus_error_handler(_: Request, exc: TranskribusError) -> JSONResponse:
    return _error(502, exc)


@app.exception_handler(ProcessorError)
async def processor_error_handler(_: Request, exc: ProcessorError) -> JSONResponse:
    return _error(500, exc)


@app.exception_handler(ExternalToolError)
async def external_tool_error_handler(_: Request, exc: ExternalToolError) -> JSONResponse:
    return _error(500, exc)


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/")
def process_resource(
    x_islandora_args: str = Header(default=""),
    apix_ldp_resource: str = Header(...),
    processor: Processor = Depends(get_processor),
) -> Response:
    """Process the resource named by Apix-Ldp-Resource as X-Islandora-Args asks.

    ``page --htr-id N`` returns hOCR; ``ocr`` returns the plain text of an hOCR file.
    """
    try:
        options = parse_microservice_args(x_islandora_args)
    except ArgumentsError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid X-Islandora-Args: {exc}") from exc

    if isinstance(options, SinglePageOptions):
        body = processor.process_single_page(apix_ldp_resource, options)
        return Response(content=body, media_type="application/xml")
    body = processor.create_single_page_ocr(apix_ldp_resource)
    return Response(content=body, media_type="text/plain")
