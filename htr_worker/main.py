import sys
from collections.abc import Sequence

import uvicorn

from htr_worker.cli import CommandOptions, parse_command
from htr_worker.config.settings import Settings
from htr_worker.database.connection import close_pool, ensure_schema, init_pool
from htr_worker.logging.logger import Log
from htr_worker.processor.models import PageSelectionOptions, RepositoryOptions, UploadOptions
from htr_worker.processor.processor import Processor, build_processor


def run_command(processor: Processor, command: str, options: CommandOptions) -> None:
    if command == "process" and isinstance(options, UploadOptions):
        processor.process_document(options)
    elif command == "upload" and isinstance(options, UploadOptions):
        processor.upload_document(options)
    elif command == "check" and isinstance(options, RepositoryOptions):
        processor.check_progress(options)
    elif command == "ocr" and isinstance(options, PageSelectionOptions):
        processor.create_ocr_datastreams_from_hocr(options)
    else:
        raise ValueError(f"Unknown command '{command}'")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse verb -> initialize pool -> run processor -> close pool."""
    command, options = parse_command(sys.argv[1:] if argv is None else argv)
    settings = Settings()
    Log.configure(settings.log_level)

    if command == "serve":
        uvicorn.run(
            "htr_worker.microservice.app:app",
            host=settings.microservice_host,
            port=settings.microservice_port,
        )
        return 0

    init_pool(settings)
    try:
        ensure_schema()
        run_command(build_processor(settings), command, options)
    except Exception as exc:
        Log.error(f"{command} failed: {exc}")
        return 1
    finally:
        close_pool()
    return 0


if __name__ == "__main__":
    sys.exit(main())
