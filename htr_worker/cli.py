"""Command-line verbs and the argument strings the microservice receives.

Both are parsed with argparse; the microservice variant raises instead of
exiting so a bad header turns into a client error.
"""

import argparse
import shlex
from collections.abc import Sequence

from htr_worker.processor.models import (
    PageSelectionOptions,
    RepositoryOptions,
    SinglePageOcrOptions,
    SinglePageOptions,
    UploadOptions,
)

DEFAULT_COMMAND = "process"

CommandOptions = RepositoryOptions | None
MicroserviceOptions = SinglePageOptions | SinglePageOcrOptions


class ArgumentsError(Exception):
    """Raised when microservice arguments cannot be parsed."""


class _RaisingArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise ArgumentsError(message)


def _add_repository_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--root", help="Drupal root (default: ISLANDORA_DRUPAL_ROOT)")
    parser.add_argument("--uri", help="Drupal site URI (default: ISLANDORA_URI)")
    parser.add_argument("--user", help="Drupal user (default: ISLANDORA_USER)")


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    selection = parser.add_mutually_exclusive_group(required=True)
    selection.add_argument("--pid", help="pid of the item whose pages to process")
    selection.add_argument("--pid-file", help="file listing page pids, one per line")


def _add_upload_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--htr-id", type=int, required=True, help="Transkribus model id")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="re-upload pages that are already processing or published",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="htr-worker",
        description="Run Islandora page images through Transkribus HTR.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    process = commands.add_parser(
        "process", help="upload pages and wait until every result is published"
    )
    upload = commands.add_parser("upload", help="upload pages without waiting")
    for command in (process, upload):
        _add_repository_arguments(command)
        _add_selection_arguments(command)
        _add_upload_arguments(command)

    check = commands.add_parser("check", help="publish results of finished pages once")
    _add_repository_arguments(check)

    ocr = commands.add_parser("ocr", help="regenerate OCR datastreams from stored hOCR")
    _add_repository_arguments(ocr)
    _add_selection_arguments(ocr)

    commands.add_parser("serve", help="run the HTTP microservice")
    return parser


def parse_command(argv: Sequence[str]) -> tuple[str, CommandOptions]:
    """Parse CLI arguments into a verb and its options; ``process`` is the default verb."""
    argv = list(argv)
    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
        argv.insert(0, DEFAULT_COMMAND)
    args = build_parser().parse_args(argv)
    return args.command, _options_from(args)


def _options_from(args: argparse.Namespace) -> CommandOptions:
    if args.command == "serve":
        return None
    repository = {"root": args.root, "uri": args.uri, "user": args.user}
    if args.command in ("process", "upload"):
        return UploadOptions(
            **repository,
            pid=args.pid,
            pid_file=args.pid_file,
            htr_id=args.htr_id,
            overwrite=args.overwrite,
        )
    if args.command == "ocr":
        return PageSelectionOptions(**repository, pid=args.pid, pid_file=args.pid_file)
    if args.command == "check":
        return RepositoryOptions(**repository)
    raise ValueError(f"Unknown command '{args.command}'")


def build_microservice_parser() -> argparse.ArgumentParser:
    parser = _RaisingArgumentParser(prog="X-Islandora-Args", add_help=False)
    commands = parser.add_subparsers(
        dest="command", required=True, parser_class=_RaisingArgumentParser
    )
    page = commands.add_parser("page", add_help=False)
    page.add_argument("--htr-id", type=int, required=True)
    commands.add_parser("ocr", add_help=False)
    return parser


def parse_microservice_args(raw: str) -> MicroserviceOptions:
    """Parse the CLI-style argument string sent with a microservice request.

    Raises:
        ArgumentsError: if the string is not a valid ``page`` or ``ocr`` command.
    """
    try:
        argv = shlex.split(raw or "")
    except ValueError as exc:
        raise ArgumentsError(str(exc)) from exc
    args = build_microservice_parser().parse_args(argv)
    if args.command == "page":
        return SinglePageOptions(htr_id=args.htr_id)
    return SinglePageOcrOptions()
