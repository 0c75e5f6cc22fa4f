import time
import xml.etree.ElementTree as ET
from collections.abc import Callable
from contextlib import ExitStack
from datetime import datetime, timezone
from functools import partial
from pathlib import Path

from htr_worker.config.settings import Settings
from htr_worker.database.models import PageRecord, PageTransition
from htr_worker.database.repositories.page_repository import PageRepository
from htr_worker.hocr import HocrHeaderFixer, OcrGenerator, process_hocr_files
from htr_worker.logging.logger import Log
from htr_worker.naming import (
    alto_name,
    converted_image_name,
    hocr_name_for_alto,
    pid_from_image_name,
)
from htr_worker.processor.exceptions import MissingPageSelectionError, PollTimeoutError
from htr_worker.processor.file_loader import FileLoader
from htr_worker.processor.models import (
    PageSelectionOptions,
    PollSummary,
    RepositoryOptions,
    SinglePageOptions,
    UploadOptions,
    UploadSummary,
)
from htr_worker.processor.staging import StagingArea, single_file
from htr_worker.tools.converters import AltoToHocrTransformer, ImageConverter
from htr_worker.tools.datastream_crud import DatastreamCrud, RepositoryTarget
from htr_worker.transkribus.client import FINISHED, TranskribusClient, build_transkribus_client
from htr_worker.transkribus.exceptions import ProcessExpiredError
from htr_worker.transkribus.throttle import Throttle


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def describe_conflicts(pid: str, htr_id: int, existing: list[PageRecord]) -> str:
    """Explain why a page is not uploaded again."""
    details = ", ".join(
        (
            "with the same model "
            if page.htr_id == htr_id
            else f"with another model ({page.htr_id}) "
        )
        + (
            "and is currently processing"
            if page.in_progress
            else "and HOCR datastreams have already been pushed"
        )
        for page in existing
    )
    return f"Page {pid} has already been uploaded to Transkribus {details}."


class Processor:
    """Orchestrates the Transkribus pipeline for Islandora pages.

    Batch: fetch JP2s -> convert -> submit -> (later) poll -> ALTO -> hOCR ->
    header/OCR processors -> push datastreams. The single-page flows serve the
    microservice and skip the repository round trip.

    Each instance owns one staging area keyed by a fresh run id; build a new
    processor per run when runs may overlap.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        page_repo: PageRepository,
        client: TranskribusClient,
        throttle: Throttle,
        crud: DatastreamCrud,
        image_converter: ImageConverter,
        hocr_transformer: AltoToHocrTransformer,
        file_loader: FileLoader,
        staging: StagingArea | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._page_repo = page_repo
        self._client = client
        self._throttle = throttle
        self._crud = crud
        self._image_converter = image_converter
        self._hocr_transformer = hocr_transformer
        self._file_loader = file_loader
        self._staging = staging if staging is not None else StagingArea(
            Path(settings.staging_root) if settings.staging_root else None
        )
        self._sleep = sleep
        self._clock = clock
        self._now = now

    @property
    def staging(self) -> StagingArea:
        return self._staging

    # Batch flow

    def process_document(self, options: UploadOptions) -> None:
        """Upload the selected pages, then poll until no page is left in progress."""
        self.upload_document(options)
        delay = self._settings.batch_initial_delay_seconds
        Log.info(f"Waiting {delay}s before checking progress")
        self._sleep(delay)

        timeout = self._settings.batch_poll_timeout_seconds
        deadline = self._clock() + timeout
        while self._page_repo.has_in_progress():
            if self._clock() >= deadline:
                raise PollTimeoutError(f"Pages still in progress after {timeout}s")
            self.check_progress(options)
            if self._page_repo.has_in_progress():
                self._sleep(self._settings.batch_poll_interval_seconds)

    def upload_document(self, options: UploadOptions) -> UploadSummary:
        """Fetch, convert and submit the selected pages' JP2 images."""
        target = self._target(options)
        with ExitStack() as stack:
            pid_file = self._pid_file(options, target, stack)
            jp2_directory = stack.enter_context(self._staging.directory("jp2s"))
            jpg_directory = stack.enter_context(self._staging.directory("jpgs"))
            self._crud.fetch_datastreams(target, pid_file, jp2_directory, "JP2")
            self.convert_images(jp2_directory, jpg_directory)
            return self.send_images(
                jpg_directory, options.htr_id, target.user, options.overwrite
            )

    def check_progress(self, options: RepositoryOptions) -> PollSummary:
        """Download finished results, publish hOCR and OCR, and record page transitions."""
        target = self._target(options)
        with ExitStack() as stack:
            alto_directory = stack.enter_context(self._staging.directory("altos"))
            hocr_directory = stack.enter_context(self._staging.directory("hocrs"))
            ocr_directory = stack.enter_context(self._staging.directory("ocrs"))

            summary = self.fetch_finished_results(alto_directory)
            if not summary.finished:
                self._page_repo.apply_transitions(summary.transitions)
                return summary

            self.convert_alto_to_hocr(alto_directory, hocr_directory)
            process_hocr_files(
                hocr_directory,
                [OcrGenerator(ocr_directory), HocrHeaderFixer(htr_ids=summary.htr_ids)],
            )
            self._crud.push_datastreams(target, hocr_directory)
            self._page_repo.apply_transitions(summary.transitions)
            self._crud.push_datastreams(target, ocr_directory)
        return summary

    def create_ocr_datastreams_from_hocr(self, options: PageSelectionOptions) -> None:
        """Regenerate OCR datastreams from the hOCR already stored in Islandora."""
        target = self._target(options)
        with ExitStack() as stack:
            pid_file = self._pid_file(options, target, stack)
            hocr_directory = stack.enter_context(self._staging.directory("hocrs"))
            ocr_directory = stack.enter_context(self._staging.directory("ocrs"))
            self._crud.fetch_datastreams(target, pid_file, hocr_directory, "HOCR")
            process_hocr_files(hocr_directory, [OcrGenerator(ocr_directory)])
            self._crud.push_datastreams(target, ocr_directory)

    # Single-page flows

    def process_single_page(self, file_uri: str, options: SinglePageOptions) -> bytes:
        """Run one image through Transkribus and return the finished hOCR."""
        source_name = self._file_loader.file_name(file_uri)
        source = self._file_loader.load(file_uri)
        with ExitStack() as stack:
            jp2_directory = stack.enter_context(self._staging.directory("jp2s"))
            jpg_directory = stack.enter_context(self._staging.directory("jpgs"))
            alto_directory = stack.enter_context(self._staging.directory("altos"))
            hocr_directory = stack.enter_context(self._staging.directory("hocrs"))

            (jp2_directory / source_name).write_bytes(source)
            self.convert_images(jp2_directory, jpg_directory)
            image = single_file(jpg_directory)
            page = self._submit(image, options.htr_id, pid=None, user=None)

            try:
                alto = self._wait_for_result(page.process_id)
            except (PollTimeoutError, ProcessExpiredError):
                self._page_repo.apply_transitions([PageTransition.expired(page.process_id)])
                raise
            self._save_alto(alto, alto_directory / alto_name(pid_from_image_name(image.name)))
            self._page_repo.apply_transitions(
                [PageTransition.finished(page.process_id, self._now())]
            )

            self.convert_alto_to_hocr(alto_directory, hocr_directory)
            process_hocr_files(
                hocr_directory,
                [HocrHeaderFixer(htr_id=options.htr_id, file_name=image.name)],
            )
            return single_file(hocr_directory).read_bytes()

    def create_single_page_ocr(self, file_uri: str) -> bytes:
        """Extract plain text from one hOCR file without calling Transkribus."""
        source_name = self._file_loader.file_name(file_uri)
        source = self._file_loader.load(file_uri)
        with ExitStack() as stack:
            hocr_directory = stack.enter_context(self._staging.directory("hocrs"))
            ocr_directory = stack.enter_context(self._staging.directory("ocrs"))
            (hocr_directory / source_name).write_bytes(source)
            process_hocr_files(hocr_directory, [OcrGenerator(ocr_directory)])
            return single_file(ocr_directory).read_bytes()

    # Stages

    def convert_images(self, source_directory: Path, jpg_directory: Path) -> None:
        Log.info("Converting jp2s to jpgs...")
        for source in _files(source_directory):
            self._image_converter.convert(
                source, jpg_directory / converted_image_name(source.name)
            )

    def send_images(
        self,
        jpg_directory: Path,
        htr_id: int,
        user: str | None,
        overwrite: bool = False,
    ) -> UploadSummary:
        """Submit every image in jpg_directory, one page record per submission.

        Without overwrite, a pid that already has a page in progress or
        downloaded is skipped.
        """
        Log.info("Uploading images to Transkribus...")
        summary = UploadSummary()
        for image in _files(jpg_directory):
            pid = pid_from_image_name(image.name)
            if not overwrite:
                existing = self._page_repo.find_live_by_pid(pid)
                if existing:
                    Log.warning(describe_conflicts(pid, htr_id, existing))
                    Log.warning("Run with the --overwrite flag to disregard this and re-upload them.")
                    summary.skipped.append(pid)
                    continue
            page = self._submit(image, htr_id, pid=pid, user=user)
            summary.submitted.append(page.process_id)
        Log.info(
            f"Submitted {len(summary.submitted)} pages, skipped {len(summary.skipped)}"
        )
        return summary

    def fetch_finished_results(self, alto_directory: Path) -> PollSummary:
        """Poll every in-progress page once and save the ALTO of finished ones.

        Expired processes are recorded as transitions and do not stop the pass.
        Nothing is persisted here.
        """
        Log.info("Checking for finished pages...")
        summary = PollSummary()
        for page in self._page_repo.find_in_progress():
            try:
                if self._client.get_status(page.process_id) != FINISHED:
                    summary.running.append(page.process_id)
                    continue
                Log.info(f"{page.pid} is done processing, downloading...")
                alto = self._client.get_alto_xml(page.process_id)
            except ProcessExpiredError:
                Log.warning(f"Transkribus process for page {page.pid} has expired.")
                summary.expired.append(page.process_id)
                summary.transitions.append(PageTransition.expired(page.process_id))
                continue
            self._save_alto(alto, alto_directory / alto_name(str(page.pid)))
            summary.finished.append(page.process_id)
            summary.htr_ids[str(page.pid)] = page.htr_id
            summary.transitions.append(PageTransition.finished(page.process_id, self._now()))
        return summary

    def convert_alto_to_hocr(self, alto_directory: Path, hocr_directory: Path) -> None:
        Log.info("Converting ALTO XML to hOCR...")
        for alto_file in _files(alto_directory):
            self._hocr_transformer.transform(
                alto_file, hocr_directory / hocr_name_for_alto(alto_file.name)
            )

    def _submit(self, image: Path, htr_id: int, *, pid: str | None, user: str | None) -> PageRecord:
        image_bytes = image.read_bytes()
        process_id = self._throttle.run_throttled(
            partial(self._client.submit, htr_id, image_bytes)
        )
        page = PageRecord(
            process_id=process_id,
            pid=pid,
            htr_id=htr_id,
            in_progress=True,
            user=user,
            uploaded=self._now(),
        )
        self._page_repo.add(page)
        Log.info(f"Submitted {image.name} as Transkribus process {process_id}")
        return page

    def _wait_for_result(self, process_id: int) -> ET.Element:
        timeout = self._settings.single_page_poll_timeout_seconds
        deadline = self._clock() + timeout
        while self._client.get_status(process_id) != FINISHED:
            if self._clock() >= deadline:
                raise PollTimeoutError(
                    f"Transkribus process {process_id} not finished after {timeout}s"
                )
            self._sleep(self._settings.single_page_poll_delay_seconds)
        return self._client.get_alto_xml(process_id)

    def _target(self, options: RepositoryOptions) -> RepositoryTarget:
        return RepositoryTarget(
            root=options.root or self._settings.islandora_drupal_root,
            user=options.user or self._settings.islandora_user,
            uri=options.uri or self._settings.islandora_uri,
        )

    def _pid_file(
        self,
        options: PageSelectionOptions,
        target: RepositoryTarget,
        stack: ExitStack,
    ) -> Path:
        if options.pid_file:
            return Path(options.pid_file).resolve()
        if not options.pid:
            raise MissingPageSelectionError("Either a pid or a pid file is required")
        pid_directory = stack.enter_context(self._staging.directory("pids"))
        pid_file = pid_directory / "pids.txt"
        self._crud.fetch_page_pids(target, options.pid, pid_file)
        return pid_file

    @staticmethod
    def _save_alto(alto: ET.Element, path: Path) -> None:
        ET.ElementTree(alto).write(path, encoding="utf-8", xml_declaration=True)


def _files(directory: Path) -> list[Path]:
    return sorted(path for path in directory.iterdir() if path.is_file())


def build_processor(
    settings: Settings,
    *,
    page_repo: PageRepository | None = None,
    client: TranskribusClient | None = None,
    throttle: Throttle | None = None,
    file_loader: FileLoader | None = None,
) -> Processor:
    """Build a Processor with all required adapters.

    Pass the shared repository, client, throttle and loader when several
    processors run side by side.
    """
    return Processor(
        settings=settings,
        page_repo=page_repo if page_repo is not None else PageRepository(),
        client=client if client is not None else build_transkribus_client(settings),
        throttle=throttle
        if throttle is not None
        else Throttle(settings.transkribus_submit_interval_seconds),
        crud=DatastreamCrud(settings.drush_command),
        image_converter=ImageConverter(settings.convert_command),
        hocr_transformer=AltoToHocrTransformer(
            settings.alto_to_hocr_sef_path, settings.xslt_command
        ),
        file_loader=file_loader
        if file_loader is not None
        else FileLoader(timeout_seconds=settings.transkribus_timeout_seconds),
    )
