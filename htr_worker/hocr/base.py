import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from htr_worker.logging.logger import Log

XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"

ET.register_namespace("", XHTML_NAMESPACE)


def xhtml(tag: str) -> str:
    """Qualified name of an XHTML element, as ElementTree spells it."""
    return f"{{{XHTML_NAMESPACE}}}{tag}"


class HocrProcessor(ABC):
    """Contract for steps applied to every hOCR file of a batch."""

    @abstractmethod
    def init(self) -> None:
        """Prepare for a batch. Called once before any file is processed."""

    @abstractmethod
    def process(self, hocr_file: Path, document: ET.ElementTree) -> None:
        """Handle one file, given the document already parsed from it."""


def process_hocr_files(directory: Path, processors: Sequence[HocrProcessor]) -> int:
    """Parse each hOCR file in directory once and hand it to every processor in order.

    Returns:
        Number of files processed.
    """
    for processor in processors:
        processor.init()
    count = 0
    for hocr_file in sorted(directory.iterdir()):
        if not hocr_file.is_file():
            continue
        document = ET.parse(hocr_file)
        for processor in processors:
            processor.process(hocr_file, document)
        count += 1
    Log.debug(f"Processed {count} hOCR files in {directory}")
    return count
