import xml.etree.ElementTree as ET
from pathlib import Path

from htr_worker.hocr.base import HocrProcessor, xhtml
from htr_worker.logging.logger import Log
from htr_worker.naming import ocr_name_for_hocr

LINE_CLASS = "ocr_line"


def extract_text(document: ET.ElementTree) -> str:
    """Plain text of an hOCR document.

    One output line per ``ocr_line`` span, its word spans joined by single
    spaces, and a blank line after every paragraph.
    """
    lines: list[str] = []
    for paragraph in document.getroot().iter(xhtml("p")):
        for line in paragraph.findall(xhtml("span")):
            if line.get("class") != LINE_CLASS:
                continue
            words = ["".join(word.itertext()) for word in line.findall(xhtml("span"))]
            lines.append(" ".join(words))
        lines.append("")
    return "\n".join(lines).strip()


class OcrGenerator(HocrProcessor):
    """Writes the plain text of each hOCR file to a sibling OCR file in ocr_directory."""

    def __init__(self, ocr_directory: Path) -> None:
        self._ocr_directory = ocr_directory

    def init(self) -> None:
        Log.info("Generating OCR files from hOCR files...")
        self._ocr_directory.mkdir(parents=True, exist_ok=True)

    def process(self, hocr_file: Path, document: ET.ElementTree) -> None:
        ocr_file = self._ocr_directory / ocr_name_for_hocr(hocr_file.name)
        ocr_file.write_text(extract_text(document), encoding="utf-8")
