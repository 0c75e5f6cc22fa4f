import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from pathlib import Path

from htr_worker.hocr.base import HocrProcessor, xhtml
from htr_worker.logging.logger import Log
from htr_worker.naming import image_name_for_hocr, pid_from_hocr_name

_DOCTYPE = re.compile(r"<!DOCTYPE[^>\[]*(\[.*?\])?\s*>", re.IGNORECASE | re.DOTALL)


def read_doctype(hocr_file: Path) -> str | None:
    """The document type declaration of a file, which ElementTree does not keep."""
    text = hocr_file.read_text(encoding="utf-8")
    root_start = text.find("<html")
    match = _DOCTYPE.search(text, 0, root_start if root_start != -1 else len(text))
    return match.group(0) if match else None


class HocrHeaderFixer(HocrProcessor):
    """Rewrites the hOCR head: image title and an ocr-system provenance marker.

    The model id comes from ``htr_id`` when one model produced every file, or
    from ``htr_ids`` (pid to model id) when it varies per page. The file is
    saved back in place as UTF-8 without a byte order mark, keeping its
    DOCTYPE.
    """

    def __init__(
        self,
        htr_id: int | None = None,
        file_name: str | None = None,
        htr_ids: Mapping[str, int] | None = None,
    ) -> None:
        self._htr_id = htr_id
        self._file_name = file_name
        self._htr_ids = htr_ids or {}

    def init(self) -> None:
        Log.info("Fixing hOCR file headers...")

    def process(self, hocr_file: Path, document: ET.ElementTree) -> None:
        head = document.getroot().find(xhtml("head"))
        if head is None:
            head = ET.Element(xhtml("head"))
            document.getroot().insert(0, head)

        title = head.find(xhtml("title"))
        if title is None:
            title = ET.SubElement(head, xhtml("title"))
        title.text = "Image: " + (self._file_name or image_name_for_hocr(hocr_file.name))

        ET.SubElement(
            head,
            xhtml("meta"),
            {"name": "ocr-system", "content": self._ocr_system(hocr_file)},
        )

        doctype = read_doctype(hocr_file)
        ET.indent(document)
        with open(hocr_file, "wb") as out:
            out.write(b"<?xml version='1.0' encoding='utf-8'?>\n")
            if doctype:
                out.write(doctype.encode("utf-8") + b"\n")
            document.write(out, encoding="utf-8")

    def _ocr_system(self, hocr_file: Path) -> str:
        htr_id = self._htr_id
        if htr_id is None:
            htr_id = self._htr_ids.get(pid_from_hocr_name(hocr_file.name))
        if htr_id is None:
            return "Transkribus"
        return f"Transkribus-HtrId:{htr_id}"
