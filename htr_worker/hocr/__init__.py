from htr_worker.hocr.base import HocrProcessor, process_hocr_files
from htr_worker.hocr.header_fixer import HocrHeaderFixer
from htr_worker.hocr.ocr_generator import OcrGenerator

__all__ = ["HocrHeaderFixer", "HocrProcessor", "OcrGenerator", "process_hocr_files"]
