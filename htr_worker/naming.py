"""File naming conventions shared by the export tool and the pipeline stages.

drush writes datastreams as ``<pid>_<DSID>.<ext>`` and reads them back the same
way, so every stage only swaps the ``_<DSID>.<ext>`` suffix.
"""

from pathlib import Path

JPG_SUFFIX = "_JP2.jpg"
ALTO_SUFFIX = "_ALTO.xml"
HOCR_SUFFIX = "_HOCR.shtml"
OCR_SUFFIX = "_OCR.asc"


def replace_suffix(name: str, old: str, new: str) -> str:
    """Swap a datastream suffix; names without it keep their stem and gain the new one."""
    if name.endswith(old):
        return name[: -len(old)] + new
    return Path(name).stem + new


def pid_from_image_name(name: str) -> str:
    if name.endswith(JPG_SUFFIX):
        return name[: -len(JPG_SUFFIX)]
    return Path(name).stem


def converted_image_name(source_name: str) -> str:
    return Path(source_name).stem + ".jpg"


def alto_name(pid: str) -> str:
    return pid + ALTO_SUFFIX


def hocr_name_for_alto(name: str) -> str:
    return replace_suffix(name, ALTO_SUFFIX, HOCR_SUFFIX)


def image_name_for_hocr(name: str) -> str:
    return replace_suffix(name, HOCR_SUFFIX, JPG_SUFFIX)


def ocr_name_for_hocr(name: str) -> str:
    return replace_suffix(name, HOCR_SUFFIX, OCR_SUFFIX)


def pid_from_hocr_name(name: str) -> str:
    if name.endswith(HOCR_SUFFIX):
        return name[: -len(HOCR_SUFFIX)]
    return Path(name).stem
