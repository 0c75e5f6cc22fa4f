from pathlib import Path

from htr_worker.tools.runner import run_tool


class ImageConverter:
    """Converts one raster image into the format Transkribus accepts (ImageMagick)."""

    def __init__(self, convert_command: str = "convert") -> None:
        self._convert = convert_command

    def convert(self, source: Path, destination: Path) -> None:
        run_tool([self._convert, str(source), str(destination)])


class AltoToHocrTransformer:
    """Transforms ALTO XML into hOCR with a compiled XSLT stylesheet (xslt3)."""

    def __init__(self, stylesheet_path: str, xslt_command: str = "xslt3") -> None:
        self._stylesheet_path = stylesheet_path
        self._xslt = xslt_command

    def transform(self, source: Path, destination: Path) -> None:
        run_tool(
            [
                self._xslt,
                f"-xsl:{self._stylesheet_path}",
                f"-s:{source}",
                f"-o:{destination}",
            ]
        )
