from pathlib import Path

import pytest

SAMPLE_HOCR = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="en" lang="en">
  <head>
    <title></title>
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8"/>
  </head>
  <body>
    <div class="ocr_page" id="page_1" title="bbox 0 0 2000 3000">
      <div class="ocr_carea" id="block_1">
        <p class="ocr_par" id="par_1">
          <span class="ocr_line" id="line_1" title="bbox 100 100 900 160">
            <span class="ocrx_word" id="word_1_1">Item</span>
            <span class="ocrx_word" id="word_1_2">to</span>
            <span class="ocrx_word" id="word_1_3">Willm</span>
          </span>
          <span class="ocr_caption" id="caption_1">
            <span class="ocrx_word" id="word_c_1">ignored</span>
          </span>
          <span class="ocr_line" id="line_2" title="bbox 100 170 900 230">
            <span class="ocrx_word" id="word_2_1">for</span>
            <span class="ocrx_word" id="word_2_2"><strong>his</strong> labour</span>
          </span>
        </p>
        <p class="ocr_par" id="par_2">
          <span class="ocr_line" id="line_3" title="bbox 100 300 900 360">
            <span class="ocrx_word" id="word_3_1">xxs</span>
            <span class="ocrx_word" id="word_3_2">vjd</span>
          </span>
        </p>
      </div>
    </div>
  </body>
</html>
"""

SAMPLE_TEXT = "Item to Willm\nfor his labour\n\nxxs vjd"

SAMPLE_ALTO = (
    b'<?xml version="1.0" encoding="UTF-8"?>'
    b'<alto xmlns="http://www.loc.gov/standards/alto/ns-v4#">'
    b"<Layout><Page ID=\"p1\"><PrintSpace><TextBlock ID=\"b1\"><TextLine ID=\"l1\">"
    b'<String CONTENT="Item"/></TextLine></TextBlock></PrintSpace></Page></Layout>'
    b"</alto>"
)


@pytest.fixture()
def sample_hocr() -> str:
    return SAMPLE_HOCR


@pytest.fixture()
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture()
def sample_alto() -> bytes:
    return SAMPLE_ALTO


@pytest.fixture()
def hocr_file(tmp_path: Path) -> Path:
    """A known hOCR document staged the way drush names it."""
    directory = tmp_path / "hocrs"
    directory.mkdir()
    path = directory / "islandora_42_HOCR.shtml"
    path.write_text(SAMPLE_HOCR, encoding="utf-8")
    return path
