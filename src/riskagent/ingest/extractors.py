"""Best-effort PDF text extraction.

Every public function here degrades instead of raising: a document that cannot
be opened, or a page that cannot be read, produces a bracketed placeholder
string in place of its text. Only a missing byte buffer is treated as a
caller error.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence

from pdfminer.high_level import extract_pages
from pdfminer.layout import LAParams, LTChar, LTContainer, LTPage, LTTextLine
from PyPDF2 import PdfReader

from riskagent.errors import InvalidArgumentError

LOGGER = logging.getLogger(__name__)

NO_TEXT_IN_PAGE = "[No text content found in page]"
NO_TEXT_IN_PDF = "[No text content found in PDF]"
EXTRACTION_FAILED_PREFIX = "[PDF text extraction failed: "
PAGE_ERROR_PREFIX = "[Error extracting page "
FIRST_PAGE_ERROR_PREFIX = "[Error extracting first page text: "

_PLACEHOLDER_PREFIXES = (
    NO_TEXT_IN_PAGE,
    NO_TEXT_IN_PDF,
    EXTRACTION_FAILED_PREFIX,
    PAGE_ERROR_PREFIX,
    FIRST_PAGE_ERROR_PREFIX,
)

_TJ_RE = re.compile(r"\(([^)]+)\)\s*Tj", re.IGNORECASE)
_TJ_ARRAY_RE = re.compile(r"\[\s*\(([^)]+)\)\s*\]\s*TJ", re.IGNORECASE)
_READABLE_RE = re.compile(r"\([A-Za-z0-9\s]+\)")


class Glyph(Protocol):
    x0: float
    y0: float

    def get_text(self) -> str:
        ...


def is_placeholder(text: str) -> bool:
    """Return ``True`` when ``text`` is a diagnostic marker rather than page content."""

    return text.startswith(_PLACEHOLDER_PREFIXES)


def join_words(lines: Iterable[str]) -> str:
    """Rebuild page text from layout lines as single-space separated words."""

    words: List[str] = []
    for line in lines:
        words.extend(line.split())
    return " ".join(words)


def order_glyphs(glyphs: Iterable[Glyph]) -> str:
    """Concatenate glyph values ordered bottom edge first, then left edge."""

    ordered = sorted(glyphs, key=lambda glyph: (glyph.y0, glyph.x0))
    return "".join(glyph.get_text() for glyph in ordered)


def extract_raw_text(data: bytes) -> str:
    """Salvage text operands straight from the raw content streams."""

    try:
        content = data.decode("utf-8", errors="replace")
        extracted: List[str] = []
        extracted.extend(match.group(1) for match in _TJ_RE.finditer(content))
        extracted.extend(match.group(1) for match in _TJ_ARRAY_RE.finditer(content))
        for match in _READABLE_RE.finditer(content):
            text = match.group(0).strip("()")
            if len(text) > 2 and text not in extracted:
                extracted.append(text)
        # dict preserves first-seen order
        return " ".join(dict.fromkeys(extracted))
    except Exception as error:  # pragma: no cover - defensive guard
        LOGGER.debug("Raw PDF text extraction failed: %s", error)
        return ""


def _walk(component: object) -> Iterator[object]:
    yield component
    if isinstance(component, LTContainer):
        for child in component:
            yield from _walk(child)


def _require_bytes(data: Optional[bytes]) -> bytes:
    if not data:
        raise InvalidArgumentError("PDF bytes cannot be null or empty", argument="data")
    return data


class PdfTextExtractor:
    """Extract page text trying structured, word and glyph strategies in turn."""

    def __init__(self, laparams: Optional[LAParams] = None) -> None:
        self.laparams = laparams or LAParams()

    def extract_text_from_all_pages(self, data: bytes) -> List[str]:
        data = _require_bytes(data)
        try:
            reader = self._open(data)
            page_total = len(reader.pages)
        except Exception as error:
            LOGGER.warning("Unable to open PDF document: %s", error)
            return [f"{EXTRACTION_FAILED_PREFIX}{error}]"]

        pages: List[str] = []
        for index in range(page_total):
            try:
                text = self._extract_page_text(reader, data, index)
            except Exception as error:
                LOGGER.warning("Failed to extract text from PDF page %s: %s", index + 1, error)
                text = f"{PAGE_ERROR_PREFIX}{index + 1}: {error}]"
            pages.append(text if text is not None else NO_TEXT_IN_PAGE)
        LOGGER.debug("Extracted text from %s PDF pages", len(pages))
        return pages

    def extract_first_page_text(self, data: bytes) -> str:
        data = _require_bytes(data)
        try:
            reader = self._open(data)
            page_total = len(reader.pages)
        except Exception as error:
            LOGGER.warning("Unable to open PDF document: %s", error)
            return f"{EXTRACTION_FAILED_PREFIX}{error}]"

        if page_total == 0:
            return ""

        try:
            text = self._extract_page_text(reader, data, 0)
            if text is not None:
                return text
            raw_text = extract_raw_text(data)
            if raw_text.strip():
                return raw_text
            return NO_TEXT_IN_PDF
        except Exception as error:
            LOGGER.warning("Failed to extract text from first PDF page: %s", error)
            return f"{FIRST_PAGE_ERROR_PREFIX}{error}]"

    def get_page_count(self, data: bytes) -> int:
        data = _require_bytes(data)
        try:
            return len(self._open(data).pages)
        except Exception as error:
            LOGGER.debug("Unable to count PDF pages: %s", error)
            return 0

    def _open(self, data: bytes) -> PdfReader:
        # strict=False tolerates broken xref tables and missing font resources
        return PdfReader(io.BytesIO(data), strict=False)

    def _extract_page_text(self, reader: PdfReader, data: bytes, index: int) -> Optional[str]:
        page = reader.pages[index]
        text = page.extract_text() or ""
        if text.strip():
            return text

        layout = self._analyse_layout(data, index)
        if layout is None:
            return None

        words = self._word_text(layout)
        if words:
            return words

        glyphs = self._glyph_text(layout)
        if glyphs.strip():
            return glyphs
        return None

    def _analyse_layout(self, data: bytes, index: int) -> Optional[LTPage]:
        try:
            for layout in extract_pages(io.BytesIO(data), page_numbers=[index], laparams=self.laparams):
                return layout
        except Exception as error:
            LOGGER.debug("Layout analysis failed for page %s: %s", index + 1, error)
        return None

    def _word_text(self, layout: LTPage) -> str:
        try:
            lines = [item.get_text() for item in _walk(layout) if isinstance(item, LTTextLine)]
            return join_words(lines)
        except Exception as error:
            LOGGER.debug("Word extraction failed: %s", error)
            return ""

    def _glyph_text(self, layout: LTPage) -> str:
        try:
            glyphs: Sequence[LTChar] = [item for item in _walk(layout) if isinstance(item, LTChar)]
            return order_glyphs(glyphs)
        except Exception as error:
            LOGGER.debug("Letter extraction failed: %s", error)
            return ""


_DEFAULT_EXTRACTOR = PdfTextExtractor()


def extract_text_from_all_pages(data: bytes) -> List[str]:
    return _DEFAULT_EXTRACTOR.extract_text_from_all_pages(data)


def extract_first_page_text(data: bytes) -> str:
    return _DEFAULT_EXTRACTOR.extract_first_page_text(data)


def get_page_count(data: bytes) -> int:
    return _DEFAULT_EXTRACTOR.get_page_count(data)
