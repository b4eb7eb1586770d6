"""PDF text extraction with typographic heading hints."""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pymupdf  # PyMuPDF

from examgen.errors import MalformedDocument

logger = logging.getLogger(__name__)

_NUMBERED_HEADING = re.compile(r"^(\d+\.?)+\s+")
_KEYWORD_HEADING = re.compile(r"^(?i:unit|chapter|module|section|part)\s*-?\s*(\d+|[IVXLC]+)\b")


@dataclass
class ExtractedDocument:
    text: str
    page_count: int
    page_texts: List[str] = field(default_factory=list)
    heading_hints: Dict[str, int] = field(default_factory=dict)


def normalize_line(text: str) -> str:
    """Collapse all runs of whitespace to single spaces."""
    return " ".join(text.split())


def _normalize_text(text: str) -> str:
    text = text.replace("\x00", " ")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    return text.strip()


def detect_heading(block: dict) -> Optional[tuple[int, str]]:
    """
    Detect if a text block is a heading based on its first span's font.

    Args:
        block: PyMuPDF text block from ``page.get_text("dict")``

    Returns:
        Tuple of (heading_level, text) or None
    """
    if block.get("type") != 0:  # Only text blocks
        return None

    lines = block.get("lines", [])
    if not lines:
        return None

    spans = lines[0].get("spans", [])
    if not spans:
        return None

    first_span = spans[0]
    font_size = first_span.get("size", 0)
    text = normalize_line(first_span.get("text", ""))

    if len(text) < 3:
        return None

    is_bold = "bold" in first_span.get("font", "").lower() or bool(first_span.get("flags", 0) & 16)
    is_large = font_size > 12
    is_title_case = text[0].isupper()

    if _KEYWORD_HEADING.match(text):
        return (1, text)

    if _NUMBERED_HEADING.match(text) and (is_bold or is_large):
        # 1 = h1, 1.1 = h2, 1.1.1 = h3
        dots = text.split()[0].rstrip(".").count(".")
        return (min(dots + 1, 3), text)

    if is_bold and is_large and is_title_case:
        if font_size > 16:
            return (1, text)
        elif font_size > 14:
            return (2, text)
        else:
            return (3, text)

    return None


def _block_text(block: dict) -> str:
    lines = []
    for line in block.get("lines", []):
        line_text = "".join(span.get("text", "") for span in line.get("spans", []))
        if line_text.strip():
            lines.append(line_text.strip())
    return "\n".join(lines)


def _extract_page(page) -> tuple[str, Dict[str, int]]:
    """Return the page text (blocks separated by blank lines) and its heading hints."""
    blocks = page.get_text("dict", sort=True)["blocks"]
    parts: List[str] = []
    hints: Dict[str, int] = {}

    for block in blocks:
        if block.get("type") != 0:
            continue
        text = _block_text(block)
        if not text:
            continue
        parts.append(text)

        heading = detect_heading(block)
        if heading:
            level, heading_text = heading
            hints.setdefault(heading_text, level)

    return _normalize_text("\n\n".join(parts)), hints


def extract_pdf(data: bytes) -> ExtractedDocument:
    """
    Extract normalized text from PDF bytes.

    Pages are kept in order and joined by a blank line. Every text block of a
    page becomes its own paragraph, so isolated heading lines stay isolated.

    Args:
        data: Raw PDF bytes (never modified)

    Returns:
        ExtractedDocument with full text, per-page texts and heading hints

    Raises:
        MalformedDocument: If the bytes are not a readable, unencrypted PDF with pages
    """
    if not data:
        raise MalformedDocument("Uploaded file is empty")

    try:
        doc = pymupdf.open(stream=bytes(data), filetype="pdf")
    except Exception as e:
        logger.warning(f"Could not open PDF ({len(data)} bytes): {e}")
        raise MalformedDocument("Uploaded file is not a readable PDF") from e

    try:
        if doc.needs_pass:
            raise MalformedDocument("PDF is password protected")
        if doc.page_count == 0:
            raise MalformedDocument("PDF has no pages")

        page_texts: List[str] = []
        heading_hints: Dict[str, int] = {}
        for index in range(doc.page_count):
            page_text, page_hints = _extract_page(doc[index])
            page_texts.append(page_text)
            for text, level in page_hints.items():
                heading_hints.setdefault(text, level)

    except MalformedDocument:
        raise
    except Exception as e:
        logger.warning(f"Failed to read PDF content: {e}")
        raise MalformedDocument("PDF content could not be parsed") from e
    finally:
        doc.close()

    text = "\n\n".join(page_texts)
    logger.info(
        f"Extracted {len(text)} characters from {len(page_texts)} pages "
        f"({len(heading_hints)} heading hints)"
    )
    return ExtractedDocument(
        text=text,
        page_count=len(page_texts),
        page_texts=page_texts,
        heading_hints=heading_hints,
    )
