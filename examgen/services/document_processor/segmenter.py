"""Section segmentation over extracted material text.

Headings are found line by line with ``classify_line``, a pure function so the
heuristics can be table-tested. Everything that is not a heading belongs to the
nearest preceding section; no text is ever dropped.
"""
import logging
import re
from typing import Dict, List, Optional

from examgen.models.materials import Section
from examgen.services.document_processor.extractor import normalize_line

logger = logging.getLogger(__name__)

UNTITLED_PLACEHOLDER = "Untitled Document"
MAX_HEADING_WORDS = 12
MAX_HEADING_DEPTH = 3

# A keyword heading must be followed by the end of the line, a separator or a
# capitalized title, so wrapped prose like "Part 2 of the proof" stays body text
_HEADING_TAIL = r"(?=\s*$|\s*[:.\-)]|\s+[A-Z(\"'])"
_UNIT_HEADING = re.compile(r"^(?i:unit|chapter|module|part)\s*-?\s*(\d+|[IVXLC]+)" + _HEADING_TAIL)
_SUBSECTION_HEADING = re.compile(r"^(?i:section|lecture|topic)\s+\d+(\.\d+)*" + _HEADING_TAIL)
_NUMBERED_HEADING = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+[A-Z]")
_BULLET = re.compile(r"^([\u2022\u25aa\u25cf\u25e6\u00b7\u2013\u2014*\-]|\(?[a-zA-Z0-9]{1,2}\))\s*")
_PAGE_NUMBER = re.compile(r"^(page\s+)?\d+(\s*(of|/)\s*\d+)?$", re.IGNORECASE)
_SENTENCE_END = (".", "!", "?", ";", ",")
_MINOR_WORDS = {"a", "an", "and", "as", "at", "by", "for", "in", "of", "on", "or", "the", "to", "vs", "with"}


def _is_title_case(line: str) -> bool:
    words = line.split()
    if not words or not words[0][0].isupper():
        return False
    for word in words[1:]:
        head = word.lstrip("(\"'")
        if not head or not head[0].isalpha():
            continue
        if head.lower() in _MINOR_WORDS:
            continue
        if not head[0].isupper():
            return False
    return True


def _is_all_caps(line: str) -> bool:
    letters = [c for c in line if c.isalpha()]
    return len(letters) >= 2 and all(c.isupper() for c in letters)


def classify_line(
    line: str,
    isolated: bool,
    hint_level: Optional[int] = None,
    max_length: int = 80,
) -> Optional[int]:
    """
    Decide whether a single line is a heading.

    Args:
        line: The line text
        isolated: True when the line has a blank line (or document edge) on both sides
        hint_level: Heading level suggested by font information, if any
        max_length: Longest line that may still be a heading

    Returns:
        Heading level (1 is the outermost) or None for body text
    """
    text = line.strip()
    if not text or len(text) > max_length:
        return None
    if _PAGE_NUMBER.match(text) or _BULLET.match(text):
        return None
    if text.endswith(_SENTENCE_END):
        return None

    # Structural keywords are headings wherever they appear
    if _UNIT_HEADING.match(text):
        return 1
    if _SUBSECTION_HEADING.match(text):
        return 2

    if not isolated or len(text.split()) > MAX_HEADING_WORDS:
        return None

    if hint_level is not None:
        return max(1, min(hint_level, MAX_HEADING_DEPTH))

    numbered = _NUMBERED_HEADING.match(text)
    if numbered:
        depth = numbered.group(1).count(".") + 1
        return min(depth, MAX_HEADING_DEPTH)

    if _is_all_caps(text):
        return 1
    if _is_title_case(text):
        return 2

    return None


def _line_pages(text: str, page_texts: List[str]) -> List[int]:
    """Map every line of ``text`` to its 1-based page number."""
    line_count = text.count("\n") + 1
    if not page_texts or "\n\n".join(page_texts) != text:
        return [1] * line_count

    pages: List[int] = []
    for index, page_text in enumerate(page_texts):
        if index > 0:
            # Blank separator line between pages
            pages.append(index + 1)
        pages.extend([index + 1] * (page_text.count("\n") + 1))
    return pages


def _paragraphs(lines: List[str]) -> List[str]:
    paragraphs: List[str] = []
    current: List[str] = []
    for line in lines:
        if line.strip():
            current.append(line.strip())
        elif current:
            paragraphs.append("\n".join(current))
            current = []
    if current:
        paragraphs.append("\n".join(current))
    return paragraphs


class _SectionBuilder:
    def __init__(self, title: str, level: int, page: int, heading_line: Optional[str] = None):
        self.title = title
        self.level = level
        self.page = page
        self.heading_line = heading_line
        self.lines: List[str] = []

    def has_text(self) -> bool:
        return self.heading_line is not None or any(line.strip() for line in self.lines)

    def build(self, index: int) -> Section:
        body = self.lines
        content_lines = list(self.lines)
        if self.heading_line is not None:
            content_lines.insert(0, self.heading_line)
        else:
            # Untitled leading run: its first non-empty line serves as the title
            for position, line in enumerate(body):
                if line.strip():
                    body = body[position + 1:]
                    break

        return Section(
            id=f"section-{index}",
            title=self.title,
            level=self.level,
            page=self.page,
            text_blocks=_paragraphs(body),
            content="\n".join(content_lines).strip(),
        )


def segment(
    text: str,
    page_texts: Optional[List[str]] = None,
    heading_hints: Optional[Dict[str, int]] = None,
    max_heading_length: int = 80,
) -> List[Section]:
    """
    Partition extracted text into ordered sections.

    Args:
        text: Full extracted text
        page_texts: Per-page texts whose blank-line join equals ``text``; used for
            page numbers and ignored if it does not line up
        heading_hints: Normalized line text -> heading level from font analysis
        max_heading_length: Longest line that may be classified as a heading

    Returns:
        Sections in document order; never empty
    """
    hints = heading_hints or {}
    lines = text.split("\n")
    pages = _line_pages(text, page_texts or [])

    builders: List[_SectionBuilder] = []
    leading: Optional[_SectionBuilder] = None

    for index, line in enumerate(lines):
        stripped = line.strip()
        previous_blank = index == 0 or not lines[index - 1].strip()
        next_blank = index == len(lines) - 1 or not lines[index + 1].strip()

        level = None
        if stripped:
            level = classify_line(
                stripped,
                isolated=previous_blank and next_blank,
                hint_level=hints.get(normalize_line(stripped)),
                max_length=max_heading_length,
            )

        if level is not None:
            builders.append(_SectionBuilder(stripped, level, pages[index], heading_line=line))
            continue

        if builders:
            builders[-1].lines.append(line)
            continue

        if leading is None:
            if not stripped:
                continue
            leading = _SectionBuilder(stripped, 1, pages[index])
        leading.lines.append(line)

    if leading is not None and leading.has_text():
        builders.insert(0, leading)

    if not builders:
        builders.append(_SectionBuilder(UNTITLED_PLACEHOLDER, 1, 1))

    sections = [builder.build(i + 1) for i, builder in enumerate(builders)]
    logger.info(f"Segmented {len(text)} characters into {len(sections)} sections")
    return sections


def render_markdown(sections: List[Section]) -> str:
    """Render sections as Markdown: one heading per section followed by its paragraphs."""
    parts: List[str] = []
    for section in sections:
        parts.append(f"{'#' * min(section.level, 6)} {section.title}")
        parts.extend(section.text_blocks)
    return "\n\n".join(parts) + "\n"
