"""
Text normalization helpers shared by the extractor, resolvers and refiner.

Vietnamese queries arrive with or without diacritics, in any case, and with
composed or decomposed Unicode. Everything that compares text goes through
``fold`` (case + Unicode + whitespace) and, for accent-insensitive matching,
``strip_accents``.
"""
import copy
import logging
import re
import unicodedata
from typing import Optional, Tuple

import lxml.html
from lxml import etree

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_SPACE_RE = re.compile(r"[ \t\u00a0]+")


def fold(text: str) -> str:
    """Lower-case, NFC-normalize and collapse whitespace."""
    if not text:
        return ""
    text = unicodedata.normalize("NFC", text).lower()
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_accents(text: str) -> str:
    """
    Remove Vietnamese diacritics.

    Examples:
        "liều dùng" → "lieu dung"
        "Đường uống" → "Duong uong"
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
    return stripped.replace("đ", "d").replace("Đ", "D")


def plain_fold(text: str) -> str:
    """Fold and strip accents; used for drug names and unaccented queries."""
    return strip_accents(fold(text))


def has_diacritics(text: str) -> bool:
    return strip_accents(text) != text


def phrase_pattern(phrase: str) -> "re.Pattern[str]":
    """
    Word-bounded pattern for a trigger phrase.

    A trailing English plural ("contraindications", "doses") still matches.
    """
    return re.compile(r"(?<!\w)" + re.escape(phrase) + r"(?:e?s)?(?!\w)")


def find_phrase(phrase: str, text: str) -> Optional[Tuple[int, int]]:
    """Return the span of the first word-bounded occurrence of ``phrase``."""
    if not phrase:
        return None
    match = phrase_pattern(phrase).search(text)
    return match.span() if match else None


def mask_span(text: str, span: Tuple[int, int]) -> str:
    """Blank out a span while keeping offsets stable."""
    start, end = span
    return text[:start] + " " * (end - start) + text[end:]


class FoldedQuery:
    """
    A query prepared for phrase matching.

    When the user typed no diacritics at all, phrases are compared in their
    accent-stripped form so "lieu dung" matches "liều dùng". Accented queries
    are matched exactly (after folding) to keep "thận" and "thần" apart.
    """

    def __init__(self, query: str):
        self.original = query or ""
        self.text = fold(self.original)
        self.plain = not has_diacritics(self.text)

    def prepare(self, phrase: str) -> str:
        phrase = fold(phrase)
        return strip_accents(phrase) if self.plain else phrase

    def search(self, phrase: str, text: Optional[str] = None) -> Optional[Tuple[int, int]]:
        return find_phrase(self.prepare(phrase), self.text if text is None else text)

    def contains(self, phrase: str) -> bool:
        return self.search(phrase) is not None


def contains_keyword(keyword: str, text: str) -> bool:
    """Accent-insensitive, word-bounded keyword test against arbitrary text."""
    return find_phrase(plain_fold(keyword), plain_fold(text)) is not None


# Elements rendered on their own line when a cell is flattened
_BLOCK_TAGS = frozenset({
    "p", "div", "ul", "ol", "table", "tr", "details", "summary",
    "h1", "h2", "h3", "h4", "h5", "h6",
})


def html_fragment(html: str):
    """
    Parse cell markup into a ``<div>`` wrapper element.

    The HTML parser is lenient: a bare comparison sign ("ClCr <10") stays
    text, and numeric/named entities are decoded once.

    Raises:
        etree.ParserError, ValueError: markup lxml cannot parse
    """
    return lxml.html.fragment_fromstring(html, create_parent="div")


def element_text(element) -> str:
    """
    Plain text of an element (its own tail excluded).

    ``<br>`` and block elements become line breaks, ``<li>`` becomes a
    "• " bullet line. The element itself is not modified.
    """
    element = copy.deepcopy(element)
    for node in element.iter():
        if not isinstance(node.tag, str):
            continue
        tag = node.tag.lower()
        if tag == "br":
            node.tail = "\n" + (node.tail or "")
        elif tag == "li":
            node.text = "\n• " + (node.text or "")
            node.tail = "\n" + (node.tail or "")
        elif tag in _BLOCK_TAGS:
            node.text = "\n" + (node.text or "")
            node.tail = "\n" + (node.tail or "")
    return normalize_whitespace(element.text_content())


def strip_html(html: str) -> str:
    """Convert cell markup to plain text with one logical line per block."""
    if not html:
        return ""
    try:
        root = html_fragment(html)
    except (etree.ParserError, ValueError) as e:
        logger.warning(f"Could not parse cell markup, using it as text: {e}")
        return normalize_whitespace(html)
    return element_text(root)


def normalize_whitespace(text: str) -> str:
    """Collapse inline whitespace, strip each line, drop blank lines."""
    if not text:
        return ""
    lines = (_INLINE_SPACE_RE.sub(" ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line and line != "•")


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters on a word boundary."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    cut = text[:limit - 1].rsplit(" ", 1)[0].rstrip(",;:")
    return cut + "…"
