"""
Content refiner: narrow a raw cell to the part the question is about.

Cells come in two shapes:
- Flat prose (possibly with <br>, <p>, <li> markup)
- Nested sections: <details><summary>Title</summary>...</details> blocks or
  Bootstrap accordion items (accordion-header/button + accordion-body)

Modes:
    passthrough  flat cell, no context → markup stripped, otherwise unchanged
    summary      nested cell, no context → numbered titles + short snippets
    sections     nested cell, context → only sections mentioning the context
    sentences    context → clauses mentioning a context keyword
    full         context matched nothing → whole flattened cell

Output text is always markup-free and whitespace-normalized.
"""
import copy
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from lxml import etree

from pedmed.core.config import Settings, settings as default_settings
from pedmed.extraction.cell_extractor import CellData
from pedmed.retrieval.query_context import QueryContext, extract_query_context
from pedmed.utils.text import (
    contains_keyword,
    element_text,
    fold,
    html_fragment,
    normalize_whitespace,
    strip_html,
    truncate,
)

logger = logging.getLogger(__name__)

_NESTED_MARKERS = ("<details", "accordion")

_ACCORDION_ITEM = './/*[contains(concat(" ", normalize-space(@class), " "), " accordion-item ")]'
_HAS_CLASS = './/*[contains(concat(" ", normalize-space(@class), " "), " {} ")]'

# Sentence terminators, semicolons, colons and comma/slash-delimited clauses
_CLAUSE_SPLIT_RE = re.compile(r"[.!?](?=\s|$)|;|:\s|,\s|\s/\s|\n")


@dataclass(frozen=True)
class ParsedSection:
    """One collapsible (title, detail) block of a nested cell."""
    title: str
    detail: str

    def mentions(self, keyword: str) -> bool:
        return contains_keyword(keyword, self.title) or contains_keyword(keyword, self.detail)


@dataclass(frozen=True)
class RefinedContent:
    text: str
    narrowed: bool
    mode: str
    sections: Tuple[ParsedSection, ...] = field(default_factory=tuple)


def _inline_text(text: str) -> str:
    return " ".join(text.split())


def _details_body(details) -> str:
    """Text of a <details> block without its <summary> (the summary tail stays)."""
    body = copy.deepcopy(details)
    body.find("summary").drop_tree()
    return element_text(body)


def _details_sections(root) -> List[ParsedSection]:
    sections = []
    for details in root.xpath(".//details[not(ancestor::details)]"):
        summary = details.find("summary")
        if summary is None:
            continue
        sections.append(ParsedSection(
            title=_inline_text(summary.text_content()),
            detail=_details_body(details),
        ))
    return sections


def _first_with_class(element, *class_names):
    for class_name in class_names:
        found = element.xpath(_HAS_CLASS.format(class_name))
        if found:
            return found[0]
    return None


def _accordion_sections(root) -> List[ParsedSection]:
    sections = []
    for item in root.xpath(_ACCORDION_ITEM):
        header = _first_with_class(item, "accordion-button", "accordion-header")
        body = _first_with_class(item, "accordion-body", "accordion-collapse")
        if header is None or body is None:
            continue
        sections.append(ParsedSection(
            title=_inline_text(header.text_content()),
            detail=element_text(body),
        ))
    return sections


def parse_sections(raw_text: str) -> List[ParsedSection]:
    """
    Parse a nested cell into ordered sections.

    Returns an empty list for flat cells or markup lxml cannot parse.
    """
    if not raw_text or not any(marker in raw_text.lower() for marker in _NESTED_MARKERS):
        return []

    try:
        root = html_fragment(raw_text)
    except (etree.ParserError, ValueError) as e:
        logger.warning(f"Could not parse nested cell markup: {e}")
        return []

    sections = _details_sections(root) or _accordion_sections(root)
    return [section for section in sections if section.title or section.detail]


def split_clauses(text: str) -> List[str]:
    """Split flattened text into sentence/clause fragments."""
    fragments = []
    for fragment in _CLAUSE_SPLIT_RE.split(text):
        fragment = fragment.strip().lstrip("•").strip()
        if fragment:
            fragments.append(fragment)
    return fragments


def extract_keyword_clauses(text: str, keywords: Sequence[str]) -> List[str]:
    """Clauses containing at least one keyword, deduplicated in order."""
    seen = set()
    kept = []
    for clause in split_clauses(text):
        if not any(contains_keyword(keyword, clause) for keyword in keywords):
            continue
        marker = fold(clause)
        if marker in seen:
            continue
        seen.add(marker)
        kept.append(clause)
    return kept


class ContentRefiner:
    """
    Narrow cell content to the query context.

    Usage:
        refiner = ContentRefiner()
        refined = refiner.refine(cell, query, context)
        print(refined.text, refined.narrowed)
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.snippet_length = settings.SNIPPET_LENGTH
        self.summary_snippets = settings.SUMMARY_SNIPPETS

    def refine(self, cell: CellData, query: str = "", context: Optional[QueryContext] = None) -> RefinedContent:
        if context is None:
            context = extract_query_context(query)
        return self.refine_text(cell.raw_text, context)

    def refine_text(self, raw_text: str, context: QueryContext) -> RefinedContent:
        flattened = strip_html(raw_text)
        sections = tuple(parse_sections(raw_text))

        if sections:
            if context.is_empty:
                return RefinedContent(self._summarize(sections), False, "summary", sections)

            keywords = context.section_keywords()
            matched = tuple(
                section for section in sections
                if any(section.mentions(keyword) for keyword in keywords)
            )
            if matched:
                logger.debug(f"Narrowed to {len(matched)}/{len(sections)} sections")
                text = "\n\n".join(
                    normalize_whitespace(f"{section.title}:\n{section.detail}") for section in matched
                )
                return RefinedContent(text, True, "sections", matched)

        elif context.is_empty:
            return RefinedContent(flattened, False, "passthrough")

        clauses = extract_keyword_clauses(flattened, context.keywords())
        if clauses:
            return RefinedContent("\n".join(clauses), True, "sentences", sections)

        logger.debug("No context keyword found in cell, returning full text")
        return RefinedContent(flattened, False, "full", sections)

    def _summarize(self, sections: Sequence[ParsedSection]) -> str:
        lines = [f"Gồm {len(sections)} mục:"]
        lines.extend(f"{index}. {section.title}" for index, section in enumerate(sections, 1))

        snippets = [
            f"• {section.title}: {truncate(section.detail, self.snippet_length)}"
            for section in sections
            if section.detail
        ][:self.summary_snippets]

        if snippets:
            lines.append("")
            lines.extend(snippets)
        return "\n".join(lines)
