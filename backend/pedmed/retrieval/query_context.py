"""
Query context: condition, severity, patient-type and route keywords.

Context never decides which drug or column is asked about. It only re-ranks
columns (category resolver) and narrows cell content (content refiner).
"""
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Sequence, Tuple

from pedmed.retrieval.dictionaries import (
    CONDITION_KEYWORDS,
    NEUTRAL_PHRASES,
    PATIENT_TYPE_KEYWORDS,
    ROUTE_KEYWORDS,
    SEVERITY_KEYWORDS,
)
from pedmed.utils.text import FoldedQuery, mask_span


@dataclass(frozen=True)
class QueryContext:
    conditions: FrozenSet[str] = frozenset()
    severities: FrozenSet[str] = frozenset()
    patient_types: FrozenSet[str] = frozenset()
    routes: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.conditions or self.severities or self.patient_types or self.routes)

    def section_keywords(self) -> Tuple[str, ...]:
        """Keywords used to pick accordion sections (routes excluded)."""
        return _longest_first(self.conditions | self.severities | self.patient_types)

    def keywords(self) -> Tuple[str, ...]:
        return _longest_first(self.conditions | self.severities | self.patient_types | self.routes)

    def describe(self) -> str:
        parts = []
        if self.patient_types:
            parts.append("đối tượng: " + ", ".join(sorted(self.patient_types)))
        if self.conditions:
            parts.append("bệnh lý: " + ", ".join(sorted(self.conditions)))
        if self.severities:
            parts.append("mức độ: " + ", ".join(sorted(self.severities)))
        if self.routes:
            parts.append("đường dùng: " + ", ".join(sorted(self.routes)))
        return "; ".join(parts)


def _longest_first(keywords: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(keywords, key=lambda keyword: (-len(keyword), keyword)))


def match_keywords(query: FoldedQuery, keywords: Sequence[str], text: Optional[str] = None) -> Tuple[FrozenSet[str], str]:
    """
    Find table keywords in the query, longest first.

    A matched keyword's span is blanked so a shorter keyword inside it
    ("nhiễm khuẩn" inside "nhiễm khuẩn huyết") is not reported as well.

    Returns:
        (matched keywords, text with matched spans blanked)
    """
    remaining = query.text if text is None else text
    found = set()
    for keyword in _longest_first(keywords):
        span = query.search(keyword, remaining)
        if span:
            found.add(keyword)
            remaining = mask_span(remaining, span)
    return frozenset(found), remaining


def extract_query_context(query: str) -> QueryContext:
    folded = query if isinstance(query, FoldedQuery) else FoldedQuery(query)
    _, text = match_keywords(folded, NEUTRAL_PHRASES)
    conditions, _ = match_keywords(folded, CONDITION_KEYWORDS, text)
    severities, _ = match_keywords(folded, SEVERITY_KEYWORDS, text)
    patient_types, _ = match_keywords(folded, PATIENT_TYPE_KEYWORDS, text)
    routes, _ = match_keywords(folded, ROUTE_KEYWORDS, text)
    return QueryContext(
        conditions=conditions,
        severities=severities,
        patient_types=patient_types,
        routes=routes,
    )
