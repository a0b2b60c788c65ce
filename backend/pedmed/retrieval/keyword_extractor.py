"""
Keyword extraction: query text → candidate drug mentions and columns.

Strategy:
1. Alias scan (catalog names + static brand/alias table), accent-insensitive
2. Category triggers, longest phrase first; a matched span is blanked so a
   shorter trigger inside it cannot fire again
3. Query context (condition, severity, patient type, route)
4. Fallback drug candidates: leftover tokens longer than 4 characters that
   are not stop words

Pure function of the query and the dictionaries it was built with.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pedmed.catalog.records import ADJUSTMENT_IDENTIFIERS, DOSAGE_IDENTIFIERS, AttributeIdentifier
from pedmed.retrieval.dictionaries import (
    CATEGORY_DICTIONARY,
    CONDITION_KEYWORDS,
    DRUG_ALIASES,
    NEUTRAL_PHRASES,
    PATIENT_TYPE_KEYWORDS,
    ROUTE_KEYWORDS,
    SEVERITY_KEYWORDS,
    STOP_WORDS,
    CategoryDictionaryEntry,
)
from pedmed.retrieval.query_context import QueryContext, extract_query_context, match_keywords
from pedmed.utils.text import FoldedQuery, find_phrase, mask_span, plain_fold

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[\w-]+")
MIN_FALLBACK_TOKEN_LENGTH = 5
MIN_ALIAS_LENGTH = 3


@dataclass
class ExtractedKeywords:
    """Result of keyword extraction for one query."""
    drugs: List[str] = field(default_factory=list)
    categories: List[AttributeIdentifier] = field(default_factory=list)
    context: QueryContext = field(default_factory=QueryContext)

    # Original query
    original_query: str = ""
    normalized_query: str = ""

    # True when drugs came from the alias table rather than the token fallback
    alias_hit: bool = False


def _dedupe(values, key=lambda value: value) -> list:
    seen = set()
    unique = []
    for value in values:
        marker = key(value)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(value)
    return unique


def build_alias_table(catalog_aliases: Optional[Mapping[str, Sequence[str]]] = None) -> Dict[str, Tuple[str, ...]]:
    """
    Merge catalog names/aliases with the static alias table.

    Catalog spelling wins for the canonical name; static aliases of the same
    drug (compared accent-insensitively) are appended to it.
    """
    merged: Dict[str, Tuple[str, List[str]]] = {}
    for name, aliases in (catalog_aliases or {}).items():
        merged[plain_fold(name)] = (name, [name, *aliases])

    for name, aliases in DRUG_ALIASES.items():
        key = plain_fold(name)
        if key in merged:
            merged[key][1].extend(aliases)
        else:
            merged[key] = (name, [name, *aliases])

    return {
        canonical: tuple(_dedupe(aliases, key=plain_fold))
        for canonical, aliases in merged.values()
    }


class KeywordExtractor:
    """
    Extract drug and category candidates from a free-text query.

    Usage:
        extractor = KeywordExtractor.from_catalog(catalog)
        keywords = extractor.extract("meropenem liều cho viêm màng não")
    """

    def __init__(
        self,
        alias_table: Optional[Mapping[str, Sequence[str]]] = None,
        dictionary: Sequence[CategoryDictionaryEntry] = CATEGORY_DICTIONARY,
    ):
        table = build_alias_table(alias_table)
        self._aliases: List[Tuple[str, Tuple[str, ...]]] = [
            (canonical, tuple(
                plain_fold(alias) for alias in aliases
                if len(plain_fold(alias)) >= MIN_ALIAS_LENGTH
            ))
            for canonical, aliases in table.items()
        ]
        # Longest phrase first; ties keep dictionary order
        self._entries = sorted(dictionary, key=lambda entry: -len(entry.phrase))

    @classmethod
    def from_catalog(cls, catalog) -> "KeywordExtractor":
        return cls(alias_table=catalog.alias_table())

    def extract(self, query: str) -> ExtractedKeywords:
        folded = FoldedQuery(query)
        result = ExtractedKeywords(original_query=folded.original, normalized_query=folded.text)
        if not folded.text:
            return result

        result.categories, remaining = self._extract_categories(folded)
        result.context = extract_query_context(folded)

        drugs = self._match_aliases(plain_fold(folded.text))
        if drugs:
            result.alias_hit = True
        else:
            drugs = self._fallback_tokens(folded, remaining)
        result.drugs = drugs

        logger.debug(
            f"Keywords extracted: drugs={result.drugs}, "
            f"categories={[c.value for c in result.categories]}"
        )
        return result

    def _match_aliases(self, plain_query: str) -> List[str]:
        hits = []
        for canonical, aliases in self._aliases:
            positions = [span[0] for span in (find_phrase(alias, plain_query) for alias in aliases) if span]
            if positions:
                hits.append((min(positions), canonical))
        hits.sort(key=lambda hit: hit[0])
        return _dedupe([canonical for _, canonical in hits], key=plain_fold)

    def _extract_categories(self, query: FoldedQuery) -> Tuple[List[AttributeIdentifier], str]:
        remaining = query.text
        primary = set()
        qualifiers = set()

        for entry in self._entries:
            span = query.search(entry.phrase, remaining)
            if not span:
                continue
            remaining = mask_span(remaining, span)
            (qualifiers if entry.qualifier else primary).update(entry.identifiers)

        found = primary or qualifiers

        # "liều ... suy thận": the adjustment column is the specific answer
        if found & DOSAGE_IDENTIFIERS and found & ADJUSTMENT_IDENTIFIERS:
            found -= DOSAGE_IDENTIFIERS

        return [identifier for identifier in AttributeIdentifier if identifier in found], remaining

    def _fallback_tokens(self, query: FoldedQuery, remaining: str) -> List[str]:
        for keywords in (NEUTRAL_PHRASES, CONDITION_KEYWORDS, SEVERITY_KEYWORDS,
                         PATIENT_TYPE_KEYWORDS, ROUTE_KEYWORDS):
            _, remaining = match_keywords(query, keywords, remaining)

        candidates = []
        for token in _TOKEN_RE.findall(remaining):
            token = token.strip("-_")
            if len(token) < MIN_FALLBACK_TOKEN_LENGTH or token.isdigit():
                continue
            if plain_fold(token) in STOP_WORDS:
                continue
            candidates.append(token)
        return _dedupe(candidates, key=plain_fold)


def extract_keywords(query: str, catalog=None) -> ExtractedKeywords:
    """Convenience function: extract with an optional catalog alias table."""
    extractor = KeywordExtractor.from_catalog(catalog) if catalog is not None else KeywordExtractor()
    return extractor.extract(query)
