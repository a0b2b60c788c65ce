"""
Category resolver: candidate columns → ranked columns, with context bonuses.

Base score:
    EXACT   (candidate column is populated in the catalog)      100, cap 150
    PARTIAL (only a sibling column of the same family exists)    70, cap 120

Context bonuses:
    +30  audience keyword matches the column (trẻ sơ sinh → DOSAGE_NEONATE)
    +25  severe keyword → high-dose pediatric column
    +20  named condition → high-dose pediatric column
    +40  query explicitly asks about contraindications
"""
import logging
from typing import Iterable, List, Optional, Sequence, Union

from pedmed.catalog.records import AttributeIdentifier
from pedmed.core.config import Settings, settings as default_settings
from pedmed.resolver.candidates import MatchCandidate, MatchStrategy, rank
from pedmed.retrieval.dictionaries import (
    AUDIENCE_KEYWORDS,
    CONTRAINDICATION_PHRASES,
    HIGH_DOSE_IDENTIFIER,
    SEVERE_KEYWORDS,
)
from pedmed.retrieval.query_context import QueryContext, extract_query_context
from pedmed.utils.text import FoldedQuery

logger = logging.getLogger(__name__)


class CategoryResolver:
    """
    Rank candidate columns for a query.

    Usage:
        resolver = CategoryResolver()
        ranked = resolver.resolve(keywords.categories, catalog.available_identifiers(), query)
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.exact_score = settings.CATEGORY_EXACT_SCORE
        self.partial_score = settings.CATEGORY_PARTIAL_SCORE
        self.exact_cap = settings.CATEGORY_EXACT_CAP
        self.partial_cap = settings.CATEGORY_PARTIAL_CAP
        self.audience_bonus = settings.AUDIENCE_BONUS
        self.severity_bonus = settings.SEVERITY_BONUS
        self.condition_bonus = settings.CONDITION_BONUS
        self.contraindication_bonus = settings.CONTRAINDICATION_BONUS

    def resolve(
        self,
        candidates: Sequence[AttributeIdentifier],
        available: Iterable[AttributeIdentifier],
        query: Union[str, FoldedQuery],
        context: Optional[QueryContext] = None,
    ) -> List[MatchCandidate[AttributeIdentifier]]:
        """
        Score and rank candidate columns.

        Args:
            candidates: Columns proposed by the keyword extractor
            available: Columns populated on at least one catalog record
            query: Raw query (used for context scoring)
            context: Pre-extracted context; computed from ``query`` if omitted

        Returns:
            Candidates sorted by confidence (non-increasing); ties keep
            dictionary order. Empty when nothing proposed is available.
        """
        folded = query if isinstance(query, FoldedQuery) else FoldedQuery(query)
        if context is None:
            context = extract_query_context(folded)

        populated = set(available)
        available = [identifier for identifier in AttributeIdentifier if identifier in populated]
        candidates = list(dict.fromkeys(candidates))

        exact = [identifier for identifier in available if identifier in candidates]
        if exact:
            base, cap, strategy, chosen = self.exact_score, self.exact_cap, MatchStrategy.EXACT, exact
        else:
            chosen = self._partial_matches(candidates, available)
            base, cap, strategy = self.partial_score, self.partial_cap, MatchStrategy.PARTIAL

        asks_contraindication = any(folded.contains(phrase) for phrase in CONTRAINDICATION_PHRASES)

        scored = []
        for identifier in chosen:
            bonus = self._context_bonus(identifier, context, asks_contraindication)
            scored.append(MatchCandidate(identifier, min(base + bonus, cap), strategy, identifier.value))

        ranked = rank(scored)
        if ranked:
            logger.info(
                f"Category resolved: {ranked[0].item.value} ({ranked[0].strategy.value}, "
                f"{ranked[0].confidence}) of {[c.item.value for c in ranked]}"
            )
        elif candidates:
            logger.info(f"No populated column for candidates {[c.value for c in candidates]}")
        return ranked

    @staticmethod
    def _partial_matches(
        candidates: Sequence[AttributeIdentifier],
        available: Sequence[AttributeIdentifier],
    ) -> List[AttributeIdentifier]:
        """Available columns related to a candidate (same family or containment)."""
        matches = []
        for candidate in candidates:
            for identifier in available:
                related = (
                    identifier.family == candidate.family
                    or candidate.value in identifier.value
                    or identifier.value in candidate.value
                )
                if related and identifier not in matches:
                    matches.append(identifier)
        return matches

    def _context_bonus(self, identifier: AttributeIdentifier, context: QueryContext, asks_contraindication: bool) -> int:
        bonus = 0

        audience = AUDIENCE_KEYWORDS.get(identifier)
        if audience and context.patient_types & set(audience):
            bonus += self.audience_bonus

        if identifier == HIGH_DOSE_IDENTIFIER:
            if context.severities & SEVERE_KEYWORDS:
                bonus += self.severity_bonus
            if context.conditions:
                bonus += self.condition_bonus

        if identifier == AttributeIdentifier.CONTRAINDICATIONS and asks_contraindication:
            bonus += self.contraindication_bonus

        return bonus
