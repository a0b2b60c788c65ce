"""
Drug name resolver: candidate strings → ranked catalog records.

Strategies, strongest first (a record keeps only its best signal):
1. EXACT: candidate contained in the canonical name
2. REVERSE: canonical name contained in the candidate (name longer than 3)
3. ALIAS: candidate and an alias contain one another
4. FUZZY: normalized Levenshtein similarity above the threshold

Bounded fuzzy matching: no spelling correction beyond edit distance.
Empty output means "unknown drug", it is not an error.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from pedmed.catalog.entity_catalog import EntityCatalog
from pedmed.catalog.records import DrugRecord
from pedmed.core.config import Settings, settings as default_settings
from pedmed.resolver.candidates import MatchCandidate, MatchStrategy, rank
from pedmed.retrieval.keyword_extractor import build_alias_table
from pedmed.utils.text import plain_fold

logger = logging.getLogger(__name__)


class EntityResolver:
    """
    Score candidate drug mentions against the catalog.

    Usage:
        resolver = EntityResolver()
        matches = resolver.resolve(["meropenem"], catalog)
        best = matches[0].item if matches else None
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.exact_score = settings.ENTITY_EXACT_SCORE
        self.reverse_score = settings.ENTITY_REVERSE_SCORE
        self.alias_score = settings.ENTITY_ALIAS_SCORE
        self.fuzzy_score = settings.ENTITY_FUZZY_SCORE
        self.fuzzy_threshold = settings.ENTITY_FUZZY_THRESHOLD
        self.min_name_length = settings.ENTITY_MIN_NAME_LENGTH

    def resolve(self, candidates: Sequence[str], catalog: EntityCatalog) -> List[MatchCandidate[DrugRecord]]:
        """
        Rank catalog records for the given candidate strings.

        Returns:
            Candidates sorted by confidence (non-increasing); ties keep
            catalog order
        """
        terms = [plain_fold(candidate) for candidate in candidates]
        terms = [term for term in terms if term]
        if not terms or not len(catalog):
            return []

        aliases = self._aliases_by_record(catalog)

        best: Dict[str, MatchCandidate[DrugRecord]] = {}
        for record in catalog:
            for term in terms:
                match = self._score(term, record, aliases.get(record.key, ()))
                if match is None:
                    continue
                current = best.get(record.key)
                if current is None or match.confidence > current.confidence:
                    best[record.key] = match

        ranked = rank(list(best.values()))
        if ranked:
            logger.info(
                f"Entity resolved: {ranked[0].item.name} "
                f"({ranked[0].strategy.value}, {ranked[0].confidence}) from {list(candidates)}"
            )
        else:
            logger.info(f"No catalog match for candidates {list(candidates)}")
        return ranked

    def _aliases_by_record(self, catalog: EntityCatalog) -> Dict[str, Tuple[str, ...]]:
        table = build_alias_table(catalog.alias_table())
        return {
            plain_fold(name): tuple(
                alias for alias in (plain_fold(a) for a in names)
                if len(alias) >= self.min_name_length
            )
            for name, names in table.items()
        }

    def _score(self, term: str, record: DrugRecord, aliases: Tuple[str, ...]) -> Optional[MatchCandidate[DrugRecord]]:
        name = record.key

        if term in name:
            return MatchCandidate(record, self.exact_score, MatchStrategy.EXACT, term)

        if len(name) > self.min_name_length and name in term:
            return MatchCandidate(record, self.reverse_score, MatchStrategy.REVERSE, term)

        if len(term) >= self.min_name_length:
            for alias in aliases:
                if alias == name:
                    continue
                if term in alias or alias in term:
                    return MatchCandidate(record, self.alias_score, MatchStrategy.ALIAS, term)

        similarity = max(
            Levenshtein.normalized_similarity(term, candidate)
            for candidate in (name,) + aliases
        )
        if similarity > self.fuzzy_threshold:
            logger.debug(f"Fuzzy match: '{term}' → '{record.name}' ({similarity:.2f})")
            return MatchCandidate(record, self.fuzzy_score, MatchStrategy.FUZZY, term)

        return None


def resolve_entity(candidates: Sequence[str], catalog: EntityCatalog) -> Optional[DrugRecord]:
    """Convenience function: best record or None."""
    matches = EntityResolver().resolve(candidates, catalog)
    return matches[0].item if matches else None
