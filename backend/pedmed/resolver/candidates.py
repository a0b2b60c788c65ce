"""Ranked match candidates shared by the entity and category resolvers."""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, TypeVar

T = TypeVar("T")


class MatchStrategy(str, Enum):
    EXACT = "exact"
    REVERSE = "reverse"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    PARTIAL = "partial"


@dataclass(frozen=True)
class MatchCandidate(Generic[T]):
    """
    One resolved item with its confidence.

    Attributes:
        item: DrugRecord or AttributeIdentifier
        confidence: 0-150 (context bonuses can lift category scores above 100)
        strategy: How the item was matched
        matched_text: Candidate string (or identifier) that produced the match
    """
    item: T
    confidence: int
    strategy: MatchStrategy
    matched_text: str = ""


def rank(candidates: List[MatchCandidate]) -> List[MatchCandidate]:
    """Sort by confidence, highest first; stable so ties keep input order."""
    return sorted(candidates, key=lambda candidate: -candidate.confidence)
