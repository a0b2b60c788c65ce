"""
Cell extraction: top entity + top category → raw cell text.

A blank cell is a normal outcome (no data recorded for that drug/column),
reported through ``CellData.is_empty`` rather than an exception.
"""
import logging
from dataclasses import dataclass

from pedmed.catalog.records import AttributeIdentifier, DrugRecord
from pedmed.resolver.candidates import MatchCandidate
from pedmed.utils.text import strip_html

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellData:
    drug_name: str
    attribute_id: AttributeIdentifier
    raw_text: str
    entity_confidence: int
    category_confidence: int
    last_updated: str

    @property
    def is_empty(self) -> bool:
        return not strip_html(self.raw_text)

    @property
    def confidence(self) -> int:
        return min(self.entity_confidence, self.category_confidence)


class CellExtractor:
    def extract(
        self,
        entity: MatchCandidate[DrugRecord],
        category: MatchCandidate[AttributeIdentifier],
    ) -> CellData:
        record = entity.item
        identifier = category.item
        cell = CellData(
            drug_name=record.name,
            attribute_id=identifier,
            raw_text=record.get(identifier),
            entity_confidence=entity.confidence,
            category_confidence=category.confidence,
            last_updated=record.last_updated,
        )
        if cell.is_empty:
            logger.info(
                f"Empty cell: {record.name} / {identifier.value}",
                extra={"drug_name": record.name, "category": identifier.value, "step": 4},
            )
        return cell
