"""
Drug query pipeline: free-text question → answer for one drug and column.

Steps (each short-circuits with a typed failure):
1. Keyword extraction      (drug mentions, topic phrases, context)
2. Entity resolution       (best catalog record)
3. Category resolution     (best populated column, context re-ranked)
4. Cell extraction         (raw cell, blank = EMPTY_FIELD)
5. Refinement + assembly   (context narrowing, safety framing, optional LLM)

Steps 1-4 are pure and read only the current immutable catalog snapshot, so
independent queries can run concurrently without locking.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pedmed.catalog.entity_catalog import CatalogStore, EntityCatalog
from pedmed.catalog.records import AttributeIdentifier, DrugRecord
from pedmed.core.config import Settings, settings as default_settings
from pedmed.extraction.cell_extractor import CellData, CellExtractor
from pedmed.extraction.content_refiner import ContentRefiner, RefinedContent
from pedmed.generation.backends import GenerativeBackend
from pedmed.generation.response_assembler import AssembledResponse, ResponseAssembler
from pedmed.guardrails import FailureReason, get_failure_message
from pedmed.resolver.category_resolver import CategoryResolver
from pedmed.resolver.entity_resolver import EntityResolver
from pedmed.retrieval.keyword_extractor import ExtractedKeywords, KeywordExtractor
from pedmed.utils.logging import LogContext
from pedmed.utils.text import FoldedQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerResult:
    """
    Outcome of one query.

    ``step`` is set on failures (1-4, 0 = internal error); ``confidence`` is
    the minimum of the entity and category confidences.
    """
    success: bool
    message: str
    drug_name: Optional[str] = None
    category: Optional[AttributeIdentifier] = None
    confidence: Optional[int] = None
    used_generative: bool = False
    step: Optional[int] = None
    failure_reason: Optional[FailureReason] = None
    narrowed: bool = False
    refinement_mode: Optional[str] = None
    last_updated: Optional[str] = None
    backend_error: Optional[str] = None

    @classmethod
    def failure(
        cls,
        reason: FailureReason,
        drug_name: Optional[str] = None,
        category: Optional[AttributeIdentifier] = None,
        message_drug: Optional[str] = None,
    ) -> "AnswerResult":
        topics = [category.label] if category is not None else None
        return cls(
            success=False,
            message=get_failure_message(reason, drug_name=message_drug or drug_name, topics=topics),
            drug_name=drug_name,
            category=category,
            step=reason.step,
            failure_reason=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-JSON view for the web layer."""
        return {
            "success": self.success,
            "message": self.message,
            "drug_name": self.drug_name,
            "category": self.category.value if self.category is not None else None,
            "category_label": self.category.label if self.category is not None else None,
            "confidence": self.confidence,
            "used_generative": self.used_generative,
            "step": self.step,
            "failure_reason": self.failure_reason.value if self.failure_reason is not None else None,
            "narrowed": self.narrowed,
            "refinement_mode": self.refinement_mode,
            "last_updated": self.last_updated,
            "backend_error": self.backend_error,
        }


@dataclass(frozen=True)
class _Resolution:
    query: str
    keywords: ExtractedKeywords
    cell: CellData
    refined: RefinedContent


CatalogSource = Union[CatalogStore, EntityCatalog, Iterable[DrugRecord]]


class DrugQueryPipeline:
    """
    The lookup pipeline over a catalog snapshot.

    Usage:
        pipeline = DrugQueryPipeline(records, backend=create_backend())
        result = pipeline.answer("meropenem liều cho viêm màng não")
        print(result.message)
    """

    def __init__(
        self,
        catalog: CatalogSource,
        backend: Optional[GenerativeBackend] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or default_settings
        if isinstance(catalog, CatalogStore):
            self.store = catalog
        else:
            self.store = CatalogStore()
            self.store.replace(catalog.records if isinstance(catalog, EntityCatalog) else catalog)

        self.entity_resolver = EntityResolver(settings)
        self.category_resolver = CategoryResolver(settings)
        self.cell_extractor = CellExtractor()
        self.refiner = ContentRefiner(settings)
        self.assembler = ResponseAssembler(backend, settings)

        self._extractor_cache: Optional[Tuple[EntityCatalog, KeywordExtractor]] = None

    @property
    def backend(self) -> Optional[GenerativeBackend]:
        return self.assembler.backend

    def _keyword_extractor(self, catalog: EntityCatalog) -> KeywordExtractor:
        # Rebuilt only when the store swapped in a new snapshot; the pair is
        # stored in one assignment so a concurrent query never sees a mixed one
        cached = self._extractor_cache
        if cached is not None and cached[0] is catalog:
            return cached[1]
        extractor = KeywordExtractor.from_catalog(catalog)
        self._extractor_cache = (catalog, extractor)
        return extractor

    def answer(self, query: str) -> AnswerResult:
        with LogContext(correlation_id=uuid.uuid4().hex[:12]):
            try:
                resolution = self._resolve(query)
                if isinstance(resolution, AnswerResult):
                    return resolution
                assembled = self.assembler.assemble(
                    query, resolution.cell, resolution.refined, resolution.keywords.context,
                )
                return self._success(resolution, assembled)
            except Exception:
                logger.exception(f"Internal error answering query: {query!r}", extra={"step": 0})
                return AnswerResult.failure(FailureReason.INTERNAL_ERROR)

    async def answer_async(self, query: str) -> AnswerResult:
        with LogContext(correlation_id=uuid.uuid4().hex[:12]):
            try:
                resolution = self._resolve(query)
                if isinstance(resolution, AnswerResult):
                    return resolution
                assembled = await self.assembler.assemble_async(
                    query, resolution.cell, resolution.refined, resolution.keywords.context,
                )
                return self._success(resolution, assembled)
            except Exception:
                logger.exception(f"Internal error answering query: {query!r}", extra={"step": 0})
                return AnswerResult.failure(FailureReason.INTERNAL_ERROR)

    def _resolve(self, query: str) -> Union[AnswerResult, _Resolution]:
        catalog = self.store.snapshot()
        logger.info(f"Processing query: {query!r}")

        # Step 1: keywords
        keywords = self._keyword_extractor(catalog).extract(query)
        if not keywords.drugs:
            return self._fail(FailureReason.NO_ENTITY_IDENTIFIED)
        if not keywords.categories:
            return self._fail(FailureReason.NO_CATEGORY_IDENTIFIED)

        # Step 2: entity
        entities = self.entity_resolver.resolve(keywords.drugs, catalog)
        if not entities:
            return self._fail(FailureReason.UNKNOWN_ENTITY, message_drug=", ".join(keywords.drugs))
        entity = entities[0]

        # Step 3: category
        categories = self.category_resolver.resolve(
            keywords.categories,
            catalog.available_identifiers(),
            FoldedQuery(query),
            keywords.context,
        )
        if not categories:
            # No record populates any requested column
            return self._fail(
                FailureReason.NO_POPULATED_CATEGORY,
                drug_name=entity.item.name,
                category=keywords.categories[0],
            )
        category = categories[0]

        # Step 4: cell
        cell = self.cell_extractor.extract(entity, category)
        if cell.is_empty:
            return self._fail(FailureReason.EMPTY_FIELD, drug_name=cell.drug_name, category=cell.attribute_id)

        # Step 5: refine
        refined = self.refiner.refine(cell, query, keywords.context)
        return _Resolution(query=query, keywords=keywords, cell=cell, refined=refined)

    @staticmethod
    def _fail(reason: FailureReason, **kwargs) -> AnswerResult:
        result = AnswerResult.failure(reason, **kwargs)
        logger.info(
            f"Query stopped at step {result.step}: {reason.value}",
            extra={"step": result.step, "drug_name": result.drug_name},
        )
        return result

    @staticmethod
    def _success(resolution: _Resolution, assembled: AssembledResponse) -> AnswerResult:
        cell = resolution.cell
        logger.info(
            f"Answered {cell.drug_name} / {cell.attribute_id.value} "
            f"(confidence={cell.confidence}, mode={resolution.refined.mode}, "
            f"generative={assembled.used_generative})",
            extra={"drug_name": cell.drug_name, "category": cell.attribute_id.value},
        )
        return AnswerResult(
            success=True,
            message=assembled.message,
            drug_name=cell.drug_name,
            category=cell.attribute_id,
            confidence=cell.confidence,
            used_generative=assembled.used_generative,
            narrowed=resolution.refined.narrowed,
            refinement_mode=resolution.refined.mode,
            last_updated=cell.last_updated,
            backend_error=assembled.backend_error,
        )


def _build_pipeline(drug_records, generative_backend) -> Optional[DrugQueryPipeline]:
    try:
        return DrugQueryPipeline(drug_records, backend=generative_backend)
    except Exception:
        logger.exception("Could not build catalog from the supplied records", extra={"step": 0})
        return None


def answer(
    query: str,
    drug_records: Union[Iterable[DrugRecord], EntityCatalog, CatalogStore],
    generative_backend: Optional[GenerativeBackend] = None,
) -> AnswerResult:
    """
    Convenience function: answer one query against a set of records.

    Never raises; failures come back as ``success=False`` with a ``step``.
    """
    pipeline = _build_pipeline(drug_records, generative_backend)
    if pipeline is None:
        return AnswerResult.failure(FailureReason.INTERNAL_ERROR)
    return pipeline.answer(query)


async def answer_async(
    query: str,
    drug_records: Union[Iterable[DrugRecord], EntityCatalog, CatalogStore],
    generative_backend: Optional[GenerativeBackend] = None,
) -> AnswerResult:
    pipeline = _build_pipeline(drug_records, generative_backend)
    if pipeline is None:
        return AnswerResult.failure(FailureReason.INTERNAL_ERROR)
    return await pipeline.answer_async(query)


def list_topics() -> List[str]:
    """Column labels, in dictionary order (for help text)."""
    return [identifier.label for identifier in AttributeIdentifier]
