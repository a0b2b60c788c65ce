"""
Response assembler: refined cell text → final user message.

Two paths:
1. Deterministic: refined text with category-specific safety framing
2. Generative (optional): the backend rephrases the extracted fact; its
   answer replaces the deterministic text

Any backend failure (exception, timeout, blank or opinionated answer)
silently downgrades to the deterministic message. The failure is kept in
``AssembledResponse.backend_error`` for diagnostics only.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from pedmed.catalog.records import ADJUSTMENT_IDENTIFIERS, DOSAGE_IDENTIFIERS, AttributeIdentifier
from pedmed.core.config import Settings, settings as default_settings
from pedmed.core.exceptions import GenerativeBackendError
from pedmed.extraction.cell_extractor import CellData
from pedmed.extraction.content_refiner import RefinedContent
from pedmed.generation.backends import GenerativeBackend
from pedmed.generation.prompt_template import (
    ADVERSE_EFFECTS_NOTE,
    CONTRAINDICATION_RATIONALE,
    DOSAGE_CAUTION,
    contains_hallucination_marker,
    format_answer_prompt,
)
from pedmed.retrieval.query_context import QueryContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssembledResponse:
    message: str
    used_generative: bool
    backend_error: Optional[str] = None


def frame_content(identifier: AttributeIdentifier, text: str) -> str:
    """Wrap refined text with the safety framing of its column."""
    label = identifier.label

    if identifier == AttributeIdentifier.CONTRAINDICATIONS:
        return f"🚨 **{label.upper()}:**\n\n⛔ {text}\n\n{CONTRAINDICATION_RATIONALE}"

    if identifier in DOSAGE_IDENTIFIERS or identifier in ADJUSTMENT_IDENTIFIERS:
        return f"💊 **{label}:**\n\n{text}\n\n{DOSAGE_CAUTION}"

    if identifier == AttributeIdentifier.ADVERSE_EFFECTS:
        return f"**{label}:**\n\n{text}\n\n{ADVERSE_EFFECTS_NOTE}"

    return f"**{label}:**\n\n{text}"


class ResponseAssembler:
    """
    Build the final message, optionally through a generative backend.

    Usage:
        assembler = ResponseAssembler(backend=create_backend())
        response = assembler.assemble(query, cell, refined, context)
    """

    def __init__(self, backend: Optional[GenerativeBackend] = None, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.backend = backend
        self.timeout = settings.GENERATIVE_TIMEOUT_SECONDS

    def build_prompt(self, query: str, cell: CellData, refined: RefinedContent, context: QueryContext) -> str:
        return format_answer_prompt(
            query=query,
            drug_name=cell.drug_name,
            category_label=cell.attribute_id.label,
            extracted_text=refined.text,
            context=context.describe(),
        )

    def assemble(
        self,
        query: str,
        cell: CellData,
        refined: RefinedContent,
        context: QueryContext,
    ) -> AssembledResponse:
        deterministic = frame_content(cell.attribute_id, refined.text)
        if self.backend is None:
            return AssembledResponse(deterministic, used_generative=False)

        prompt = self.build_prompt(query, cell, refined, context)
        try:
            answer = self._validate(self.backend.generate(prompt, self.timeout))
        except Exception as e:
            return self._fallback(deterministic, e)

        return AssembledResponse(answer, used_generative=True)

    async def assemble_async(
        self,
        query: str,
        cell: CellData,
        refined: RefinedContent,
        context: QueryContext,
    ) -> AssembledResponse:
        """
        Same as ``assemble`` but the backend call runs in a worker thread,
        bounded by ``asyncio.wait_for``. Cancelling the caller cancels only
        the pending generative call.
        """
        deterministic = frame_content(cell.attribute_id, refined.text)
        if self.backend is None:
            return AssembledResponse(deterministic, used_generative=False)

        prompt = self.build_prompt(query, cell, refined, context)
        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self.backend.generate, prompt, self.timeout),
                timeout=self.timeout,
            )
            answer = self._validate(raw)
        except asyncio.TimeoutError:
            return self._fallback(deterministic, GenerativeBackendError(f"timed out after {self.timeout}s"))
        except Exception as e:
            return self._fallback(deterministic, e)

        return AssembledResponse(answer, used_generative=True)

    @staticmethod
    def _validate(answer) -> str:
        if not isinstance(answer, str) or not answer.strip():
            raise GenerativeBackendError("blank answer")
        if contains_hallucination_marker(answer):
            raise GenerativeBackendError("answer contains an opinion marker")
        return answer.strip()

    def _fallback(self, deterministic: str, error: Exception) -> AssembledResponse:
        provider = getattr(self.backend, "name", type(self.backend).__name__)
        logger.warning(
            f"Generative backend failed, using deterministic answer: {error}",
            extra={"provider": provider},
        )
        return AssembledResponse(deterministic, used_generative=False, backend_error=str(error))
