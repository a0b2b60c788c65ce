"""
Exceptions raised at the seams of the lookup pipeline.

None of these ever reach the caller of ``answer()``: knowledge-base errors are
handled by the catalog store (stale snapshot is kept), generative errors are
handled by the response assembler (deterministic fallback).
"""


class PedmedError(Exception):
    """Base class for all pedmed errors."""


class KnowledgeBaseError(PedmedError):
    """Loading records from the tabular source failed (network, auth, format)."""


class GenerativeBackendError(PedmedError):
    """A generative backend call failed or returned an unusable answer."""


class QuotaExceededError(GenerativeBackendError):
    """The request counter for a backend has reached its daily limit."""

    def __init__(self, backend: str, limit: int):
        self.backend = backend
        self.limit = limit
        super().__init__(f"Daily request limit reached for {backend} ({limit} requests)")
