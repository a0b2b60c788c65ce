"""
Guardrail utilities for the lookup pipeline.
"""
from .failures import (
    FailureReason,
    FAILURE_MESSAGES,
    FAILURE_STEPS,
    get_failure_message,
)

__all__ = [
    'FailureReason',
    'FAILURE_MESSAGES',
    'FAILURE_STEPS',
    'get_failure_message',
]
