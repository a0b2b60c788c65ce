"""
pedmed: pediatric drug lookup over a tabular knowledge base.

    from pedmed import answer
    result = answer("paracetamol chống chỉ định", records)
"""
from pedmed.catalog.records import AttributeIdentifier, DrugRecord
from pedmed.services.query_service import AnswerResult, DrugQueryPipeline, answer, answer_async

__version__ = "0.1.0"

__all__ = [
    "AnswerResult",
    "AttributeIdentifier",
    "DrugQueryPipeline",
    "DrugRecord",
    "answer",
    "answer_async",
]
