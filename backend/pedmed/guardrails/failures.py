"""
Failure taxonomy for the lookup pipeline.

Every failure is a normal, typed outcome: the pipeline short-circuits with
one of these reasons and a user-facing message instead of raising.

Step numbers identify the stage that stopped the query:
    1 keyword extraction   2 entity resolution   3 category resolution
    4 cell extraction      0 internal error

Step 3 fails when no record in the catalog populates any requested column
(nor a sibling column of the same family); step 4 fails when only the
resolved drug's own cell is blank.
"""
from enum import Enum
from typing import Iterable, Optional


class FailureReason(str, Enum):
    NO_ENTITY_IDENTIFIED = "NO_ENTITY_IDENTIFIED"
    NO_CATEGORY_IDENTIFIED = "NO_CATEGORY_IDENTIFIED"
    UNKNOWN_ENTITY = "UNKNOWN_ENTITY"
    NO_POPULATED_CATEGORY = "NO_POPULATED_CATEGORY"
    EMPTY_FIELD = "EMPTY_FIELD"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def step(self) -> int:
        return FAILURE_STEPS[self]


FAILURE_STEPS = {
    FailureReason.NO_ENTITY_IDENTIFIED: 1,
    FailureReason.NO_CATEGORY_IDENTIFIED: 1,
    FailureReason.UNKNOWN_ENTITY: 2,
    FailureReason.NO_POPULATED_CATEGORY: 3,
    FailureReason.EMPTY_FIELD: 4,
    FailureReason.INTERNAL_ERROR: 0,
}

# User-facing messages (Vietnamese, the knowledge base language)
FAILURE_MESSAGES = {
    FailureReason.NO_ENTITY_IDENTIFIED: (
        "⚠️ Không thể xác định tên thuốc trong câu hỏi. "
        "Vui lòng cung cấp tên hoạt chất hoặc tên thương mại của thuốc."
    ),
    FailureReason.NO_CATEGORY_IDENTIFIED: (
        "⚠️ Không thể xác định loại thông tin cần tìm. "
        "Vui lòng chỉ rõ bạn muốn hỏi về: liều dùng, chống chỉ định, tác dụng phụ, "
        "tương tác thuốc, cách dùng, v.v."
    ),
    FailureReason.UNKNOWN_ENTITY: (
        "⚠️ Không tìm thấy thông tin về thuốc \"{drug}\" trong cơ sở dữ liệu. "
        "Vui lòng kiểm tra lại tên thuốc."
    ),
    FailureReason.NO_POPULATED_CATEGORY: (
        "⚠️ Không tìm thấy thông tin về \"{topic}\" trong dữ liệu. "
        "Vui lòng tham khảo bác sĩ hoặc dược sĩ."
    ),
    FailureReason.EMPTY_FIELD: (
        "⚠️ Chưa có dữ liệu về \"{topic}\" cho thuốc {drug}. "
        "Vui lòng tham khảo bác sĩ hoặc dược sĩ."
    ),
    FailureReason.INTERNAL_ERROR: (
        "⚠️ Đã xảy ra lỗi khi xử lý câu hỏi. Vui lòng thử lại sau."
    ),
}


def get_failure_message(
    reason: FailureReason,
    drug_name: Optional[str] = None,
    topics: Optional[Iterable[str]] = None,
) -> str:
    """
    Render the user-facing message for a failure.

    Args:
        reason: Failure reason
        drug_name: Drug (resolved name or extracted mention), if any
        topics: Category labels involved, if any

    Examples:
        >>> get_failure_message(FailureReason.UNKNOWN_ENTITY, drug_name="xyz123")
        '⚠️ Không tìm thấy thông tin về thuốc "xyz123" trong cơ sở dữ liệu. ...'
    """
    topic = ", ".join(topics) if topics else "thông tin này"
    return FAILURE_MESSAGES[reason].format(drug=drug_name or "này", topic=topic)
