"""
Prompt templates and safety framing for answer generation.

Critical constraints:
- The generative backend may only rephrase the extracted cell text
- No facts outside the supplied text
- Bounded length (about 150 words)
"""

CONTRAINDICATION_RATIONALE = (
    "💡 **Lý do quan trọng:** Chống chỉ định là những tình huống tuyệt đối KHÔNG được "
    "sử dụng thuốc vì có thể gây nguy hiểm nghiêm trọng cho bệnh nhân."
)

DOSAGE_CAUTION = (
    "⚠️ **Lưu ý:** Liều dùng phải được điều chỉnh theo tình trạng bệnh nhân và theo "
    "chỉ định của bác sĩ."
)

ADVERSE_EFFECTS_NOTE = (
    "⚠️ **Nếu gặp bất kỳ triệu chứng nào, hãy ngưng thuốc và tham khảo ý kiến bác sĩ "
    "ngay lập tức.**"
)

SYSTEM_PROMPT = """Bạn là dược sĩ lâm sàng nhi khoa. Nhiệm vụ của bạn là diễn đạt lại thông tin thuốc đã được trích xuất từ cơ sở dữ liệu thành câu trả lời ngắn gọn, dễ hiểu.

QUY TẮC BẮT BUỘC:
1. Chỉ sử dụng thông tin trong phần "Thông tin trích xuất" - KHÔNG thêm bất kỳ dữ kiện nào khác
2. Giữ nguyên liều lượng, đơn vị, tần suất và tên bệnh lý như trong văn bản gốc
3. Không đưa ra ý kiến cá nhân, không suy đoán
4. Trả lời bằng tiếng Việt, tối đa khoảng {max_words} từ
5. Nếu thông tin trích xuất không trả lời được câu hỏi, hãy nói rõ và khuyên tham khảo bác sĩ/dược sĩ"""

USER_PROMPT_TEMPLATE = """Câu hỏi: {query}

Thuốc: {drug_name}
Mục thông tin: {category_label}
Ngữ cảnh câu hỏi: {context}

Thông tin trích xuất:
{extracted_text}

---

Hãy trả lời câu hỏi chỉ dựa trên thông tin trích xuất ở trên."""

MAX_ANSWER_WORDS = 150

# Opinion/invention markers: an answer containing one is rejected
HALLUCINATION_MARKERS = [
    "in my opinion",
    "i believe",
    "as far as i know",
    "to the best of my knowledge",
    "theo ý kiến của tôi",
    "tôi nghĩ rằng",
    "theo hiểu biết của tôi",
]


def format_system_prompt(max_words: int = MAX_ANSWER_WORDS) -> str:
    return SYSTEM_PROMPT.format(max_words=max_words)


def format_answer_prompt(
    query: str,
    drug_name: str,
    category_label: str,
    extracted_text: str,
    context: str = "",
) -> str:
    """Format the user prompt with the question and the extracted fact."""
    return USER_PROMPT_TEMPLATE.format(
        query=query,
        drug_name=drug_name,
        category_label=category_label,
        context=context or "không có",
        extracted_text=extracted_text,
    )


def contains_hallucination_marker(answer: str) -> bool:
    lowered = answer.lower()
    return any(marker in lowered for marker in HALLUCINATION_MARKERS)
