"""
Declarative keyword tables for query understanding.

Everything the extractor and resolvers know about language lives here as
data: category trigger phrases, drug aliases, stop words, and the context
keyword tables (condition, severity, patient type, administration route).

Phrases are written in their accented Vietnamese form (or English) and
lower-case; matching folds case and, for unaccented queries, accents.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from pedmed.catalog.records import AttributeIdentifier as A
from pedmed.utils.text import plain_fold


@dataclass(frozen=True)
class CategoryDictionaryEntry:
    """
    One trigger phrase and the columns it points to.

    Attributes:
        phrase: Trigger text, lower-case
        identifiers: Target columns (a phrase may fan out to several)
        qualifier: Audience-only trigger ("trẻ em"); used only when no
            primary trigger matched
    """
    phrase: str
    identifiers: Tuple[A, ...]
    qualifier: bool = False


def _entries(identifiers, phrases, qualifier=False) -> List[CategoryDictionaryEntry]:
    return [CategoryDictionaryEntry(phrase, tuple(identifiers), qualifier) for phrase in phrases]


DOSAGE_ANY = (A.DOSAGE_NEONATE, A.DOSAGE_CHILD)

CATEGORY_DICTIONARY: Tuple[CategoryDictionaryEntry, ...] = tuple(
    # Drug classification
    _entries([A.CLASSIFICATION], [
        "phân loại", "phân loại dược lý", "nhóm thuốc", "nhóm dược lý",
        "classification", "drug class",
    ])
    # Dosage (generic → both audiences)
    + _entries(DOSAGE_ANY, [
        "liều", "liều dùng", "liều lượng", "liều thông thường", "bao nhiêu mg",
        "dose", "dosage", "dosing",
    ])
    + _entries([A.DOSAGE_NEONATE], [
        "liều sơ sinh", "liều trẻ sơ sinh", "liều cho trẻ sơ sinh",
        "liều thông thường trẻ sơ sinh", "neonatal dose", "newborn dose",
    ])
    + _entries([A.DOSAGE_CHILD], [
        "liều trẻ em", "liều cho trẻ em", "liều thông thường trẻ em",
        "pediatric dose", "paediatric dose", "child dose",
    ])
    # Audience qualifiers
    + _entries([A.DOSAGE_NEONATE], ["sơ sinh", "trẻ sơ sinh", "newborn", "neonate", "neonatal"], qualifier=True)
    + _entries([A.DOSAGE_CHILD], ["trẻ em", "pediatric", "paediatric", "children"], qualifier=True)
    # Kidney / liver adjustments
    + _entries([A.RENAL_ADJUSTMENT], [
        "thận", "suy thận", "chức năng thận", "hiệu chỉnh liều theo chức năng thận",
        "chỉnh liều theo thận", "kidney", "renal", "renal impairment",
        "renal dose adjustment", "renal adjustment",
    ])
    + _entries([A.HEPATIC_ADJUSTMENT], [
        "gan", "suy gan", "chức năng gan", "hiệu chỉnh liều theo chức năng gan",
        "chỉnh liều theo gan", "liver", "hepatic", "hepatic impairment",
        "hepatic dose adjustment", "hepatic adjustment",
    ])
    # Contraindications
    + _entries([A.CONTRAINDICATIONS], [
        "chống chỉ định", "cấm", "không được dùng", "không được",
        "contraindication", "contraindicated", "forbidden",
    ])
    # Side effects
    + _entries([A.ADVERSE_EFFECTS], [
        "tác dụng phụ", "tác dụng không mong muốn", "phản ứng", "phản ứng có hại",
        "thận trọng", "side effect", "adverse", "adverse effect", "adverse reaction",
        "precaution",
    ])
    # Administration
    + _entries([A.ADMINISTRATION], [
        "cách dùng", "đường dùng", "cách pha", "administration", "how to use",
        "how to give",
    ])
    # Interactions
    + _entries([A.INTERACTIONS], [
        "tương tác", "tương tác thuốc", "phối hợp", "dùng chung",
        "interaction", "drug interaction",
    ])
    # Overdose
    + _entries([A.OVERDOSE], ["quá liều", "ngộ độc", "overdose", "overdosage", "poisoning"])
    # Monitoring
    + _entries([A.MONITORING], ["theo dõi", "giám sát", "monitoring", "monitor"])
    # Insurance
    + _entries([A.INSURANCE], ["bảo hiểm", "bảo hiểm y tế", "bhyt", "thanh toán", "insurance"])
)

# Phrases that make a query explicitly about contraindications
CONTRAINDICATION_PHRASES: Tuple[str, ...] = tuple(
    entry.phrase for entry in CATEGORY_DICTIONARY
    if entry.identifiers == (A.CONTRAINDICATIONS,)
)

# Canonical drug name → aliases (generic spellings and brand names)
DRUG_ALIASES: Dict[str, Tuple[str, ...]] = {
    "tigecycline": ("tigecycline", "tygacil"),
    "amoxicillin": ("amoxicillin", "amoxycillin", "augmentin"),
    "ampicillin": ("ampicillin", "penbritin", "principen"),
    "meropenem": ("meropenem", "meronem", "merrem"),
    "vancomycin": ("vancomycin", "vancocin"),
    "ceftriaxone": ("ceftriaxone", "rocephin"),
    "paracetamol": ("paracetamol", "acetaminophen", "tylenol", "efferalgan"),
    "ibuprofen": ("ibuprofen", "brufen", "advil"),
    "cephalexin": ("cephalexin", "keflex", "cefalexin"),
    "cefazolin": ("cefazolin", "ancef", "kefzol"),
    "gentamicin": ("gentamicin", "garamycin"),
    "metronidazole": ("metronidazole", "flagyl"),
    "azithromycin": ("azithromycin", "zithromax"),
    "clarithromycin": ("clarithromycin", "biaxin"),
    "erythromycin": ("erythromycin", "erythrocin"),
    "ciprofloxacin": ("ciprofloxacin", "cipro"),
    "doxycycline": ("doxycycline", "vibramycin"),
    "clindamycin": ("clindamycin", "cleocin"),
    "trimethoprim": ("trimethoprim", "bactrim", "co-trimoxazole"),
    "fluconazole": ("fluconazole", "diflucan"),
    "nystatin": ("nystatin", "mycostatin"),
    "cefotaxime": ("cefotaxime", "claforan"),
    "imipenem": ("imipenem", "primaxin"),
    "piperacillin": ("piperacillin", "tazocin", "zosyn"),
    "lincomycin": ("lincomycin", "lincocin"),
    "linezolid": ("linezolid", "zyvox"),
}

# Query words that are never drug names (compared accent-stripped)
STOP_WORDS: FrozenSet[str] = frozenset(plain_fold(word) for word in [
    # Vietnamese
    "liều", "dùng", "cho", "trẻ", "em", "sơ", "sinh", "chống", "chỉ", "định",
    "tác", "dụng", "phụ", "cách", "tương", "quá", "theo", "dõi", "bảo", "hiểm",
    "thuốc", "nhiễm", "khuẩn", "những", "trường", "hợp", "được", "không", "người",
    "bệnh", "nhân", "thông", "thường", "lượng", "nhiêu", "trong", "ngày", "tháng",
    "tuổi", "chức", "năng", "chỉnh", "hiệu", "phản", "ứng", "giám", "thanh", "toán",
    "nặng", "nhẹ", "viêm", "uống", "tiêm", "truyền", "mạch", "như", "nào", "khi",
    "thế", "hôm", "muốn", "trọng", "điều", "trị",
    # English
    "dose", "doses", "dosage", "dosing", "for", "children", "child", "newborn",
    "neonate", "neonatal", "pediatric", "paediatric", "contraindication",
    "contraindications", "contraindicated", "side", "effect", "effects", "how",
    "to", "what", "which", "about", "should", "could", "would", "there", "their",
    "where", "when", "adverse", "reaction", "reactions", "interaction",
    "interactions", "overdose", "monitoring", "insurance", "renal", "hepatic",
    "kidney", "liver", "severe", "infection", "patient", "patients", "administration",
    "please", "tell", "information", "given", "daily", "weight",
])


# Context keyword tables (used only for re-ranking and narrowing)

CONDITION_KEYWORDS: Tuple[str, ...] = (
    "viêm màng não", "meningitis",
    "nhiễm khuẩn huyết", "sepsis", "nhiễm trùng huyết",
    "viêm phổi", "pneumonia",
    "nhiễm khuẩn da", "nhiễm khuẩn da và mô mềm", "skin infection",
    "nhiễm khuẩn tiết niệu", "urinary tract infection",
    "nhiễm khuẩn ổ bụng", "intra-abdominal infection",
    "viêm tai giữa", "otitis media",
    "viêm nội tâm mạc", "endocarditis",
    "viêm xương tủy", "osteomyelitis",
    "sốt giảm bạch cầu", "febrile neutropenia",
    "xơ nang", "cystic fibrosis",
    "nhiễm khuẩn", "nhiễm trùng", "infection",
    "sốt", "fever", "đau", "pain", "co giật", "seizure",
    "tiêu chảy", "diarrhea", "hen", "asthma",
    "suy thận", "suy gan",
)

SEVERITY_KEYWORDS: Tuple[str, ...] = (
    "rất nặng", "nặng", "nghiêm trọng", "đe dọa tính mạng", "severe", "life-threatening",
    "trung bình", "moderate",
    "nhẹ", "mild",
    "cấp tính", "acute", "mạn tính", "chronic",
)

# Subset of severity keywords that push towards the high-dose pediatric column
SEVERE_KEYWORDS: FrozenSet[str] = frozenset({
    "rất nặng", "nặng", "nghiêm trọng", "đe dọa tính mạng", "severe", "life-threatening",
})

PATIENT_TYPE_KEYWORDS: Tuple[str, ...] = (
    "trẻ sơ sinh", "sơ sinh", "trẻ sinh non", "sinh non", "newborn", "neonate",
    "neonatal", "preterm", "premature",
    "trẻ em", "trẻ nhỏ", "nhũ nhi", "thiếu niên", "children", "child",
    "pediatric", "paediatric", "infant", "adolescent",
)

ROUTE_KEYWORDS: Tuple[str, ...] = (
    "tiêm tĩnh mạch", "truyền tĩnh mạch", "tĩnh mạch", "intravenous", "iv",
    "tiêm bắp", "intramuscular", "im",
    "đường uống", "uống", "oral",
    "đặt hậu môn", "rectal", "khí dung", "nebulized", "bôi", "topical",
)

# Patient-type keywords that identify each dosage column's audience
AUDIENCE_KEYWORDS: Dict[A, Tuple[str, ...]] = {
    A.DOSAGE_NEONATE: (
        "trẻ sơ sinh", "sơ sinh", "trẻ sinh non", "sinh non", "newborn",
        "neonate", "neonatal", "preterm", "premature",
    ),
    A.DOSAGE_CHILD: (
        "trẻ em", "trẻ nhỏ", "nhũ nhi", "thiếu niên", "children", "child",
        "pediatric", "paediatric", "infant", "adolescent",
    ),
}

# Column boosted when a query names a severe or specific condition
HIGH_DOSE_IDENTIFIER = A.DOSAGE_CHILD

# Phrases blanked before context matching ("cân nặng" is body weight, not severity)
NEUTRAL_PHRASES: Tuple[str, ...] = ("cân nặng", "theo cân nặng", "body weight")
