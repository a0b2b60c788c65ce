"""
Drug records and the fixed set of clinical attribute identifiers.

One DrugRecord per spreadsheet row. Every record exposes every
AttributeIdentifier; a missing cell is stored as "" so lookups never need
to distinguish "absent" from "blank".
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from pedmed.utils.text import fold, plain_fold


class AttributeIdentifier(str, Enum):
    """
    Canonical clinical columns, in sheet order.

    Declaration order is the dictionary order used for tie-breaking.
    """
    CLASSIFICATION = "CLASSIFICATION"
    DOSAGE_NEONATE = "DOSAGE_NEONATE"
    DOSAGE_CHILD = "DOSAGE_CHILD"
    RENAL_ADJUSTMENT = "RENAL_ADJUSTMENT"
    HEPATIC_ADJUSTMENT = "HEPATIC_ADJUSTMENT"
    CONTRAINDICATIONS = "CONTRAINDICATIONS"
    ADVERSE_EFFECTS = "ADVERSE_EFFECTS"
    ADMINISTRATION = "ADMINISTRATION"
    INTERACTIONS = "INTERACTIONS"
    OVERDOSE = "OVERDOSE"
    MONITORING = "MONITORING"
    INSURANCE = "INSURANCE"

    @property
    def label(self) -> str:
        return ATTRIBUTE_LABELS[self]

    @property
    def family(self) -> str:
        """Prefix shared by related columns, e.g. DOSAGE for both dosage columns."""
        return self.value.split("_", 1)[0]


# Header text of each column in the source sheet
ATTRIBUTE_LABELS: Dict[AttributeIdentifier, str] = {
    AttributeIdentifier.CLASSIFICATION: "1. PHÂN LOẠI DƯỢC LÝ",
    AttributeIdentifier.DOSAGE_NEONATE: "2.1. LIỀU THÔNG THƯỜNG TRẺ SƠ SINH",
    AttributeIdentifier.DOSAGE_CHILD: "2.2. LIỀU THÔNG THƯỜNG TRẺ EM",
    AttributeIdentifier.RENAL_ADJUSTMENT: "2.3. HIỆU CHỈNH LIỀU THEO CHỨC NĂNG THẬN",
    AttributeIdentifier.HEPATIC_ADJUSTMENT: "2.4. HIỆU CHỈNH LIỀU THEO CHỨC NĂNG GAN",
    AttributeIdentifier.CONTRAINDICATIONS: "3. CHỐNG CHỈ ĐỊNH",
    AttributeIdentifier.ADVERSE_EFFECTS: "4. TÁC DỤNG KHÔNG MONG MUỐN ĐIỂN HÌNH VÀ THẬN TRỌNG",
    AttributeIdentifier.ADMINISTRATION: "5. CÁCH DÙNG (Ngoài đường tĩnh mạch)",
    AttributeIdentifier.INTERACTIONS: "6. TƯƠNG TÁC THUỐC",
    AttributeIdentifier.OVERDOSE: "7. QUÁ LIỀU",
    AttributeIdentifier.MONITORING: "8. THEO DÕI ĐIỀU TRỊ",
    AttributeIdentifier.INSURANCE: "9. BẢO HIỂM Y TẾ THANH TOÁN",
}

DOSAGE_IDENTIFIERS = frozenset({
    AttributeIdentifier.DOSAGE_NEONATE,
    AttributeIdentifier.DOSAGE_CHILD,
})

ADJUSTMENT_IDENTIFIERS = frozenset({
    AttributeIdentifier.RENAL_ADJUSTMENT,
    AttributeIdentifier.HEPATIC_ADJUSTMENT,
})

NOT_SPECIFIED = "Not specified"


def _empty_attributes() -> Mapping[AttributeIdentifier, str]:
    return MappingProxyType({identifier: "" for identifier in AttributeIdentifier})


@dataclass(frozen=True)
class DrugRecord:
    """
    One drug row.

    Attributes:
        name: Canonical name (the HOẠT CHẤT column)
        attributes: Identifier → raw cell text (HTML allowed, "" when missing)
        aliases: Alternative/brand names from the sheet
        last_updated: Free-form marker from the CẬP NHẬT column
    """
    name: str
    attributes: Mapping[AttributeIdentifier, str] = field(default_factory=_empty_attributes)
    aliases: Tuple[str, ...] = ()
    last_updated: str = NOT_SPECIFIED

    @classmethod
    def create(
        cls,
        name: str,
        attributes: Optional[Mapping] = None,
        aliases: Iterable[str] = (),
        last_updated: Optional[str] = None,
    ) -> "DrugRecord":
        """
        Build a record, filling every identifier and freezing the mapping.

        Keys may be AttributeIdentifier members or their string values.
        """
        values = {identifier: "" for identifier in AttributeIdentifier}
        for key, value in (attributes or {}).items():
            values[AttributeIdentifier(key)] = "" if value is None else str(value)

        cleaned_aliases = tuple(
            alias.strip() for alias in aliases if alias and alias.strip()
        )

        return cls(
            name=name.strip(),
            attributes=MappingProxyType(values),
            aliases=cleaned_aliases,
            last_updated=(last_updated or "").strip() or NOT_SPECIFIED,
        )

    def get(self, identifier: AttributeIdentifier) -> str:
        return self.attributes.get(identifier, "") or ""

    @property
    def key(self) -> str:
        """Deduplication key (case and accent insensitive)."""
        return plain_fold(self.name)

    def populated(self) -> Tuple[AttributeIdentifier, ...]:
        return tuple(
            identifier for identifier in AttributeIdentifier
            if self.get(identifier).strip()
        )


def identifier_for_header(header: str) -> Optional[AttributeIdentifier]:
    """
    Map a sheet header to its identifier.

    Accepts the exact label, the label without its numbering ("CHỐNG CHỈ ĐỊNH"),
    or the identifier value itself ("CONTRAINDICATIONS").
    """
    if not header:
        return None
    wanted = fold(header)
    for identifier, label in ATTRIBUTE_LABELS.items():
        bare_label = re.sub(r"^[\d.\s]+", "", label)
        if wanted in (fold(label), fold(bare_label), identifier.value.lower()):
            return identifier
    return None
