"""Shared fixtures: a small drug sheet in the shape of the real one."""
import pytest

from pedmed.catalog.entity_catalog import EntityCatalog
from pedmed.catalog.records import AttributeIdentifier as A
from pedmed.catalog.records import DrugRecord


MEROPENEM_CHILD_DOSE = (
    "<details><summary>Viêm màng não</summary>40 mg/kg mỗi 8 giờ, tối đa 2 g/lần</details>"
    "<details><summary>Nhiễm khuẩn nhẹ</summary>10 mg/kg mỗi 8 giờ</details>"
)


@pytest.fixture
def paracetamol():
    return DrugRecord.create(
        name="Paracetamol",
        attributes={
            A.CLASSIFICATION: "Giảm đau, hạ sốt",
            A.DOSAGE_NEONATE: "10 mg/kg mỗi 6-8 giờ",
            A.DOSAGE_CHILD: "10-15 mg/kg mỗi 4-6 giờ, tối đa 60 mg/kg/ngày",
            A.RENAL_ADJUSTMENT: "ClCr 10-50: khoảng cách liều 6 giờ",
            A.HEPATIC_ADJUSTMENT: "Giảm liều ở bệnh nhân suy gan",
            A.CONTRAINDICATIONS: "Suy gan nặng; dị ứng paracetamol",
            A.ADVERSE_EFFECTS: "Phát ban; buồn nôn",
            A.INTERACTIONS: "Warfarin: tăng nguy cơ chảy máu",
        },
        aliases=["Efferalgan", "Panadol"],
        last_updated="01/2024",
    )


@pytest.fixture
def meropenem():
    return DrugRecord.create(
        name="Meropenem",
        attributes={
            A.DOSAGE_NEONATE: "20 mg/kg mỗi 12 giờ",
            A.DOSAGE_CHILD: MEROPENEM_CHILD_DOSE,
            A.CONTRAINDICATIONS: "Quá mẫn với carbapenem",
            A.ADMINISTRATION: "Truyền tĩnh mạch trong 15-30 phút",
        },
    )


@pytest.fixture
def ibuprofen():
    return DrugRecord.create(
        name="Ibuprofen",
        attributes={
            A.DOSAGE_CHILD: "5-10 mg/kg mỗi 6-8 giờ",
            A.INTERACTIONS: "",
        },
    )


@pytest.fixture
def records(paracetamol, meropenem, ibuprofen):
    return [paracetamol, meropenem, ibuprofen]


@pytest.fixture
def catalog(records):
    return EntityCatalog(records)


class StaticBackend:
    """Backend that always answers with the same text."""

    name = "static"

    def __init__(self, reply="Trẻ em dùng 40 mg/kg mỗi 8 giờ."):
        self.reply = reply
        self.calls = []

    def generate(self, prompt, timeout):
        self.calls.append((prompt, timeout))
        return self.reply


class FailingBackend:
    name = "failing"

    def generate(self, prompt, timeout):
        raise RuntimeError("backend unavailable")


@pytest.fixture
def static_backend():
    return StaticBackend()


@pytest.fixture
def failing_backend():
    return FailingBackend()
