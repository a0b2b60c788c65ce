"""
End-to-end tests for the lookup pipeline.
"""
import asyncio

import pytest

from pedmed import answer, answer_async
from pedmed.catalog.entity_catalog import CatalogStore
from pedmed.catalog.records import AttributeIdentifier as A
from pedmed.catalog.records import DrugRecord
from pedmed.guardrails import FailureReason
from pedmed.services.query_service import DrugQueryPipeline, list_topics


class TestScenarios:
    def test_contraindications(self, records):
        """Test: contraindication question returns the framed cell"""
        result = answer("paracetamol chống chỉ định", records)

        assert result.success
        assert result.drug_name == "Paracetamol"
        assert result.category == A.CONTRAINDICATIONS
        assert result.confidence == 100
        assert result.step is None
        assert result.message.startswith("🚨")
        assert "⛔ Suy gan nặng; dị ứng paracetamol" in result.message
        assert not result.used_generative

    def test_unknown_drug(self, records):
        result = answer("xyz123 liều dùng", records)

        assert not result.success
        assert result.step == 2
        assert result.failure_reason == FailureReason.UNKNOWN_ENTITY
        assert "xyz123" in result.message

    def test_nested_dose_narrowed_to_condition(self, records):
        """Test: meningitis question keeps only the meningitis section"""
        result = answer("meropenem liều cho viêm màng não", records)

        assert result.success
        assert result.category == A.DOSAGE_CHILD
        assert result.narrowed
        assert result.refinement_mode == "sections"
        assert "40 mg/kg mỗi 8 giờ, tối đa 2 g/lần" in result.message
        assert "10 mg/kg mỗi 8 giờ" not in result.message

    def test_blank_cell(self, records):
        result = answer("ibuprofen tương tác", records)

        assert not result.success
        assert result.step == 4
        assert result.failure_reason == FailureReason.EMPTY_FIELD
        assert result.drug_name == "Ibuprofen"
        assert "6. TƯƠNG TÁC THUỐC" in result.message

    def test_column_empty_everywhere(self, ibuprofen):
        """Test: a column no record populates stops at category resolution"""
        result = answer("ibuprofen quá liều", [ibuprofen])

        assert not result.success
        assert result.step == 3
        assert result.failure_reason == FailureReason.NO_POPULATED_CATEGORY
        assert result.category == A.OVERDOSE
        assert result.drug_name == "Ibuprofen"
        assert "Không tìm thấy thông tin về \"7. QUÁ LIỀU\" trong dữ liệu" in result.message

    def test_failure_steps(self):
        assert FailureReason.NO_ENTITY_IDENTIFIED.step == 1
        assert FailureReason.UNKNOWN_ENTITY.step == 2
        assert FailureReason.NO_POPULATED_CATEGORY.step == 3
        assert FailureReason.EMPTY_FIELD.step == 4
        assert FailureReason.INTERNAL_ERROR.step == 0

    def test_no_drug(self, records):
        result = answer("hôm nay thế nào", records)

        assert result.step == 1
        assert result.failure_reason == FailureReason.NO_ENTITY_IDENTIFIED

    def test_no_category(self, records):
        result = answer("paracetamol là gì", records)

        assert result.step == 1
        assert result.failure_reason == FailureReason.NO_CATEGORY_IDENTIFIED


class TestQueryVariants:
    @pytest.mark.parametrize("query", [
        "PARACETAMOL CHỐNG CHỈ ĐỊNH",
        "paracetamol chong chi dinh",
        "panadol chống chỉ định",
        "  paracetamol   chống chỉ định ",
    ])
    def test_equivalent_queries(self, records, query):
        """Test: case, accents, aliases and spacing give the same answer"""
        expected = answer("paracetamol chống chỉ định", records)
        result = answer(query, records)

        assert result.message == expected.message
        assert result.drug_name == expected.drug_name
        assert result.category == expected.category

    def test_deterministic(self, records):
        assert answer("meropenem liều cho viêm màng não", records) == answer("meropenem liều cho viêm màng não", records)

    def test_longest_phrase(self, records):
        assert answer("paracetamol liều trẻ em", records).category == A.DOSAGE_CHILD

    def test_generic_dose_prefers_neonate(self, records):
        assert answer("paracetamol liều", records).category == A.DOSAGE_NEONATE

    def test_renal_adjustment(self, records):
        result = answer("paracetamol liều suy thận", records)
        assert result.category == A.RENAL_ADJUSTMENT
        assert "ClCr 10-50" in result.message

    def test_renal_tiers_with_comparison_signs(self):
        """Test: every ClCr tier reaches the answer, including '<10' and '>50'"""
        tiers = "ClCr <10: 10 mg/kg mỗi 24 giờ; ClCr 10-50: mỗi 12 giờ; ClCr >50: không chỉnh"
        vancomycin = DrugRecord.create("Vancomycin", {A.RENAL_ADJUSTMENT: tiers})

        result = answer("vancomycin chỉnh liều theo thận", [vancomycin])

        assert result.success
        assert result.category == A.RENAL_ADJUSTMENT
        assert tiers in result.message


class TestGenerativeBackend:
    def test_generative_answer(self, records, static_backend):
        result = answer("meropenem liều cho viêm màng não", records, generative_backend=static_backend)

        assert result.success
        assert result.used_generative
        assert result.message == static_backend.reply

    def test_backend_failure_is_invisible(self, records, failing_backend):
        plain = answer("paracetamol chống chỉ định", records)
        result = answer("paracetamol chống chỉ định", records, generative_backend=failing_backend)

        assert result.success
        assert result.message == plain.message
        assert not result.used_generative
        assert result.backend_error

    def test_failures_skip_backend(self, records, static_backend):
        answer("xyz123 liều dùng", records, generative_backend=static_backend)
        assert static_backend.calls == []


class TestPipeline:
    def test_internal_error(self, records):
        """Test: unexpected errors become step 0 failures"""
        pipeline = DrugQueryPipeline(records)

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        pipeline.refiner.refine = broken
        result = pipeline.answer("paracetamol chống chỉ định")

        assert not result.success
        assert result.step == 0
        assert result.failure_reason == FailureReason.INTERNAL_ERROR

    def test_invalid_records(self):
        result = answer("paracetamol chống chỉ định", [None])
        assert result.failure_reason == FailureReason.INTERNAL_ERROR

    def test_catalog_store_swap(self, records, ibuprofen):
        store = CatalogStore()
        store.replace(records)
        pipeline = DrugQueryPipeline(store)
        assert pipeline.answer("paracetamol chống chỉ định").success

        store.replace([ibuprofen])
        result = pipeline.answer("paracetamol chống chỉ định")
        assert result.failure_reason == FailureReason.UNKNOWN_ENTITY

    def test_keyword_extractor_follows_snapshot(self, paracetamol, ibuprofen):
        """Test: aliases of a swapped-in catalog are recognized, the old extractor is not reused"""
        store = CatalogStore()
        store.replace([ibuprofen])
        pipeline = DrugQueryPipeline(store)
        old_snapshot = store.snapshot()
        old_extractor = pipeline._keyword_extractor(old_snapshot)
        assert pipeline._keyword_extractor(old_snapshot) is old_extractor

        store.replace([paracetamol, ibuprofen])
        new_extractor = pipeline._keyword_extractor(store.snapshot())

        assert new_extractor is not old_extractor
        assert pipeline._keyword_extractor(store.snapshot()) is new_extractor
        assert pipeline.answer("panadol chống chỉ định").drug_name == "Paracetamol"

    def test_accepts_entity_catalog(self, catalog):
        assert answer("paracetamol chống chỉ định", catalog).success

    def test_answer_async(self, records, static_backend):
        result = asyncio.run(answer_async("meropenem liều cho viêm màng não", records, static_backend))
        assert result.used_generative

    def test_to_dict(self, records):
        data = answer("paracetamol chống chỉ định", records).to_dict()

        assert data["category"] == "CONTRAINDICATIONS"
        assert data["category_label"] == "3. CHỐNG CHỈ ĐỊNH"
        assert data["failure_reason"] is None
        assert data["last_updated"] == "01/2024"

        failure = answer("hôm nay thế nào", records).to_dict()
        assert failure["failure_reason"] == "NO_ENTITY_IDENTIFIED"
        assert failure["step"] == 1

    def test_list_topics(self):
        topics = list_topics()
        assert len(topics) == 12
        assert topics[0] == "1. PHÂN LOẠI DƯỢC LÝ"
