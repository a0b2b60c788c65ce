"""
Unit tests for keyword extraction (drug mentions, columns, query context).
"""
import pytest

from pedmed.catalog.records import AttributeIdentifier as A
from pedmed.retrieval.keyword_extractor import KeywordExtractor, build_alias_table, extract_keywords


class TestCategoryTriggers:
    def setup_method(self):
        self.extractor = KeywordExtractor()

    @pytest.mark.parametrize("query,expected", [
        ("paracetamol chống chỉ định", [A.CONTRAINDICATIONS]),
        ("paracetamol tác dụng phụ", [A.ADVERSE_EFFECTS]),
        ("ibuprofen thận trọng", [A.ADVERSE_EFFECTS]),
        ("vancomycin liều suy thận", [A.RENAL_ADJUSTMENT]),
        ("vancomycin renal dose adjustment", [A.RENAL_ADJUSTMENT]),
        ("paracetamol quá liều", [A.OVERDOSE]),
        ("meropenem cách dùng", [A.ADMINISTRATION]),
        ("meropenem bhyt", [A.INSURANCE]),
        ("ibuprofen side effects", [A.ADVERSE_EFFECTS]),
    ])
    def test_primary_triggers(self, query, expected):
        """Test: trigger phrases map to their columns"""
        assert self.extractor.extract(query).categories == expected

    def test_generic_dosage_fans_out_in_dictionary_order(self):
        """Test: bare 'liều' proposes both dosage columns, neonate first"""
        assert self.extractor.extract("paracetamol liều").categories == [A.DOSAGE_NEONATE, A.DOSAGE_CHILD]

    def test_longest_phrase_wins(self):
        """Test: 'liều trẻ em' beats the shorter 'liều' and 'trẻ em' inside it"""
        assert self.extractor.extract("paracetamol liều trẻ em").categories == [A.DOSAGE_CHILD]

    def test_qualifier_alone(self):
        """Test: an audience qualifier is used when nothing else matched"""
        assert self.extractor.extract("paracetamol trẻ sơ sinh").categories == [A.DOSAGE_NEONATE]

    def test_qualifier_ignored_with_primary_trigger(self):
        result = self.extractor.extract("paracetamol chống chỉ định trẻ em")
        assert result.categories == [A.CONTRAINDICATIONS]

    def test_unaccented_query(self):
        """Test: 'lieu dung' matches 'liều dùng'"""
        assert self.extractor.extract("paracetamol lieu dung").categories == [A.DOSAGE_NEONATE, A.DOSAGE_CHILD]

    def test_case_insensitive(self):
        upper = self.extractor.extract("PARACETAMOL CHỐNG CHỈ ĐỊNH")
        assert upper.categories == [A.CONTRAINDICATIONS]

    def test_no_trigger(self):
        assert self.extractor.extract("paracetamol là gì").categories == []

    def test_empty_query(self):
        result = self.extractor.extract("   ")
        assert result.drugs == []
        assert result.categories == []


class TestDrugMentions:
    def test_catalog_alias(self, catalog):
        """Test: brand name resolves to the catalog spelling"""
        result = extract_keywords("Panadol liều trẻ em", catalog)
        assert result.drugs == ["Paracetamol"]
        assert result.categories == [A.DOSAGE_CHILD]
        assert result.alias_hit

    def test_static_alias_without_catalog(self):
        result = extract_keywords("Rocephin liều dùng")
        assert result.drugs == ["ceftriaxone"]

    def test_aliases_ordered_by_position(self, catalog):
        result = extract_keywords("ibuprofen và paracetamol tương tác", catalog)
        assert result.drugs == ["Ibuprofen", "Paracetamol"]

    def test_same_drug_twice(self, catalog):
        result = extract_keywords("panadol hay efferalgan liều", catalog)
        assert result.drugs == ["Paracetamol"]

    def test_fallback_token(self):
        """Test: unknown long token is kept as a drug candidate"""
        result = extract_keywords("xyz123 liều dùng")
        assert result.drugs == ["xyz123"]
        assert not result.alias_hit

    def test_fallback_skips_stop_words_and_numbers(self):
        result = extract_keywords("liều 12345 cho người bệnh")
        assert result.drugs == []

    def test_fallback_skips_context_phrases(self):
        result = extract_keywords("amikacin liều cho viêm màng não")
        assert result.drugs == ["amikacin"]
        assert result.context.conditions == {"viêm màng não"}

    def test_fallback_dedupes(self):
        assert extract_keywords("amikacin AMIKACIN liều").drugs == ["amikacin"]

    def test_short_tokens_only(self):
        assert extract_keywords("hôm nay thế nào").drugs == []


class TestQueryContext:
    def test_condition_and_severity(self):
        context = extract_keywords("meropenem liều cho viêm màng não nặng").context
        assert context.conditions == {"viêm màng não"}
        assert context.severities == {"nặng"}

    def test_nested_condition_reported_once(self):
        context = extract_keywords("meropenem nhiễm khuẩn huyết liều").context
        assert context.conditions == {"nhiễm khuẩn huyết"}

    def test_body_weight_is_not_severity(self):
        """Test: 'cân nặng' does not count as the severity keyword 'nặng'"""
        context = extract_keywords("paracetamol liều theo cân nặng").context
        assert context.is_empty

    def test_patient_type_and_route(self):
        context = extract_keywords("vancomycin truyền tĩnh mạch cho trẻ sơ sinh").context
        assert context.patient_types == {"trẻ sơ sinh"}
        assert context.routes == {"truyền tĩnh mạch"}


class TestAliasTable:
    def test_catalog_spelling_wins(self):
        table = build_alias_table({"Paracetamol": ("Panadol",)})
        assert table["Paracetamol"][:2] == ("Paracetamol", "Panadol")
        assert "acetaminophen" in table["Paracetamol"]
        assert "paracetamol" not in table

    def test_static_entries_kept(self):
        assert build_alias_table()["vancomycin"] == ("vancomycin", "vancocin")
