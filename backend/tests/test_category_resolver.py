"""
Unit tests for column ranking and context bonuses.
"""
from pedmed.catalog.records import AttributeIdentifier as A
from pedmed.core.config import Settings
from pedmed.resolver.candidates import MatchStrategy
from pedmed.resolver.category_resolver import CategoryResolver

DOSAGE = [A.DOSAGE_NEONATE, A.DOSAGE_CHILD]


class TestCategoryResolver:
    def setup_method(self):
        self.resolver = CategoryResolver()

    def scores(self, ranked):
        return {candidate.item: candidate.confidence for candidate in ranked}

    def test_contraindication_bonus(self, catalog):
        """Test: explicit contraindication question scores 100 + 40"""
        ranked = self.resolver.resolve([A.CONTRAINDICATIONS], catalog.available_identifiers(), "paracetamol chống chỉ định")
        assert ranked[0].item == A.CONTRAINDICATIONS
        assert ranked[0].confidence == 140
        assert ranked[0].strategy == MatchStrategy.EXACT

    def test_plain_exact_match(self, catalog):
        ranked = self.resolver.resolve([A.INTERACTIONS], catalog.available_identifiers(), "paracetamol tương tác")
        assert self.scores(ranked) == {A.INTERACTIONS: 100}

    def test_neonate_audience_bonus(self, catalog):
        ranked = self.resolver.resolve(DOSAGE, catalog.available_identifiers(), "paracetamol liều trẻ sơ sinh")
        assert ranked[0].item == A.DOSAGE_NEONATE
        assert self.scores(ranked) == {A.DOSAGE_NEONATE: 130, A.DOSAGE_CHILD: 100}

    def test_severe_condition_bonus(self, catalog):
        """Test: severe named condition lifts the pediatric column"""
        ranked = self.resolver.resolve(DOSAGE, catalog.available_identifiers(), "meropenem liều cho viêm màng não nặng")
        assert ranked[0].item == A.DOSAGE_CHILD
        assert ranked[0].confidence == 145

    def test_condition_only_bonus(self, catalog):
        ranked = self.resolver.resolve(DOSAGE, catalog.available_identifiers(), "meropenem liều cho viêm màng não")
        assert self.scores(ranked) == {A.DOSAGE_NEONATE: 100, A.DOSAGE_CHILD: 120}

    def test_exact_cap(self, catalog):
        ranked = self.resolver.resolve(
            DOSAGE, catalog.available_identifiers(), "meropenem liều trẻ em viêm màng não nặng",
        )
        assert ranked[0].item == A.DOSAGE_CHILD
        assert ranked[0].confidence == 150

    def test_partial_match(self):
        """Test: a sibling column of the same family is offered at 70"""
        ranked = self.resolver.resolve([A.DOSAGE_NEONATE], [A.DOSAGE_CHILD], "liều sơ sinh")
        assert ranked[0].item == A.DOSAGE_CHILD
        assert ranked[0].confidence == 70
        assert ranked[0].strategy == MatchStrategy.PARTIAL

    def test_partial_cap(self):
        ranked = self.resolver.resolve([A.DOSAGE_NEONATE], [A.DOSAGE_CHILD], "liều trẻ em viêm màng não nặng")
        assert ranked[0].confidence == 120

    def test_nothing_available(self, catalog):
        assert self.resolver.resolve([A.INSURANCE], catalog.available_identifiers(), "paracetamol bhyt") == []

    def test_ties_keep_dictionary_order(self, catalog):
        ranked = self.resolver.resolve(
            [A.DOSAGE_CHILD, A.DOSAGE_NEONATE], catalog.available_identifiers(), "paracetamol liều",
        )
        assert [c.item for c in ranked] == DOSAGE
        assert [c.confidence for c in ranked] == [100, 100]

    def test_tunable_scores(self, catalog):
        resolver = CategoryResolver(Settings(CONTRAINDICATION_BONUS=10))
        ranked = resolver.resolve([A.CONTRAINDICATIONS], catalog.available_identifiers(), "chống chỉ định")
        assert ranked[0].confidence == 110
