"""
Unit tests for drug name resolution against the catalog.
"""
import pytest

from pedmed.catalog.entity_catalog import EntityCatalog
from pedmed.resolver.candidates import MatchStrategy
from pedmed.resolver.entity_resolver import EntityResolver, resolve_entity


class TestEntityResolver:
    def setup_method(self):
        self.resolver = EntityResolver()

    @pytest.mark.parametrize("term,name,confidence,strategy", [
        ("meropenem", "Meropenem", 100, MatchStrategy.EXACT),
        ("MEROPENEM", "Meropenem", 100, MatchStrategy.EXACT),
        ("paracetamol500", "Paracetamol", 95, MatchStrategy.REVERSE),
        ("panadol", "Paracetamol", 90, MatchStrategy.ALIAS),
        ("tylenol", "Paracetamol", 90, MatchStrategy.ALIAS),
        ("meropenen", "Meropenem", 80, MatchStrategy.FUZZY),
    ])
    def test_strategies(self, catalog, term, name, confidence, strategy):
        best = self.resolver.resolve([term], catalog)[0]
        assert best.item.name == name
        assert best.confidence == confidence
        assert best.strategy == strategy

    def test_unknown_drug(self, catalog):
        """Test: unknown names resolve to nothing (not an error)"""
        assert self.resolver.resolve(["xyzabc"], catalog) == []

    def test_best_signal_per_record(self, catalog):
        matches = self.resolver.resolve(["meropenen", "meropenem"], catalog)
        meropenem = [m for m in matches if m.item.name == "Meropenem"]
        assert len(meropenem) == 1
        assert meropenem[0].confidence == 100

    def test_ranked_by_confidence(self, catalog):
        matches = self.resolver.resolve(["panadol", "ibuprofen"], catalog)
        assert [m.item.name for m in matches] == ["Ibuprofen", "Paracetamol"]
        assert [m.confidence for m in matches] == [100, 90]

    def test_empty_inputs(self, catalog):
        assert self.resolver.resolve([], catalog) == []
        assert self.resolver.resolve(["   "], catalog) == []
        assert self.resolver.resolve(["meropenem"], EntityCatalog()) == []

    def test_resolve_entity_helper(self, catalog):
        assert resolve_entity(["efferalgan"], catalog).name == "Paracetamol"
        assert resolve_entity(["xyzabc"], catalog) is None
