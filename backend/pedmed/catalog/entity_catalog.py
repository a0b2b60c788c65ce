"""
Entity Catalog: an immutable snapshot of drug records plus the refresh holder.

Readers never see a partially built catalog: ``CatalogStore.refresh`` builds a
complete new ``EntityCatalog`` and swaps the reference in one assignment.
If the provider fails, the previous (stale) snapshot stays in service.
"""
import logging
import threading
import time
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from pedmed.catalog.records import AttributeIdentifier, DrugRecord
from pedmed.core.exceptions import KnowledgeBaseError
from pedmed.utils.text import plain_fold

logger = logging.getLogger(__name__)


class EntityCatalog:
    """
    Known drugs and their aliases.

    Records keep their load order; duplicate names (case/accent-insensitive)
    keep the first row.
    """

    def __init__(self, records: Iterable[DrugRecord] = ()):
        unique: Dict[str, DrugRecord] = {}
        for record in records:
            if not record.name:
                continue
            if record.key in unique:
                logger.warning(f"Duplicate drug row ignored: {record.name}")
                continue
            unique[record.key] = record

        self._records: Tuple[DrugRecord, ...] = tuple(unique.values())
        self._by_key = unique
        self._available: FrozenSet[AttributeIdentifier] = frozenset(
            identifier
            for record in self._records
            for identifier in record.populated()
        )

    @property
    def records(self) -> Tuple[DrugRecord, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def get(self, name: str) -> Optional[DrugRecord]:
        return self._by_key.get(plain_fold(name))

    def available_identifiers(self) -> List[AttributeIdentifier]:
        """Identifiers populated on at least one record, in dictionary order."""
        return [identifier for identifier in AttributeIdentifier if identifier in self._available]

    def alias_table(self) -> Dict[str, Tuple[str, ...]]:
        """Canonical name → names that refer to it (the name itself first)."""
        return {
            record.name: (record.name,) + record.aliases
            for record in self._records
        }

    def names(self) -> List[str]:
        return [record.name for record in self._records]


class CatalogStore:
    """
    Holds the current catalog snapshot and refreshes it from a provider.

    Usage:
        store = CatalogStore(CsvKnowledgeBaseProvider("data/pedmedvnch.csv"))
        store.refresh()
        catalog = store.snapshot()
    """

    def __init__(self, provider=None, max_age_seconds: Optional[float] = None):
        self.provider = provider
        self.max_age_seconds = max_age_seconds
        self._catalog = EntityCatalog()
        self._loaded_at: Optional[float] = None
        self._refresh_lock = threading.Lock()

    def snapshot(self) -> EntityCatalog:
        return self._catalog

    def replace(self, records: Iterable[DrugRecord]) -> EntityCatalog:
        """Swap in a catalog built from ``records``."""
        catalog = EntityCatalog(records)
        self._catalog = catalog
        self._loaded_at = time.monotonic()
        logger.info(f"Catalog replaced: {len(catalog)} drugs")
        return catalog

    def refresh(self) -> EntityCatalog:
        """
        Reload from the provider.

        On provider failure the current snapshot is kept and returned.
        """
        if self.provider is None:
            raise KnowledgeBaseError("No knowledge-base provider configured")

        with self._refresh_lock:
            try:
                records = self.provider.load_records()
            except KnowledgeBaseError as e:
                logger.error(f"Knowledge base refresh failed, keeping {len(self._catalog)} cached drugs: {e}")
                return self._catalog

            if not records:
                logger.warning("Knowledge base returned no records, keeping current catalog")
                return self._catalog

            return self.replace(records)

    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        if self.max_age_seconds is None:
            return False
        return time.monotonic() - self._loaded_at > self.max_age_seconds

    def refresh_if_stale(self) -> EntityCatalog:
        if self.is_stale():
            return self.refresh()
        return self._catalog
