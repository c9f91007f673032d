from typing import Any, Dict, List, Optional

import pytest

from taxomatch import cache_manager
from taxomatch.config import config
from taxomatch.exceptions import SourceUnavailableError
from taxomatch.sources.base import ReferenceSource
from taxomatch.types.data_classes import GenusClassification, ReferenceRecord, SourceId


@pytest.fixture
def isolated_cache(tmp_path):
    """Point the download cache at a temporary directory."""
    original_base = config.cache_base_dir
    original_dir = config.cache_dir
    config.cache_base_dir = str(tmp_path)
    config.cache_dir = str(tmp_path / "cache")
    try:
        yield tmp_path / "cache"
    finally:
        cache_manager._close_cache()
        config.cache_base_dir = original_base
        config.cache_dir = original_dir


class ListSource(ReferenceSource):
    """In-memory source returning fixed candidate names."""

    def __init__(self, names, source_id=SourceId.DYNTAXA, label=None):
        super().__init__(source_id, label)
        self.records = [ReferenceRecord(name=n, source_id=source_id) for n in names]
        self.calls = 0

    def candidates(self, name):
        self.calls += 1
        return self.records


class FailingSource(ReferenceSource):
    """Source that is always unavailable."""

    def __init__(self, source_id=SourceId.WORMS):
        super().__init__(source_id)
        self.calls = 0

    def candidates(self, name):
        self.calls += 1
        raise SourceUnavailableError(self.label, "connection refused")


class FakeAlgaeBaseClient:
    """Stands in for AlgaeBaseClient; payloads use prefix-free field names."""

    def __init__(
        self,
        species: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        genera: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        classifications: Optional[Dict[str, GenusClassification]] = None,
        by_id: Optional[Dict[str, Dict[str, Any]]] = None,
        by_creator: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        failing: tuple = (),
    ):
        self.species = species or {}
        self.genera = genera or {}
        self.classifications = classifications or {}
        self.by_id = by_id or {}
        self.by_creator = by_creator or {}
        self.failing = set(failing)
        self.species_queries: List[str] = []
        self.genus_calls: List[str] = []

    def _check(self, value):
        if value in self.failing:
            raise SourceUnavailableError("AlgaeBase", f"HTTP 500 for {value}")

    def search_species(self, name, offset=0, count=None):
        self._check(name)
        self.species_queries.append(name)
        return [dict(r) for r in self.species.get(name, [])]

    def search_genus(self, name):
        self._check(name)
        return [dict(r) for r in self.genera.get(name, [])]

    def species_by_id(self, species_id):
        self._check(str(species_id))
        record = self.by_id.get(str(species_id))
        return dict(record) if record else None

    def species_by_creator(self, creator, offset=0, count=100000):
        self._check(creator)
        return [dict(r) for r in self.by_creator.get(creator, [])]

    def genus_classification(self, genus):
        self.genus_calls.append(genus)
        self._check(genus)
        return self.classifications.get(genus)
