# -*- coding: utf-8 -*-
"""
Module: test_material_store.py
Package: tests.retrieval
Purpose: Unit tests for the in-memory and cached material stores
"""

# Standard library
import sys
from pathlib import Path
from unittest.mock import Mock

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import pytest

# Local
from src.retrieval.material_store import CachedMaterialStore, InMemoryMaterialStore
from src.utils.dataclasses import MaterialDocument

pytestmark = pytest.mark.retrieval


class TestInMemoryMaterialStore:

    def test_find_by_code_normalizes(self, store):
        assert store.find_by_code("rm-000001").code == "RM000001"
        assert store.find_by_code("RM999999") is None

    def test_default_fields_are_names_and_code(self, store):
        codes = [m.code for m in store.search_by_field("hyaluron")]
        assert codes == ["RM000001"]

    def test_search_is_literal(self, store):
        assert store.search_by_field("Glycerin 99.5%")[0].code == "RM000045"
        assert store.search_by_field("Glycerin 99x5") == []

    def test_named_fields_and_limit(self, store):
        humectants = store.search_by_field("humectant", fields=["category"])
        assert {m.code for m in humectants} == {"RM000001", "RM000045"}
        assert len(store.search_by_field("humectant", fields=["category"], limit=1)) == 1

    def test_unknown_field(self, store):
        with pytest.raises(ValueError):
            store.search_by_field("x", fields=["colour"])

    def test_empty_pattern(self, store):
        assert store.search_by_field("  ") == []

    def test_add_replaces_and_remove(self, store):
        store.add(MaterialDocument(code="RM000001", trade_name="Replacement"))

        assert len(store) == 4
        assert store.find_by_code("RM000001").trade_name == "Replacement"
        assert store.remove("rm000001")
        assert not store.remove("RM000001")
        assert len(store) == 3


class TestCachedMaterialStore:

    def test_lookups_are_cached(self, store):
        backend = Mock(wraps=store)
        cached = CachedMaterialStore(backend, max_size=8)

        first = cached.find_by_code("RM000001")
        second = cached.find_by_code("rm-000001")

        assert first is second
        assert backend.find_by_code.call_count == 1
        assert cached.stats()['hits'] == 1

    def test_misses_are_cached(self, store):
        backend = Mock(wraps=store)
        cached = CachedMaterialStore(backend)

        assert cached.find_by_code("RM999999") is None
        assert cached.find_by_code("RM999999") is None
        assert backend.find_by_code.call_count == 1

    def test_search_results_are_copies(self, store):
        cached = CachedMaterialStore(store)
        cached.search_by_field("humectant", fields=["category"]).clear()
        assert len(cached.search_by_field("humectant", fields=["category"])) == 2

    def test_invalidate(self, store):
        cached = CachedMaterialStore(store)
        cached.find_by_code("RM000001")

        store.add(MaterialDocument(code="RM000001", trade_name="Updated"))
        cached.invalidate("RM000001")

        assert cached.find_by_code("RM000001").trade_name == "Updated"

    def test_lru_eviction(self, store):
        backend = Mock(wraps=store)
        cached = CachedMaterialStore(backend, max_size=1)

        cached.find_by_code("RM000001")
        cached.find_by_code("RM000045")
        cached.find_by_code("RM000001")

        assert backend.find_by_code.call_count == 3
        assert cached.stats()['size'] == 1

    def test_backend_errors_are_not_cached(self):
        backend = Mock()
        backend.find_by_code.side_effect = [ConnectionError("down"), None]
        cached = CachedMaterialStore(backend)

        with pytest.raises(ConnectionError):
            cached.find_by_code("RM000001")
        assert cached.find_by_code("RM000001") is None

    def test_invalid_size(self, store):
        with pytest.raises(ValueError):
            CachedMaterialStore(store, max_size=0)
