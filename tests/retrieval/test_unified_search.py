# -*- coding: utf-8 -*-
"""
Module: test_unified_search.py
Package: tests.retrieval
Purpose: Unit tests for search across the in-stock and FDA catalogues

Tests:
- Routed searches merged in-stock first
- Per-catalogue vector collections
- Failing or missing catalogues contributing nothing
- Availability checks with FDA alternatives
- Collection statistics
"""

# Standard library
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import numpy as np
import pytest

# Local
from config.retrieval_config import COLLECTION_CONFIG
from src.retrieval.hybrid_search import HybridSearchService
from src.retrieval.material_store import InMemoryMaterialStore
from src.retrieval.unified_search import UnifiedSearchService, get_collection_stats
from src.utils.dataclasses import CollectionType

pytestmark = pytest.mark.retrieval

MOISTURE_QUERY = "วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น"


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def stock_store(materials):
    """Hyaluronic acid and glycerin are in stock."""
    return InMemoryMaterialStore([materials[0], materials[3]])


@pytest.fixture
def vector_service():
    mock = MagicMock()
    mock.embed.return_value = np.zeros(4, dtype=np.float32)
    mock.query.return_value = []
    return mock


@pytest.fixture
def unified(stock_store, store, vector_service):
    with UnifiedSearchService({
        CollectionType.IN_STOCK: HybridSearchService(stock_store, vector_service),
        CollectionType.ALL_FDA: HybridSearchService(store, vector_service),
    }) as service:
        yield service


def _codes(results):
    return [r.code for r in results]


# ============================================================================
# SEARCH
# ============================================================================

class TestUnifiedSearch:

    def test_in_stock_copy_wins(self, unified):
        results = unified.unified_search("RM000045")

        assert _codes(results) == ["RM000045"]
        assert results[0].collection == CollectionType.IN_STOCK
        assert results[0].in_stock

    def test_fda_only_material(self, unified):
        results = unified.unified_search("RC00A008")

        assert _codes(results) == ["RC00A008"]
        assert results[0].collection == CollectionType.ALL_FDA

    def test_explicit_catalogue(self, unified):
        assert unified.search_in_stock("RC00A008") == []
        assert _codes(unified.search_all_fda("RM000045")) == ["RM000045"]

    def test_stock_first_ordering(self, unified):
        results = unified.unified_search("Compare RM000001 and RC00A008")

        assert _codes(results) == ["RM000001", "RC00A008"]
        assert [r.in_stock for r in results] == [True, False]

    def test_each_catalogue_uses_its_vector_collection(self, unified, vector_service):
        unified.unified_search(MOISTURE_QUERY)

        collections = {call[0][0] for call in vector_service.query.call_args_list}
        assert collections == {
            COLLECTION_CONFIG['in_stock']['vector_collection'],
            COLLECTION_CONFIG['all_fda']['vector_collection'],
        }

    def test_dict_options_and_top_k(self, unified):
        results = unified.unified_search("Compare RM000001 and RC00A008", {'top_k': 1})
        assert _codes(results) == ["RM000001"]

    def test_invalid_options_raise(self, unified):
        with pytest.raises(ValueError):
            unified.unified_search("RM000045", {'top_k': 0})

    def test_failing_catalogue_contributes_nothing(self, store):
        broken = MagicMock()
        broken.search.side_effect = RuntimeError("stock database unavailable")

        with UnifiedSearchService({
            CollectionType.IN_STOCK: broken,
            CollectionType.ALL_FDA: HybridSearchService(store),
        }) as service:
            results = service.unified_search("RM000045")

        assert _codes(results) == ["RM000045"]
        assert results[0].collection == CollectionType.ALL_FDA
        broken.close.assert_called_once()

    def test_missing_catalogue(self, stock_store):
        with UnifiedSearchService({CollectionType.IN_STOCK: HybridSearchService(stock_store)}) as service:
            assert service.search_all_fda("RM000045") == []
            assert _codes(service.unified_search("RM000045")) == ["RM000045"]


# ============================================================================
# AVAILABILITY
# ============================================================================

class TestAvailability:

    def test_in_stock(self, unified):
        report = unified.check_availability("RM000001")

        assert report.in_stock
        assert report.details.code == "RM000001"
        assert report.alternatives == []

    def test_not_in_stock_lists_alternatives(self, unified):
        report = unified.check_availability("RDSAM00171")

        assert not report.in_stock
        assert report.details is None
        assert _codes(report.alternatives) == ["RDSAM00171"]
        assert not report.alternatives[0].in_stock


class TestCollectionStats:

    def test_stats(self, unified):
        results = unified.unified_search("Compare RM000001 and RC00A008")

        assert get_collection_stats(results) == {
            'total': 2,
            'in_stock': 1,
            'fda_only': 1,
            'in_stock_percentage': 50.0,
        }

    def test_stats_empty(self):
        assert get_collection_stats([])['in_stock_percentage'] == 0.0
