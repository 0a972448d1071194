# -*- coding: utf-8 -*-
"""
Module: test_collection_router.py
Package: tests.retrieval
Purpose: Unit tests for in-stock / FDA catalogue routing and result merging

Tests:
- Stock, registry, availability, and default routes (English and Thai)
- Explicit collection overrides
- Merging: in-stock first, unique by code, top_k
"""

# Standard library
import sys
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import pytest

# Local
from src.retrieval.collection_router import (
    CollectionRouter,
    merge_collection_results,
    route_query,
)
from src.utils.dataclasses import (
    CollectionType,
    MatchType,
    MaterialDocument,
    SearchMode,
    SearchResult,
)

pytestmark = pytest.mark.retrieval

BOTH = [CollectionType.IN_STOCK, CollectionType.ALL_FDA]


def _result(code, score=0.9):
    return SearchResult(
        document=MaterialDocument(code=code),
        score=score,
        match_type=MatchType.METADATA,
        confidence=score,
    )


class TestRouting:

    @pytest.mark.parametrize("query", [
        "Glycerin มีในสต็อกไหม",
        "Which humectants are in our inventory?",
    ])
    def test_stock_queries(self, query):
        routing = route_query(query)

        assert routing.collections == [CollectionType.IN_STOCK]
        assert routing.search_mode == SearchMode.STOCK_ONLY
        assert routing.confidence == 0.9

    @pytest.mark.parametrize("query", [
        "Show all FDA registered humectants",
        "ค้นหาทั้งหมด สารกันแดด",
    ])
    def test_registry_queries(self, query):
        routing = route_query(query)

        assert routing.collections == [CollectionType.ALL_FDA]
        assert routing.search_mode == SearchMode.FDA_ONLY

    def test_availability_question(self):
        routing = route_query("Do we have Alpha Arbutin?")

        assert routing.collections == BOTH
        assert routing.search_mode == SearchMode.PRIORITIZE_STOCK
        assert routing.confidence == 0.85

    def test_default_route(self):
        routing = route_query("Hyaluronic Acid")

        assert routing.collections == BOTH
        assert routing.search_mode == SearchMode.PRIORITIZE_STOCK
        assert routing.confidence == 0.7

    def test_stock_and_registry_keywords_together(self):
        routing = route_query("Is this FDA registered ingredient in stock?")

        assert routing.collections == BOTH
        assert routing.search_mode == SearchMode.PRIORITIZE_STOCK

    def test_explicit_collection(self):
        routing = route_query("Show all FDA registered humectants", CollectionType.IN_STOCK)

        assert routing.collections == [CollectionType.IN_STOCK]
        assert routing.search_mode == SearchMode.STOCK_ONLY
        assert routing.confidence == 1.0

    def test_explicit_both_is_unified(self):
        routing = CollectionRouter().route("Glycerin", CollectionType.BOTH)

        assert routing.collections == BOTH
        assert routing.search_mode == SearchMode.UNIFIED

    def test_explicit_value_string(self):
        assert route_query("Glycerin", "all_fda").search_mode == SearchMode.FDA_ONLY

    def test_custom_keywords(self):
        router = CollectionRouter(in_stock_keywords=['warehouse'])
        assert router.route("warehouse glycerin").search_mode == SearchMode.STOCK_ONLY


class TestMerge:

    def test_stock_first_and_unique(self):
        merged = merge_collection_results(
            [_result("RM000045", 0.6)],
            [_result("RM000001", 0.95), _result("RM000045", 0.9)],
            SearchMode.PRIORITIZE_STOCK,
            top_k=10,
        )

        assert [r.code for r in merged] == ["RM000045", "RM000001"]
        assert [r.collection for r in merged] == BOTH
        assert merged[0].in_stock
        assert merged[0].score == 0.6

    def test_top_k(self):
        merged = merge_collection_results(
            [_result("RM000001"), _result("RM000045")],
            [_result("RC00A008")],
            SearchMode.UNIFIED,
            top_k=2,
        )
        assert [r.code for r in merged] == ["RM000001", "RM000045"]

    def test_single_catalogue_modes_ignore_the_other_list(self):
        stock = [_result("RM000001")]
        fda = [_result("RC00A008")]

        assert [r.code for r in merge_collection_results(stock, fda, SearchMode.STOCK_ONLY, 5)] == ["RM000001"]
        assert [r.code for r in merge_collection_results(stock, fda, SearchMode.FDA_ONLY, 5)] == ["RC00A008"]

    def test_empty(self):
        assert merge_collection_results([], [], SearchMode.UNIFIED, 5) == []
