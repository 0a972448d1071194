# -*- coding: utf-8 -*-
"""
Module: test_result_ranker.py
Package: tests.retrieval
Purpose: Unit tests for result merging and ranking

Tests:
- Deduplication by material code with match-type tie-breaks
- Threshold filtering and top-K truncation
- Exact-intent ordering and empty results without a primary match
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
from src.retrieval.result_ranker import ResultRanker
from src.utils.dataclasses import (
    MatchType,
    MaterialDocument,
    ResultSource,
    SearchOptions,
    SearchResult,
)

pytestmark = pytest.mark.retrieval


def make_result(code, score, match_type, fields=None, source=ResultSource.STRUCTURED_STORE):
    return SearchResult(
        document=MaterialDocument(code=code, trade_name=f"Material {code}"),
        score=score,
        match_type=match_type,
        confidence=score,
        matched_fields=fields or [],
        source=source,
    )


@pytest.fixture
def ranker():
    return ResultRanker()


class TestMerge:

    def test_keeps_highest_score_per_code(self, ranker):
        merged = ranker.merge([
            make_result("RM000001", 0.6, MatchType.SEMANTIC, ['function']),
            make_result("RM000001", 0.8, MatchType.FUZZY, ['trade_name']),
        ])

        assert len(merged) == 1
        assert merged[0].match_type == MatchType.FUZZY
        assert merged[0].score == 0.8
        assert merged[0].matched_fields == ['function', 'trade_name']

    def test_tie_prefers_precise_match_type(self, ranker):
        merged = ranker.merge([
            make_result("RM000001", 0.9, MatchType.SEMANTIC, source=ResultSource.VECTOR_INDEX),
            make_result("RM000001", 0.9, MatchType.METADATA),
        ])
        assert merged[0].match_type == MatchType.METADATA

    def test_inputs_are_not_mutated(self, ranker):
        original = make_result("RM000001", 0.7, MatchType.FUZZY, ['trade_name'])
        ranker.merge([original, make_result("RM000001", 0.5, MatchType.SEMANTIC, ['category'])])
        assert original.matched_fields == ['trade_name']


class TestRank:

    def test_sorted_unique_and_truncated(self, ranker):
        candidates = [
            make_result("RM000003", 0.6, MatchType.SEMANTIC),
            make_result("RM000001", 0.9, MatchType.METADATA),
            make_result("RM000002", 0.75, MatchType.FUZZY),
            make_result("RM000001", 0.6, MatchType.SEMANTIC),
        ]
        ranked = ranker.rank(candidates, SearchOptions(top_k=2))

        assert [r.code for r in ranked] == ["RM000001", "RM000002"]

    def test_threshold(self, ranker):
        candidates = [
            make_result("RM000001", 0.55, MatchType.SEMANTIC),
            make_result("RM000002", 0.45, MatchType.SEMANTIC),
        ]
        ranked = ranker.rank(candidates, SearchOptions(similarity_threshold=0.5))
        assert [r.code for r in ranked] == ["RM000001"]

    def test_default_options(self, ranker):
        assert ranker.rank([make_result("RM000001", 0.9, MatchType.METADATA)])[0].code == "RM000001"

    def test_empty(self, ranker):
        assert ranker.rank([]) == []

    def test_exact_intent_puts_primary_matches_first(self, ranker):
        candidates = [
            make_result("RM000002", 0.95, MatchType.SEMANTIC, source=ResultSource.VECTOR_INDEX),
            make_result("RM000001", 0.9, MatchType.METADATA),
        ]
        ranked = ranker.rank(candidates, exact_intent=True)
        assert [r.code for r in ranked] == ["RM000001", "RM000002"]

    def test_exact_intent_without_primary_match_is_empty(self, ranker):
        candidates = [make_result("RM000002", 0.95, MatchType.SEMANTIC)]
        assert ranker.rank(candidates, exact_intent=True) == []
