# -*- coding: utf-8 -*-
"""
Module: test_dataclasses.py
Package: tests.utils
Purpose: Unit tests for record/option validation and deterministic ids
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
from src.utils.dataclasses import (
    CollectionType,
    IndexReport,
    MatchType,
    MaterialDocument,
    SearchOptions,
    SearchResult,
    UnifiedSearchResult,
)
from src.utils.id_generator import generate_chunk_id, generate_vector_id

pytestmark = pytest.mark.utils


class TestMaterialDocument:

    def test_code_is_normalized(self):
        assert MaterialDocument(code=" rm-000 001").code == "RM000001"

    @pytest.mark.parametrize("code", ["", "  ", "-_", None])
    def test_code_required(self, code):
        with pytest.raises(ValueError):
            MaterialDocument(code=code)

    def test_from_dict_aliases(self):
        doc = MaterialDocument.from_dict({
            'rm_code': 'RM000045',
            'rm_cost': 'n/a',
            'details': 'Humectant',
            'company': 'Acme',
            'unknown_column': 1,
        })

        assert doc.cost_per_unit is None
        assert doc.description == 'Humectant'
        assert doc.company_name == 'Acme'
        assert doc.cost_text == ""

    def test_from_dict_without_code(self):
        with pytest.raises(ValueError):
            MaterialDocument.from_dict({'trade_name': 'Glycerin'})

    def test_cost_text(self):
        assert MaterialDocument(code="RM000045", cost_per_unit=85.0, unit="kg").cost_text == "85 / kg"
        assert MaterialDocument(code="RM000045", cost_per_unit=85.5).cost_text == "85.5"


class TestSearchOptions:

    def test_defaults(self):
        options = SearchOptions()
        assert options.top_k == 10
        assert options.similarity_threshold == 0.5

    @pytest.mark.parametrize("kwargs", [
        {'top_k': 0},
        {'top_k': True},
        {'top_k': 2.5},
        {'similarity_threshold': 2.0},
        {'strategy_timeout': 0},
        {'semantic_timeout': -1.0},
        {'collection': ''},
        {'similarity_threshold': 'high'},
        {'similarity_threshold': None},
        {'strategy_timeout': '3'},
        {'semantic_timeout': None},
        {'metadata_filters': ['category']},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SearchOptions(**kwargs)


class TestSerialization:

    def test_search_result_to_dict(self):
        result = SearchResult(
            document=MaterialDocument(code="RM000001", trade_name="Hyaluronic Acid"),
            score=0.912345,
            match_type=MatchType.METADATA,
            confidence=0.9,
            matched_fields=['trade_name'],
        )
        data = result.to_dict()

        assert data['code'] == "RM000001"
        assert data['score'] == 0.9123
        assert data['match_type'] == 'metadata'
        assert data['source'] == 'structured_store'
        assert data['document']['trade_name'] == "Hyaluronic Acid"

    def test_unified_result_to_dict(self):
        result = SearchResult(
            document=MaterialDocument(code="RM000001", trade_name="Hyaluronic Acid"),
            score=0.9,
            match_type=MatchType.EXACT,
            confidence=1.0,
        )
        data = UnifiedSearchResult(result, CollectionType.ALL_FDA).to_dict()

        assert data['code'] == "RM000001"
        assert data['collection'] == 'all_fda'
        assert data['availability'] == 'fda_only'

    def test_index_report(self):
        assert IndexReport(code="RM000001").ok
        assert not IndexReport(code="RM000001", error="boom").ok


class TestIds:

    def test_chunk_ids(self):
        assert generate_chunk_id("RM000001", "code_exact_match") == "RM000001_code_exact_match"
        assert generate_chunk_id("RM000001", "technical_specs", 2) == "RM000001_technical_specs_2"

    def test_vector_ids_are_stable_and_in_range(self):
        first = generate_vector_id("RM000001_code_exact_match")

        assert first == generate_vector_id("RM000001_code_exact_match")
        assert first != generate_vector_id("RM000001_primary_identifier")
        assert 0 <= first < 2 ** 63
