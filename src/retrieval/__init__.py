# -*- coding: utf-8 -*-
"""
Retrieval package for hybrid raw-material search.

Contains QueryClassifier (rule-based intent detection and extraction of codes
and names), HybridSearchService (concurrent exact/metadata/fuzzy/semantic
strategies), ResultRanker (code-level merge and ranking), the structured
material stores, collection routing with UnifiedSearchService (in-stock vs
FDA catalogue), and the LLM context formatter.
"""
from src.retrieval.query_classifier import QueryClassifier, classify_query, fuzzy_match_score
from src.retrieval.material_store import InMemoryMaterialStore, CachedMaterialStore
from src.retrieval.result_ranker import ResultRanker
from src.retrieval.hybrid_search import HybridSearchService
from src.retrieval.collection_router import CollectionRouter, route_query
from src.retrieval.unified_search import UnifiedSearchService
from src.retrieval.result_formatter import format_availability_note, format_results

__all__ = [
    'QueryClassifier',
    'classify_query',
    'fuzzy_match_score',
    'InMemoryMaterialStore',
    'CachedMaterialStore',
    'ResultRanker',
    'HybridSearchService',
    'CollectionRouter',
    'route_query',
    'UnifiedSearchService',
    'format_results',
    'format_availability_note',
]
