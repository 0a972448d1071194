# -*- coding: utf-8 -*-
"""
Collection routing for multi-catalogue material search.

Materials live in two catalogues: the in-stock list (what can be ordered today)
and the much larger set of all FDA-registered ingredients. The router reads the
query for stock or registry intent and decides which catalogues to search and
how to merge them:

    stock keywords only        -> in_stock,          stock_only
    FDA/registry keywords only -> all_fda,           fda_only
    availability question      -> in_stock + all_fda, prioritize_stock
    anything else              -> in_stock + all_fda, prioritize_stock

An explicit collection from the caller overrides detection ('both' searches
everything in unified mode). merge_collection_results() then combines the
per-catalogue rankings, in-stock first, one entry per material code.

Examples:
    from src.retrieval.collection_router import route_query

    routing = route_query("Glycerin มีในสต็อกไหม")
    routing.search_mode          # SearchMode.STOCK_ONLY
    [c.value for c in routing.collections]   # ['in_stock']

References:
    config.retrieval_config: IN_STOCK_KEYWORDS, ALL_FDA_KEYWORDS,
        AVAILABILITY_KEYWORDS, ROUTING_CONFIDENCE
"""
# Standard library
import logging
from typing import List, Optional

# Config imports (direct)
from config.retrieval_config import (
    ALL_FDA_KEYWORDS,
    AVAILABILITY_KEYWORDS,
    IN_STOCK_KEYWORDS,
    ROUTING_CONFIDENCE,
)

# Dataclass imports (direct)
from src.utils.dataclasses import (
    CollectionRouting,
    CollectionType,
    SearchMode,
    SearchResult,
    UnifiedSearchResult,
)

logger = logging.getLogger(__name__)

BOTH_COLLECTIONS = [CollectionType.IN_STOCK, CollectionType.ALL_FDA]


class CollectionRouter:
    """Keyword-based catalogue routing. Stateless."""

    def __init__(
        self,
        in_stock_keywords: Optional[List[str]] = None,
        all_fda_keywords: Optional[List[str]] = None,
        availability_keywords: Optional[List[str]] = None,
    ):
        self.in_stock_keywords = in_stock_keywords or IN_STOCK_KEYWORDS
        self.all_fda_keywords = all_fda_keywords or ALL_FDA_KEYWORDS
        self.availability_keywords = availability_keywords or AVAILABILITY_KEYWORDS

    def route(self, query: str, explicit: Optional[CollectionType] = None) -> CollectionRouting:
        """
        Decide which catalogues to search.

        Args:
            query: User query.
            explicit: Caller-chosen collection; skips keyword detection.

        Returns:
            CollectionRouting (collections in search order).
        """
        if explicit is not None:
            return self._explicit(CollectionType(explicit))

        text = (query or '').lower()
        wants_stock = any(k in text for k in self.in_stock_keywords)
        wants_fda = any(k in text for k in self.all_fda_keywords)

        if wants_stock and not wants_fda:
            routing = CollectionRouting(
                collections=[CollectionType.IN_STOCK],
                search_mode=SearchMode.STOCK_ONLY,
                confidence=ROUTING_CONFIDENCE['keyword'],
                reasoning="Query mentions stock or inventory",
            )
        elif wants_fda and not wants_stock:
            routing = CollectionRouting(
                collections=[CollectionType.ALL_FDA],
                search_mode=SearchMode.FDA_ONLY,
                confidence=ROUTING_CONFIDENCE['keyword'],
                reasoning="Query asks for all registered ingredients",
            )
        elif any(k in text for k in self.availability_keywords):
            routing = CollectionRouting(
                collections=list(BOTH_COLLECTIONS),
                search_mode=SearchMode.PRIORITIZE_STOCK,
                confidence=ROUTING_CONFIDENCE['availability'],
                reasoning="Availability question: stock first, then the FDA catalogue",
            )
        else:
            routing = CollectionRouting(
                collections=list(BOTH_COLLECTIONS),
                search_mode=SearchMode.PRIORITIZE_STOCK,
                confidence=ROUTING_CONFIDENCE['default'],
                reasoning="Default: both catalogues, in-stock materials first",
            )

        logger.debug(f"Routed {text[:60]!r} -> {routing.search_mode.value}: {routing.reasoning}")
        return routing

    @staticmethod
    def _explicit(collection: CollectionType) -> CollectionRouting:
        if collection == CollectionType.BOTH:
            return CollectionRouting(
                collections=list(BOTH_COLLECTIONS),
                search_mode=SearchMode.UNIFIED,
                confidence=ROUTING_CONFIDENCE['explicit'],
                reasoning="Both catalogues requested",
            )
        return CollectionRouting(
            collections=[collection],
            search_mode=(SearchMode.STOCK_ONLY if collection == CollectionType.IN_STOCK
                         else SearchMode.FDA_ONLY),
            confidence=ROUTING_CONFIDENCE['explicit'],
            reasoning=f"{collection.value} catalogue requested",
        )


def merge_collection_results(
    stock_results: List[SearchResult],
    fda_results: List[SearchResult],
    search_mode: SearchMode,
    top_k: int,
) -> List[UnifiedSearchResult]:
    """
    Combine per-catalogue rankings.

    Each input list keeps its own order. In-stock results come first; an FDA
    result whose code is already in stock is dropped.

    Args:
        stock_results: Ranked results from the in-stock catalogue.
        fda_results: Ranked results from the FDA catalogue.
        search_mode: Routing mode (single-catalogue modes ignore the other list).
        top_k: Maximum merged results.

    Returns:
        Tagged results, unique by code, at most top_k.
    """
    tagged_stock = [UnifiedSearchResult(r, CollectionType.IN_STOCK) for r in stock_results]
    tagged_fda = [UnifiedSearchResult(r, CollectionType.ALL_FDA) for r in fda_results]

    if search_mode == SearchMode.STOCK_ONLY:
        candidates = tagged_stock
    elif search_mode == SearchMode.FDA_ONLY:
        candidates = tagged_fda
    else:
        candidates = tagged_stock + tagged_fda

    merged, seen = [], set()
    for item in candidates:
        if item.code in seen:
            continue
        seen.add(item.code)
        merged.append(item)

    return merged[:top_k]


# ============================================================================
# MODULE-LEVEL API
# ============================================================================

_default_router = CollectionRouter()


def route_query(query: str, explicit: Optional[CollectionType] = None) -> CollectionRouting:
    """Route a query with the default keyword tables."""
    return _default_router.route(query, explicit)
