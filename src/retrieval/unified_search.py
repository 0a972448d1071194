# -*- coding: utf-8 -*-
"""
Unified search across the in-stock and FDA material catalogues.

Wraps one HybridSearchService per catalogue. A query is routed by
CollectionRouter, each routed catalogue is searched against its own vector
collection (COLLECTION_CONFIG), and the rankings are merged in-stock first.
A catalogue whose search fails is logged and contributes nothing, like a failed
strategy inside a single hybrid search.

Examples:
    from src.retrieval.unified_search import UnifiedSearchService
    from src.utils.dataclasses import CollectionType

    with UnifiedSearchService({
        CollectionType.IN_STOCK: HybridSearchService(stock_store, vectors),
        CollectionType.ALL_FDA: HybridSearchService(fda_store, vectors),
    }) as service:
        results = service.unified_search("Glycerin")
        results[0].in_stock

        report = service.check_availability("Alpha Arbutin")
        report.in_stock, report.alternatives

References:
    Routing: src.retrieval.collection_router
    Per-catalogue search: src.retrieval.hybrid_search
"""
# Standard library
import logging
from dataclasses import replace
from typing import Dict, List, Optional

# Config imports (direct)
from config.retrieval_config import AVAILABILITY_CONFIG, COLLECTION_CONFIG

# Dataclass imports (direct)
from src.utils.dataclasses import (
    AvailabilityReport,
    CollectionType,
    SearchOptions,
    SearchResult,
    UnifiedSearchResult,
)

# Local module imports
from src.retrieval.collection_router import CollectionRouter, merge_collection_results

logger = logging.getLogger(__name__)


class UnifiedSearchService:
    """
    Route -> search each catalogue -> merge in-stock first.

    Collaborators:
    - searchers: {CollectionType.IN_STOCK: HybridSearchService, CollectionType.ALL_FDA: ...}
      (either may be missing; a routed but missing catalogue yields nothing)
    - router: CollectionRouter (default keyword tables when omitted)
    """

    def __init__(self, searchers: Dict[CollectionType, object], router: Optional[CollectionRouter] = None):
        self.searchers = dict(searchers)
        self.router = router or CollectionRouter()

        logger.info(
            f"UnifiedSearchService initialized: catalogues="
            f"{sorted(c.value for c in self.searchers)}"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        for searcher in self.searchers.values():
            searcher.close()

    # ========================================================================
    # SEARCH
    # ========================================================================

    def unified_search(
        self,
        query: str,
        options: Optional[SearchOptions] = None,
        collection: Optional[CollectionType] = None,
    ) -> List[UnifiedSearchResult]:
        """
        Search the catalogues the query is routed to.

        Args:
            query: Free-form query.
            options: SearchOptions or a dict of its fields (defaults when None).
                The vector collection is set per catalogue.
            collection: Explicit catalogue (IN_STOCK, ALL_FDA, or BOTH).

        Returns:
            Results tagged with their catalogue, unique by code, at most top_k.

        Raises:
            ValueError: Invalid options (before any catalogue is searched).
        """
        if options is None:
            options = SearchOptions()
        elif isinstance(options, dict):
            options = SearchOptions(**options)

        routing = self.router.route(query, collection)
        logger.info(
            f"Unified search {str(query)[:60]!r}: {routing.search_mode.value} "
            f"over {[c.value for c in routing.collections]} ({routing.reasoning})"
        )

        by_collection: Dict[CollectionType, List[SearchResult]] = {}
        for target in routing.collections:
            by_collection[target] = self._search_collection(query, options, target)

        merged = merge_collection_results(
            by_collection.get(CollectionType.IN_STOCK, []),
            by_collection.get(CollectionType.ALL_FDA, []),
            routing.search_mode,
            options.top_k,
        )
        logger.info(f"✓ Merged to {len(merged)} results "
                    f"({sum(1 for r in merged if r.in_stock)} in stock)")
        return merged

    def search_in_stock(self, query: str, options: Optional[SearchOptions] = None) -> List[UnifiedSearchResult]:
        return self.unified_search(query, options, collection=CollectionType.IN_STOCK)

    def search_all_fda(self, query: str, options: Optional[SearchOptions] = None) -> List[UnifiedSearchResult]:
        return self.unified_search(query, options, collection=CollectionType.ALL_FDA)

    def check_availability(self, code_or_name: str) -> AvailabilityReport:
        """
        Check whether a material is in stock.

        The best in-stock hit must score above
        AVAILABILITY_CONFIG['in_stock_min_score']; otherwise the FDA catalogue
        is searched for alternatives.

        Args:
            code_or_name: Material code or trade/INCI name.

        Returns:
            AvailabilityReport with details (in stock) or alternatives.
        """
        stock = self.search_in_stock(code_or_name, SearchOptions(top_k=1))
        if stock and stock[0].score > AVAILABILITY_CONFIG['in_stock_min_score']:
            logger.info(f"{code_or_name!r} is in stock as {stock[0].code}")
            return AvailabilityReport(query=code_or_name, in_stock=True, details=stock[0])

        alternatives = self.search_all_fda(
            code_or_name, SearchOptions(top_k=AVAILABILITY_CONFIG['alternatives_top_k'])
        )
        logger.info(f"{code_or_name!r} not in stock; {len(alternatives)} FDA alternatives")
        return AvailabilityReport(query=code_or_name, in_stock=False, alternatives=alternatives)

    def _search_collection(
        self,
        query: str,
        options: SearchOptions,
        target: CollectionType,
    ) -> List[SearchResult]:
        searcher = self.searchers.get(target)
        if searcher is None:
            logger.warning(f"No searcher configured for {target.value}; skipping")
            return []

        scoped = replace(options, collection=COLLECTION_CONFIG[target.value]['vector_collection'])
        try:
            results = searcher.search(query, scoped)
        except Exception as e:
            logger.error(f"Search in {target.value} failed: {e}")
            return []

        logger.debug(f"{target.value}: {len(results)} results")
        return results


def get_collection_stats(results: List[UnifiedSearchResult]) -> Dict:
    """Count merged results per catalogue."""
    in_stock = sum(1 for r in results if r.in_stock)
    return {
        'total': len(results),
        'in_stock': in_stock,
        'fda_only': len(results) - in_stock,
        'in_stock_percentage': (in_stock / len(results) * 100) if results else 0.0,
    }
