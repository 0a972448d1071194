# -*- coding: utf-8 -*-
"""
Hybrid search orchestrator for raw-material retrieval.

Answers a free-form query with a ranked list of material records by combining
up to four retrieval strategies chosen from the query's classification:
(1) exact code lookup in the structured store, (2) metadata substring filtering
on trade/INCI names, (3) fuzzy name matching through fuzzy_match_score(), and
(4) semantic retrieval, made of keyword relevance on function/category text plus,
when a vector service is configured, embedding similarity over indexed chunks.

Generic conversational queries return an empty list before any backend is
touched. Store strategies run concurrently on a shared thread pool; the remote
vector part runs on a separate, smaller pool with its own shorter timeout. A
vector call that outlives its timeout keeps its worker until the backend
answers, so at most `vector_workers` such calls are ever in flight; while all
are busy the vector part is skipped rather than queued. A strategy that fails or
times out is logged and contributes nothing. Results from all strategies
are merged by material code and ranked by ResultRanker. Exact-code queries only
run the exact (and, if names co-occur, metadata) strategies, so a well-formed but
unregistered code yields no results.

Examples:
    from src.retrieval.hybrid_search import HybridSearchService
    from src.retrieval.material_store import InMemoryMaterialStore
    from src.utils.dataclasses import SearchOptions

    with HybridSearchService(store=InMemoryMaterialStore(materials),
                             vector_service=faiss_store) as service:
        results = service.search("RM000001")
        results[0].match_type          # MatchType.EXACT

        results = service.search("วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น",
                                 SearchOptions(top_k=5, similarity_threshold=0.5))

        service.search("hello")        # []

References:
    Classification: src.retrieval.query_classifier
    Ranking: src.retrieval.result_ranker
    Scores: config.retrieval_config.SCORING_CONFIG
"""
# Standard library
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from threading import BoundedSemaphore
from typing import Callable, Dict, List, Optional, Tuple

# Config imports (direct)
from config.retrieval_config import (
    PROPERTY_KEYWORDS,
    SCORING_CONFIG,
    SEARCH_CONFIG,
    StrategyName,
)

# Dataclass imports (direct)
from src.utils.dataclasses import (
    MatchType,
    MaterialDocument,
    QueryClassification,
    ResultSource,
    SearchOptions,
    SearchResult,
)

# Local module imports
from src.retrieval.query_classifier import QueryClassifier, fuzzy_match_score
from src.retrieval.result_ranker import ResultRanker

logger = logging.getLogger(__name__)

NAME_FIELDS = ('trade_name', 'inci_name')
FUZZY_CANDIDATE_FIELDS = ('code', 'trade_name', 'inci_name')
SEMANTIC_FIELDS = ('function', 'category', 'trade_name', 'inci_name')
SEMANTIC_TEXT_FIELDS = ('description',)

LATIN_TOKEN = re.compile(r'[A-Za-z][A-Za-z0-9]{2,}')
PARENTHETICAL = re.compile(r'\s*\([^)]*\)')
FUZZY_PREFIX_LENGTH = 3

StrategyFn = Callable[[str, QueryClassification, SearchOptions], List[SearchResult]]


def _normalize(text: str) -> str:
    return ' '.join((text or '').lower().split())


class HybridSearchService:
    """
    Classify -> run strategies concurrently -> merge and rank.

    Collaborators (duck-typed):
    - store: find_by_code(code), search_by_field(pattern, fields, limit)
    - vector_service (optional): embed(text), query(collection, vector, top_k, filter)

    Stateless per request; one instance serves concurrent searches. Call
    close() (or use as a context manager) to release the thread pools.
    """

    def __init__(
        self,
        store,
        vector_service=None,
        classifier: Optional[QueryClassifier] = None,
        ranker: Optional[ResultRanker] = None,
        max_workers: int = SEARCH_CONFIG['max_workers'],
        vector_workers: int = SEARCH_CONFIG['vector_workers'],
    ):
        """
        Initialize hybrid search.

        Args:
            store: Structured material store.
            vector_service: Embedding/vector backend; semantic retrieval falls
                back to keyword relevance only when omitted.
            classifier: Query classifier (default rule tables when omitted).
            ranker: Result ranker.
            max_workers: Store strategy thread pool size.
            vector_workers: Vector strategy thread pool size (upper bound on
                vector calls in flight).
        """
        self.store = store
        self.vector_service = vector_service
        self.classifier = classifier or QueryClassifier()
        self.ranker = ranker or ResultRanker()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='hybrid-search'
        )
        self._vector_executor = ThreadPoolExecutor(
            max_workers=vector_workers, thread_name_prefix='hybrid-vector'
        )
        self._vector_slots = BoundedSemaphore(vector_workers)

        self._strategies: Dict[StrategyName, StrategyFn] = {
            StrategyName.EXACT: self._exact_match,
            StrategyName.METADATA: self._metadata_filter,
            StrategyName.FUZZY: self._fuzzy_match,
            StrategyName.SEMANTIC: self._semantic_keywords,
            StrategyName.VECTOR: self._semantic_vector,
        }

        logger.info(
            f"HybridSearchService initialized: vector_service="
            f"{'yes' if vector_service is not None else 'no'}, max_workers={max_workers}, "
            f"vector_workers={vector_workers}"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        """Shut the strategy pools down without waiting for stragglers."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._vector_executor.shutdown(wait=False, cancel_futures=True)

    # ========================================================================
    # SEARCH
    # ========================================================================

    def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """
        Search materials for a query.

        Args:
            query: Free-form query (code, name, Thai/English description).
            options: SearchOptions or a dict of its fields (defaults when None).

        Returns:
            Ranked SearchResults, unique by code; [] for generic queries and
            unregistered codes.

        Raises:
            ValueError: Invalid options (raised before any backend call).
        """
        if options is None:
            options = SearchOptions()
        elif isinstance(options, dict):
            options = SearchOptions(**options)

        start = time.time()
        classification = self.classifier.classify(query)

        if not classification.is_raw_materials_query:
            logger.info(f"Generic query, skipping material search: {str(query)[:60]!r}")
            return []

        plan = self._plan(classification, options)
        candidates = self._run_strategies(plan, query, classification, options)
        results = self.ranker.rank(
            candidates, options, exact_intent=classification.has_exact_intent
        )

        elapsed_ms = (time.time() - start) * 1000
        logger.info(
            f"Search {str(query)[:60]!r}: {classification.query_type.value} "
            f"(confidence {classification.confidence:.2f}), "
            f"{len(candidates)} candidates -> {len(results)} results in {elapsed_ms:.0f}ms"
        )
        return results

    def _plan(
        self,
        classification: QueryClassification,
        options: SearchOptions,
    ) -> List[Tuple[StrategyName, float]]:
        """Choose strategies (with their timeouts) for a classification."""
        entities = classification.extracted_entities
        plan = []

        if options.enable_exact_match and entities.codes:
            plan.append((StrategyName.EXACT, options.strategy_timeout))
        if options.enable_metadata_filter and entities.names:
            plan.append((StrategyName.METADATA, options.strategy_timeout))

        # Code lookups never fall through to approximate strategies
        if classification.has_exact_intent:
            return plan

        if options.enable_fuzzy_match:
            plan.append((StrategyName.FUZZY, options.strategy_timeout))
        if options.enable_semantic_search:
            if entities.properties:
                plan.append((StrategyName.SEMANTIC, options.strategy_timeout))
            if self.vector_service is not None:
                plan.append((StrategyName.VECTOR, options.semantic_timeout))

        return plan

    def _run_strategies(
        self,
        plan: List[Tuple[StrategyName, float]],
        query: str,
        classification: QueryClassification,
        options: SearchOptions,
    ) -> List[SearchResult]:
        """Run planned strategies concurrently; failures contribute nothing."""
        started = time.monotonic()
        futures = []
        for name, timeout in plan:
            if name == StrategyName.VECTOR:
                if not self._vector_slots.acquire(blocking=False):
                    logger.warning(
                        f"Strategy {name.value} skipped: all vector workers still busy "
                        f"with earlier calls"
                    )
                    continue
                future = self._vector_executor.submit(
                    self._strategies[name], query, classification, options
                )
                # Runs on completion and on cancel alike
                future.add_done_callback(self._release_vector_slot)
            else:
                future = self._executor.submit(
                    self._strategies[name], query, classification, options
                )
            futures.append((name, timeout, future))

        candidates: List[SearchResult] = []
        for name, timeout, future in futures:
            remaining = max(0.0, timeout - (time.monotonic() - started))
            try:
                results = future.result(timeout=remaining)
            except FuturesTimeoutError:
                future.cancel()
                logger.warning(f"Strategy {name.value} timed out after {timeout:.1f}s")
                continue
            except Exception as e:
                logger.error(f"Strategy {name.value} failed: {e}")
                continue

            logger.debug(f"Strategy {name.value}: {len(results)} candidates")
            candidates.extend(results)

        return candidates

    def _release_vector_slot(self, future) -> None:
        self._vector_slots.release()

    # ========================================================================
    # STRATEGIES
    # ========================================================================

    def _exact_match(self, query, classification, options) -> List[SearchResult]:
        results = []
        for code in classification.extracted_entities.codes:
            material = self.store.find_by_code(code)
            if material is None:
                logger.debug(f"Code {code} not registered")
                continue
            results.append(SearchResult(
                document=material,
                score=SCORING_CONFIG['exact_score'],
                match_type=MatchType.EXACT,
                confidence=1.0,
                matched_fields=['code'],
                source=ResultSource.STRUCTURED_STORE,
            ))
        return results

    def _metadata_filter(self, query, classification, options) -> List[SearchResult]:
        results = []
        for name in classification.extracted_entities.names:
            needle = _normalize(name)
            for material in self.store.search_by_field(name, fields=NAME_FIELDS):
                matched = [f for f in NAME_FIELDS if needle in _normalize(getattr(material, f))]
                results.append(SearchResult(
                    document=material,
                    score=SCORING_CONFIG['metadata_score'],
                    match_type=MatchType.METADATA,
                    confidence=SCORING_CONFIG['metadata_score'],
                    matched_fields=matched,
                    source=ResultSource.STRUCTURED_STORE,
                ))
        return results

    def _fuzzy_match(self, query, classification, options) -> List[SearchResult]:
        terms = classification.extracted_entities.names or [query]

        candidates: Dict[str, MaterialDocument] = {}
        for term in terms:
            for token in LATIN_TOKEN.findall(term):
                prefix = token[:FUZZY_PREFIX_LENGTH]
                for material in self.store.search_by_field(
                    prefix,
                    fields=FUZZY_CANDIDATE_FIELDS,
                    limit=SEARCH_CONFIG['fuzzy_candidate_limit'],
                ):
                    candidates[material.code] = material

        results = []
        for material in candidates.values():
            best, best_field = 0.0, None
            for field_name, variant in _name_variants(material):
                for term in terms:
                    similarity = fuzzy_match_score(term, variant)
                    if similarity > best:
                        best, best_field = similarity, field_name

            if best >= SCORING_CONFIG['fuzzy_min_similarity']:
                results.append(SearchResult(
                    document=material,
                    score=best * SCORING_CONFIG['fuzzy_weight'],
                    match_type=MatchType.FUZZY,
                    confidence=best * SCORING_CONFIG['fuzzy_confidence_weight'],
                    matched_fields=[best_field],
                    source=ResultSource.STRUCTURED_STORE,
                ))
        return results

    def _semantic_keywords(self, query, classification, options) -> List[SearchResult]:
        relevance: Dict[str, float] = {}
        materials: Dict[str, MaterialDocument] = {}
        fields: Dict[str, List[str]] = {}

        for prop in classification.extracted_entities.properties:
            terms = PROPERTY_KEYWORDS.get(prop, {}).get('search_terms', [prop])
            field_hits: Dict[str, MaterialDocument] = {}
            text_hits: Dict[str, MaterialDocument] = {}
            for term in terms:
                for m in self.store.search_by_field(term, fields=SEMANTIC_FIELDS):
                    field_hits[m.code] = m
                for m in self.store.search_by_field(term, fields=SEMANTIC_TEXT_FIELDS):
                    text_hits[m.code] = m

            for code, material in field_hits.items():
                materials[code] = material
                relevance[code] = relevance.get(code, 0.0) + SCORING_CONFIG['semantic_field_hit']
                matched = [f for f in SEMANTIC_FIELDS
                           if any(_normalize(t) in _normalize(getattr(material, f)) for t in terms)]
                fields.setdefault(code, [])
                fields[code].extend(f for f in matched if f not in fields[code])

            for code, material in text_hits.items():
                if code in field_hits:
                    continue
                materials[code] = material
                relevance[code] = relevance.get(code, 0.0) + SCORING_CONFIG['semantic_text_hit']
                fields.setdefault(code, [])
                if 'description' not in fields[code]:
                    fields[code].append('description')

        return [
            SearchResult(
                document=materials[code],
                score=min(rel * SCORING_CONFIG['semantic_weight'], SCORING_CONFIG['semantic_cap']),
                match_type=MatchType.SEMANTIC,
                confidence=min(rel, 1.0),
                matched_fields=fields.get(code, []),
                source=ResultSource.STRUCTURED_STORE,
            )
            for code, rel in relevance.items()
        ]

    def _semantic_vector(self, query, classification, options) -> List[SearchResult]:
        queries = classification.expanded_queries[:SEARCH_CONFIG['max_expanded_queries']] or [query]
        k = options.top_k * SEARCH_CONFIG['vector_top_k_multiplier']

        best: Dict[str, Tuple[float, List[str]]] = {}
        for text in queries:
            vector = self.vector_service.embed(text)
            hits = self.vector_service.query(
                options.collection, vector, k, filter=options.metadata_filters
            )
            for hit in hits:
                metadata = hit.get('metadata') or {}
                code = metadata.get('code')
                if not code:
                    continue
                # Cosine scores from remote backends can be negative
                score = min(max(float(hit.get('score', 0.0)), 0.0), 1.0)
                if code not in best or score > best[code][0]:
                    matched = list(metadata.get('field_source') or [metadata.get('chunk_type', 'chunk')])
                    best[code] = (score, matched)

        results = []
        for code, (similarity, matched) in best.items():
            material = self.store.find_by_code(code)
            if material is None:
                logger.debug(f"Vector hit for unknown code {code}; index may be stale")
                continue
            results.append(SearchResult(
                document=material,
                score=min(similarity, SCORING_CONFIG['semantic_cap']),
                match_type=MatchType.SEMANTIC,
                confidence=similarity,
                matched_fields=matched,
                source=ResultSource.VECTOR_INDEX,
            ))
        return results


def _name_variants(material: MaterialDocument) -> List[Tuple[str, str]]:
    """Name strings a fuzzy term is compared against, tagged by field."""
    variants = [('code', material.code)]
    if material.trade_name:
        variants.append(('trade_name', material.trade_name))
        short = PARENTHETICAL.sub('', material.trade_name).strip()
        if short and short != material.trade_name:
            variants.append(('trade_name', short))
    if material.inci_name:
        variants.append(('inci_name', material.inci_name))
    return variants
