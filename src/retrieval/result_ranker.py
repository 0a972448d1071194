# -*- coding: utf-8 -*-
"""
Result merging and ranking for hybrid material search.

Candidates arrive from up to four strategies (exact, metadata, fuzzy, semantic)
and may name the same material several times. The ranker keeps one result per
material code (the highest-scoring occurrence, ties broken toward the more
precise match type: exact > metadata > fuzzy > semantic), sorts by descending
score, drops results below the similarity threshold, and truncates to top-K.

When the query carries exact-code intent, exact and metadata results are placed
ahead of fuzzy and semantic ones regardless of score, and a result list without
any exact/metadata hit is empty (an unregistered code is a normal "no match").

Examples:
    from src.retrieval.result_ranker import ResultRanker

    ranker = ResultRanker()
    ranked = ranker.rank(candidates, options, exact_intent=classification.has_exact_intent)
    for r in ranked:
        print(f"[{r.score:.3f}] {r.code} ({r.match_type.value})")

References:
    config.retrieval_config.MATCH_TYPE_PRECEDENCE: tie-break order
"""
# Standard library
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

# Config imports (direct)
from config.retrieval_config import MATCH_TYPE_PRECEDENCE

# Dataclass imports (direct)
from src.utils.dataclasses import MatchType, SearchOptions, SearchResult

logger = logging.getLogger(__name__)

PRIMARY_MATCH_TYPES = (MatchType.EXACT, MatchType.METADATA)


def _sort_key(result: SearchResult) -> Tuple[float, int, str]:
    return (-result.score, MATCH_TYPE_PRECEDENCE[result.match_type.value], result.code)


class ResultRanker:
    """
    Merge, deduplicate, and rank hybrid search candidates.

    Stateless; safe to share across concurrent searches.
    """

    def merge(self, candidates: List[SearchResult]) -> List[SearchResult]:
        """
        Deduplicate candidates by material code.

        The kept occurrence is the best by (score, match-type precedence);
        matched_fields from every occurrence are unioned onto it.

        Args:
            candidates: Results from all strategies, any order.

        Returns:
            One result per code (unordered).
        """
        best: Dict[str, SearchResult] = {}
        fields: Dict[str, List[str]] = {}

        for result in candidates:
            code = result.code
            merged_fields = fields.setdefault(code, [])
            for name in result.matched_fields:
                if name not in merged_fields:
                    merged_fields.append(name)

            current = best.get(code)
            if current is None or _sort_key(result) < _sort_key(current):
                best[code] = result

        return [replace(r, matched_fields=list(fields[code])) for code, r in best.items()]

    def rank(
        self,
        candidates: List[SearchResult],
        options: Optional[SearchOptions] = None,
        exact_intent: bool = False,
    ) -> List[SearchResult]:
        """
        Produce the final ranked result list.

        Args:
            candidates: Results from all strategies.
            options: SearchOptions (top_k, similarity_threshold); defaults when None.
            exact_intent: Query named a material code.

        Returns:
            At most top_k results, unique by code, sorted by descending score
            (exact/metadata first under exact intent).
        """
        options = options or SearchOptions()

        merged = self.merge(candidates)
        ordered = sorted(merged, key=_sort_key)
        kept = [r for r in ordered if r.score >= options.similarity_threshold]

        if exact_intent:
            primary = [r for r in kept if r.match_type in PRIMARY_MATCH_TYPES]
            if not primary:
                logger.debug("Exact-code query without exact/metadata match; no results")
                return []
            kept = primary + [r for r in kept if r.match_type not in PRIMARY_MATCH_TYPES]

        logger.debug(
            f"Ranked {len(candidates)} candidates -> {len(merged)} unique, "
            f"{len(kept)} above threshold {options.similarity_threshold}"
        )
        return kept[:options.top_k]
