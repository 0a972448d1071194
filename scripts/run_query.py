#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Script: run_query.py
Package: scripts
Purpose: CLI interface for hybrid raw-material search

Usage:
    python scripts/run_query.py "RM000001"
    python scripts/run_query.py "วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น" --top-k 5 --verbose
    python scripts/run_query.py "Hyaluronic Acod" --no-vector --output results.json
    python scripts/run_query.py "supplier of vitamin c" --classify-only
    python scripts/run_query.py "ALPHA ARBUTIN" --context   # LLM context block

References:
    - src/retrieval/hybrid_search.py
    - scripts/index_materials.py (builds the vector index this script loads)
"""

import sys
from pathlib import Path
import argparse
from datetime import datetime

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Local imports
from src.retrieval.hybrid_search import HybridSearchService
from src.retrieval.material_store import CachedMaterialStore, InMemoryMaterialStore
from src.retrieval.query_classifier import classify_query
from src.retrieval.result_formatter import format_results
from src.utils.config import INDEX_PATH, LOG_LEVEL, MATERIALS_PATH
from src.utils.dataclasses import SearchOptions
from src.utils.io import load_materials, save_json
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Hybrid search over the raw-material catalogue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_query.py "RM000001"
  python scripts/run_query.py "Ginger Extract - DL มีรหัสสารคืออะไร" --verbose
  python scripts/run_query.py "humectant materials" --top-k 3 --threshold 0.6
  python scripts/run_query.py "hello" --classify-only
        """
    )

    parser.add_argument('query', type=str, help='Query string to process')
    parser.add_argument('--materials', type=Path, default=MATERIALS_PATH,
                        help=f'Material catalogue JSON/JSONL (default: {MATERIALS_PATH})')
    parser.add_argument('--index-dir', type=Path, default=INDEX_PATH,
                        help=f'Saved FAISS collections (default: {INDEX_PATH})')
    parser.add_argument('--no-vector', action='store_true',
                        help='Skip the vector index (structured strategies only)')
    parser.add_argument('--top-k', type=int, default=None, help='Maximum results')
    parser.add_argument('--threshold', type=float, default=None,
                        help='Minimum score to keep a result')
    parser.add_argument('--classify-only', action='store_true',
                        help='Print the query classification and exit')
    parser.add_argument('--context', action='store_true',
                        help='Print results as an LLM context block')
    parser.add_argument('--output', type=str, help='Save results to JSON file (optional)')
    parser.add_argument('--verbose', action='store_true', help='Show classification details')
    parser.add_argument('--log-level', type=str, default=LOG_LEVEL, help='Logging level')

    return parser.parse_args()


# ============================================================================
# SERVICE LOADING
# ============================================================================

def load_service(materials_path: Path, index_dir: Path, use_vector: bool) -> HybridSearchService:
    """
    Build the search service from a catalogue file and optional FAISS index.

    Returns:
        HybridSearchService ready for queries.
    """
    logger.info("Loading search components...")

    store = CachedMaterialStore(InMemoryMaterialStore(load_materials(materials_path)))

    vector_service = None
    if use_vector and index_dir.exists():
        # Deferred: loading the embedding model is slow
        from src.indexing.vector_store import FAISSVectorStore
        from src.utils.embedder import BGEEmbedder

        vector_service = FAISSVectorStore(embedder=BGEEmbedder())
        loaded = vector_service.load(index_dir)
        if not loaded:
            logger.warning(f"No collections found in {index_dir}; vector search disabled")
            vector_service = None
    elif use_vector:
        logger.warning(f"Index directory {index_dir} not found; vector search disabled")

    return HybridSearchService(store=store, vector_service=vector_service)


def print_classification(query: str) -> dict:
    """Classify and print; returns the classification as a dict."""
    c = classify_query(query)
    info = {
        'is_raw_materials_query': c.is_raw_materials_query,
        'query_type': c.query_type.value,
        'confidence': c.confidence,
        'search_strategy': c.search_strategy.value,
        'language': c.language.value,
        'codes': c.extracted_entities.codes,
        'names': c.extracted_entities.names,
        'properties': c.extracted_entities.properties,
        'detected_patterns': c.detected_patterns,
        'expanded_queries': c.expanded_queries,
    }
    print("CLASSIFICATION:")
    for key, value in info.items():
        print(f"  {key}: {value}")
    print()
    return info


# ============================================================================
# MAIN
# ============================================================================

def main():
    args = parse_args()
    setup_logging(level=args.log_level)

    print(f"\n{'='*80}")
    print(f"QUERY: {args.query}")
    print(f"{'='*80}\n")

    if args.classify_only:
        print_classification(args.query)
        return 0

    option_values = {}
    if args.top_k is not None:
        option_values['top_k'] = args.top_k
    if args.threshold is not None:
        option_values['similarity_threshold'] = args.threshold
    try:
        options = SearchOptions(**option_values)
    except ValueError as e:
        print(f"Invalid options: {e}")
        return 2

    classification = print_classification(args.query) if args.verbose else None

    start_time = datetime.now()
    with load_service(args.materials, args.index_dir, not args.no_vector) as service:
        results = service.search(args.query, options)
    elapsed = (datetime.now() - start_time).total_seconds()

    if args.context:
        print(format_results(results))
    else:
        print(f"{'-'*80}")
        print(f"RESULTS: {len(results)}")
        print(f"{'-'*80}")
        for i, r in enumerate(results, 1):
            doc = r.document
            print(f"  [{i}] {doc.code}  {doc.trade_name}")
            print(f"      Score: {r.score:.3f}, Match: {r.match_type.value}, "
                  f"Source: {r.source.value}, Fields: {', '.join(r.matched_fields)}")
        print()

    print(f"Total time: {elapsed:.2f}s")

    if args.output:
        save_json({
            'query': args.query,
            'timestamp': start_time.isoformat(),
            'elapsed_seconds': elapsed,
            'classification': classification,
            'results': [r.to_dict() for r in results],
        }, args.output)
        print(f"Saved results to {args.output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
