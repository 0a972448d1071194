#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Script: index_materials.py
Package: scripts
Purpose: Chunk, embed, and index the raw-material catalogue into FAISS

Re-running is safe: each material's chunk set replaces the previous one and
stale chunk ids are removed using the saved chunk manifest.

Usage:
    python scripts/index_materials.py
    python scripts/index_materials.py --materials data/raw/materials.jsonl --workers 8
    python scripts/index_materials.py --dry-run          # chunk statistics only
    python scripts/index_materials.py --clear            # rebuild from scratch

References:
    - src/indexing/material_indexer.py
    - src/processing/chunks/material_chunker.py
"""

import sys
from pathlib import Path
import argparse
import json

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Config
from config.indexing_config import CHUNKING_CONFIG, INDEXING_CONFIG, VECTOR_CONFIG

# Local imports
from src.processing.chunks.material_chunker import MaterialChunker, get_chunk_stats
from src.utils.config import INDEX_PATH, LOG_LEVEL, LOG_PATH, MATERIALS_PATH
from src.utils.dataclasses import ChunkConfig
from src.utils.io import load_materials
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Index raw materials for hybrid search")

    parser.add_argument('--materials', type=Path, default=MATERIALS_PATH,
                        help=f'Material catalogue JSON/JSONL (default: {MATERIALS_PATH})')
    parser.add_argument('--index-dir', type=Path, default=INDEX_PATH,
                        help=f'Output directory for FAISS collections (default: {INDEX_PATH})')
    parser.add_argument('--collection', type=str, default=VECTOR_CONFIG['collection'],
                        help='Vector collection name')
    parser.add_argument('--workers', type=int, default=INDEXING_CONFIG['num_workers'],
                        help='Parallel indexing workers')
    parser.add_argument('--max-chunk-size', type=int, default=CHUNKING_CONFIG['max_chunk_size'])
    parser.add_argument('--chunk-overlap', type=int, default=CHUNKING_CONFIG['chunk_overlap'])
    parser.add_argument('--no-thai', action='store_true', help='Disable Thai-labelled chunks')
    parser.add_argument('--dry-run', action='store_true',
                        help='Chunk only and print statistics; nothing is embedded or saved')
    parser.add_argument('--clear', action='store_true',
                        help='Ignore the existing index and manifest, rebuild from scratch')
    parser.add_argument('--log-level', type=str, default=LOG_LEVEL, help='Logging level')

    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging(level=args.log_level, log_file=str(LOG_PATH / 'index_materials.log'))

    try:
        chunk_config = ChunkConfig(
            max_chunk_size=args.max_chunk_size,
            chunk_overlap=args.chunk_overlap,
            enable_thai_optimization=not args.no_thai,
        )
    except ValueError as e:
        logger.error(f"Invalid chunking options: {e}")
        return 2

    materials = load_materials(args.materials)
    chunker = MaterialChunker(chunk_config)

    if args.dry_run:
        chunks = [chunk for material in materials for chunk in chunker.chunk(material)]
        print(json.dumps(get_chunk_stats(chunks), indent=2, ensure_ascii=False))
        return 0

    # Deferred: loading the embedding model is slow
    from src.indexing.material_indexer import MaterialIndexer
    from src.indexing.vector_store import FAISSVectorStore
    from src.utils.embedder import BGEEmbedder

    vector_store = FAISSVectorStore(embedder=BGEEmbedder())
    manifest_path = args.index_dir / VECTOR_CONFIG['manifest_file']

    if args.clear:
        if manifest_path.exists():
            manifest_path.unlink()
            logger.info(f"Removed manifest {manifest_path}")
    elif args.index_dir.exists():
        vector_store.load(args.index_dir)

    indexer = MaterialIndexer(
        vector_store,
        chunker=chunker,
        collection=args.collection,
        manifest_path=manifest_path,
    )
    stats = indexer.index_materials(materials, num_workers=args.workers)
    vector_store.save(args.index_dir)

    print(f"\n{'='*80}")
    print("INDEXING COMPLETE")
    print(f"{'='*80}")
    print(f"Materials: {stats.indexed}/{stats.total} indexed, {stats.failed} failed")
    print(f"Chunks:    {stats.chunks} upserted, {stats.deleted} stale removed")
    print(f"Vectors:   {vector_store.count(args.collection)} in '{args.collection}'")
    print(f"Time:      {stats.duration_seconds:.1f}s")
    for code, error in list(stats.errors.items())[:10]:
        print(f"  ✗ {code}: {error}")

    return 1 if stats.failed else 0


if __name__ == '__main__':
    sys.exit(main())
