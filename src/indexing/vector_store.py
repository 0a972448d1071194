# -*- coding: utf-8 -*-
"""
FAISS-backed vector service for material chunks.

Implements the embedding/vector interface the indexer and the hybrid search
service depend on:

    embed(text) -> np.ndarray
    embed_batch(texts) -> np.ndarray of shape (n, dim)
    upsert(collection, records)
    query(collection, vector, top_k, filter=None) -> [{id, score, metadata, text}]
    delete(collection, ids)

Each collection is a flat inner-product index wrapped in an IndexIDMap2, so
chunk vectors can be replaced and removed by id. Vectors are L2-normalized on
the way in, making scores cosine similarities. String chunk ids are mapped to
stable 63-bit integers (src.utils.id_generator.generate_vector_id); the chunk
text and metadata are kept in a parallel record map that is saved as JSON next
to the .index file.

Examples:
    from src.indexing.vector_store import FAISSVectorStore
    from src.utils.embedder import BGEEmbedder

    store = FAISSVectorStore(embedder=BGEEmbedder())
    store.upsert("raw_materials", [
        {"id": "RM000001_code_exact_match", "vector": store.embed("RM000001"),
         "text": "RM000001", "metadata": {"code": "RM000001"}},
    ])
    hits = store.query("raw_materials", store.embed("RM000001"), top_k=5)
    store.save(Path("data/processed/faiss"))

References:
    FAISS: IndexFlatIP + IndexIDMap2 (exact search with id removal)
    config.indexing_config.VECTOR_CONFIG: dimensions and file naming
"""
# Standard library
import logging
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional

# Third-party
import faiss
import numpy as np

# Config imports (direct)
from config.indexing_config import VECTOR_CONFIG

# Local module imports
from src.utils.id_generator import generate_vector_id
from src.utils.io import load_json, save_json

logger = logging.getLogger(__name__)


class _Collection:
    """One FAISS index plus its chunk records."""

    def __init__(self, dim: int, index: Optional[faiss.Index] = None):
        self.index = index if index is not None else faiss.IndexIDMap2(faiss.IndexFlatIP(dim))
        self.records: Dict[str, Dict] = {}       # chunk_id -> {text, metadata}
        self.id_lookup: Dict[int, str] = {}      # vector id -> chunk_id


class FAISSVectorStore:
    """
    In-process vector service over FAISS.

    Thread-safe: every index mutation and search runs under one RLock.
    """

    def __init__(self, embedder=None, dim: Optional[int] = None):
        """
        Initialize vector store.

        Args:
            embedder: Object with embed_single(text) -> np.ndarray (BGEEmbedder).
                Only needed for embed().
            dim: Vector dimension (default: embedder's, else VECTOR_CONFIG).
        """
        self.embedder = embedder
        if dim is None and embedder is not None and hasattr(embedder, 'get_embedding_dim'):
            dim = embedder.get_embedding_dim()
        self.dim = int(dim or VECTOR_CONFIG['embedding_dim'])
        self._collections: Dict[str, _Collection] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------------
    # Vector service interface
    # ------------------------------------------------------------------------

    def embed(self, text: str) -> np.ndarray:
        """
        Embed text with the configured embedder.

        Raises:
            RuntimeError: If the store was built without an embedder.
        """
        if self.embedder is None:
            raise RuntimeError("FAISSVectorStore has no embedder configured")
        vector = np.asarray(self.embedder.embed_single(text), dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.dim:
            raise ValueError(f"Expected {self.dim}-dim embedding, got {vector.shape[0]}-dim")
        return vector

    def embed_batch(self, texts: List[str]) -> np.ndarray:
        """
        Embed several texts in one embedder call.

        Returns:
            float32 array of shape (len(texts), dim).
        """
        if self.embedder is None:
            raise RuntimeError("FAISSVectorStore has no embedder configured")
        if not texts:
            return np.zeros((0, self.dim), dtype=np.float32)
        vectors = np.asarray(self.embedder.embed_batch(list(texts)), dtype=np.float32)
        if vectors.ndim != 2 or vectors.shape != (len(texts), self.dim):
            raise ValueError(
                f"Expected ({len(texts)}, {self.dim}) embeddings, got {vectors.shape}"
            )
        return vectors

    def upsert(self, collection: str, records: List[Dict]) -> int:
        """
        Insert or replace vectors by id.

        Args:
            collection: Collection name (created on first use).
            records: Dicts with 'id', 'vector', optional 'text' and 'metadata'.
                Later records win when an id repeats.

        Returns:
            Number of vectors stored.
        """
        if not records:
            return 0

        latest: Dict[str, Dict] = {}
        for record in records:
            if not record.get('id'):
                raise ValueError("Vector record without id")
            latest[record['id']] = record

        vectors = np.vstack([
            np.asarray(r['vector'], dtype=np.float32).reshape(1, -1) for r in latest.values()
        ])
        if vectors.shape[1] != self.dim:
            raise ValueError(f"Expected {self.dim}-dim vectors, got {vectors.shape[1]}-dim")
        vectors = np.ascontiguousarray(vectors)
        faiss.normalize_L2(vectors)

        chunk_ids = list(latest)
        vector_ids = np.array([generate_vector_id(cid) for cid in chunk_ids], dtype=np.int64)

        with self._lock:
            coll = self._get_or_create(collection)
            existing = [vid for vid in vector_ids.tolist() if vid in coll.id_lookup]
            if existing:
                coll.index.remove_ids(np.array(existing, dtype=np.int64))

            coll.index.add_with_ids(vectors, vector_ids)
            for chunk_id, vector_id in zip(chunk_ids, vector_ids.tolist()):
                record = latest[chunk_id]
                coll.records[chunk_id] = {
                    'text': record.get('text', ''),
                    'metadata': dict(record.get('metadata') or {}),
                }
                coll.id_lookup[vector_id] = chunk_id

        logger.debug(f"Upserted {len(chunk_ids)} vectors into '{collection}' "
                     f"({len(existing)} replaced)")
        return len(chunk_ids)

    def query(
        self,
        collection: str,
        vector: np.ndarray,
        top_k: int = 10,
        filter: Optional[Dict] = None,
    ) -> List[Dict]:
        """
        Nearest chunks by cosine similarity.

        Args:
            collection: Collection name.
            vector: Query embedding.
            top_k: Maximum hits.
            filter: Optional metadata constraints, {key: value} or
                {key: [allowed values]}; every key must match.

        Returns:
            List of {'id', 'score', 'metadata', 'text'}, best first. Unknown or
            empty collections return [].
        """
        if top_k <= 0:
            return []

        query = np.array(vector, dtype=np.float32).reshape(1, -1)
        if query.shape[1] != self.dim:
            raise ValueError(f"Expected {self.dim}-dim query, got {query.shape[1]}-dim")
        faiss.normalize_L2(query)

        with self._lock:
            coll = self._collections.get(collection)
            if coll is None or coll.index.ntotal == 0:
                return []

            # Flat index: a filtered query scans every vector and filters after
            k = coll.index.ntotal if filter else min(top_k, coll.index.ntotal)
            scores, ids = coll.index.search(query, k)

            hits = []
            for score, vector_id in zip(scores[0].tolist(), ids[0].tolist()):
                if vector_id == -1:
                    continue
                chunk_id = coll.id_lookup[vector_id]
                record = coll.records[chunk_id]
                if filter and not _matches_filter(record['metadata'], filter):
                    continue
                hits.append({
                    'id': chunk_id,
                    'score': float(min(max(score, 0.0), 1.0)),
                    'metadata': dict(record['metadata']),
                    'text': record['text'],
                })
                if len(hits) >= top_k:
                    break
        return hits

    def delete(self, collection: str, ids: List[str]) -> int:
        """
        Remove vectors by chunk id. Unknown ids are ignored.

        Returns:
            Number of vectors removed.
        """
        with self._lock:
            coll = self._collections.get(collection)
            if coll is None or not ids:
                return 0

            present = [cid for cid in ids if cid in coll.records]
            if not present:
                return 0

            vector_ids = [generate_vector_id(cid) for cid in present]
            removed = coll.index.remove_ids(np.array(vector_ids, dtype=np.int64))
            for cid, vid in zip(present, vector_ids):
                coll.records.pop(cid, None)
                coll.id_lookup.pop(vid, None)

        logger.debug(f"Deleted {removed} vectors from '{collection}'")
        return int(removed)

    # ------------------------------------------------------------------------
    # Inspection and persistence
    # ------------------------------------------------------------------------

    def count(self, collection: str) -> int:
        with self._lock:
            coll = self._collections.get(collection)
            return coll.index.ntotal if coll is not None else 0

    def collections(self) -> List[str]:
        with self._lock:
            return sorted(self._collections)

    def save(self, output_dir: Path) -> None:
        """
        Save every collection as {name}.index plus {name}_records.json.

        Args:
            output_dir: Directory to write into (created if missing).
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        with self._lock:
            for name, coll in self._collections.items():
                if coll.index.ntotal != len(coll.records):
                    raise ValueError(
                        f"Index/record mismatch in '{name}': "
                        f"{coll.index.ntotal} vectors vs {len(coll.records)} records"
                    )
                index_path = output_dir / f"{name}{VECTOR_CONFIG['index_file_suffix']}"
                faiss.write_index(coll.index, str(index_path))
                records = [{'id': cid, **rec} for cid, rec in coll.records.items()]
                save_json(records, output_dir / f"{name}{VECTOR_CONFIG['records_file_suffix']}")
                logger.info(f"✓ Saved collection '{name}' ({coll.index.ntotal:,} vectors)")

    def load(self, input_dir: Path) -> List[str]:
        """
        Load every collection saved in a directory, replacing in-memory ones.

        Args:
            input_dir: Directory written by save().

        Returns:
            Names of loaded collections.
        """
        input_dir = Path(input_dir)
        loaded = []
        suffix = VECTOR_CONFIG['index_file_suffix']

        for index_path in sorted(input_dir.glob(f"*{suffix}")):
            name = index_path.name[:-len(suffix)]
            records_path = input_dir / f"{name}{VECTOR_CONFIG['records_file_suffix']}"
            if not records_path.exists():
                raise FileNotFoundError(f"Missing record map for collection '{name}': {records_path}")

            index = faiss.read_index(str(index_path))
            if index.d != self.dim:
                raise ValueError(f"Collection '{name}' has {index.d}-dim vectors, expected {self.dim}")

            coll = _Collection(self.dim, index=index)
            for record in load_json(records_path):
                chunk_id = record['id']
                coll.records[chunk_id] = {
                    'text': record.get('text', ''),
                    'metadata': record.get('metadata', {}),
                }
                coll.id_lookup[generate_vector_id(chunk_id)] = chunk_id

            if coll.index.ntotal != len(coll.records):
                raise ValueError(
                    f"Index/record mismatch in '{name}': "
                    f"{coll.index.ntotal} vectors vs {len(coll.records)} records"
                )

            with self._lock:
                self._collections[name] = coll
            loaded.append(name)
            logger.info(f"✓ Loaded collection '{name}' ({coll.index.ntotal:,} vectors)")

        return loaded

    def _get_or_create(self, collection: str) -> _Collection:
        coll = self._collections.get(collection)
        if coll is None:
            coll = _Collection(self.dim)
            self._collections[collection] = coll
            logger.info(f"Created collection '{collection}' (dim={self.dim})")
        return coll


def _matches_filter(metadata: Dict, constraints: Dict) -> bool:
    """True when every constraint key matches (list/tuple/set values mean "any of")."""
    for key, expected in constraints.items():
        value = metadata.get(key)
        if isinstance(expected, (list, tuple, set)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True
