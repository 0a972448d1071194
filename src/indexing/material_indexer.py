# -*- coding: utf-8 -*-
"""
Material indexing pipeline: chunk -> embed -> upsert.

Keeps the vector index in step with the structured store. Every (re)index of a
material replaces that material's chunk set as a whole: chunks from the new
chunking run are upserted under their deterministic ids, and ids recorded for
the code by an earlier run but absent from the new set are deleted, so no
orphan chunks survive a re-chunk. When a manifest path is given, the code ->
chunk-id manifest is written after every single-material index or removal (and
periodically during batch runs), so this holds across restarts.

Batch runs fan out over a ThreadPoolExecutor with a tqdm progress bar; a failure
on one material is logged and counted, never raised, so one bad record cannot
stop a catalogue rebuild.

Examples:
    from src.indexing.material_indexer import MaterialIndexer
    from src.indexing.vector_store import FAISSVectorStore
    from src.utils.embedder import BGEEmbedder

    vectors = FAISSVectorStore(embedder=BGEEmbedder())
    indexer = MaterialIndexer(vectors, manifest_path=Path("data/processed/faiss/chunk_manifest.json"))

    report = indexer.index_material(material)        # IndexReport
    stats = indexer.index_materials(materials, num_workers=4)
    indexer.remove_material("RM000001")
"""
# Standard library
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

# Third-party
from tqdm import tqdm

# Config imports (direct)
from config.indexing_config import INDEXING_CONFIG, VECTOR_CONFIG
from config.retrieval_config import normalize_code

# Dataclass imports (direct)
from src.utils.dataclasses import IndexingStats, IndexReport, MaterialDocument

# Local module imports
from src.processing.chunks.material_chunker import MaterialChunker, chunks_to_documents
from src.utils.io import load_json, save_json

logger = logging.getLogger(__name__)


class MaterialIndexer:
    """
    Idempotent per-material indexer.

    Collaborators:
    - vector_service: embed_batch(), upsert(), delete() (FAISSVectorStore or remote)
    - chunker: MaterialChunker (default config when omitted)
    """

    def __init__(
        self,
        vector_service,
        chunker: Optional[MaterialChunker] = None,
        collection: str = VECTOR_CONFIG['collection'],
        manifest_path: Optional[Path] = None,
    ):
        self.vector_service = vector_service
        self.chunker = chunker or MaterialChunker()
        self.collection = collection
        self.manifest_path = Path(manifest_path) if manifest_path else None

        self._manifest: Dict[str, List[str]] = {}
        self._lock = Lock()
        self._save_lock = Lock()
        self._code_locks: Dict[str, Lock] = {}

        if self.manifest_path and self.manifest_path.exists():
            self._manifest = {code: list(ids) for code, ids in load_json(self.manifest_path).items()}
            logger.info(f"Loaded chunk manifest for {len(self._manifest)} materials")

    # ------------------------------------------------------------------------
    # Single material
    # ------------------------------------------------------------------------

    def index_material(self, material: MaterialDocument) -> IndexReport:
        """
        Chunk, embed, and upsert one material, replacing its previous chunks.

        The manifest is saved afterwards when a manifest path is configured.

        Args:
            material: Record to index.

        Returns:
            IndexReport with the new chunk ids and deleted stale ids.

        Raises:
            Whatever the vector service raises; the manifest is only updated
            after both upsert and delete succeed.
        """
        report = self._index(material)
        self.save_manifest()
        return report

    def _index(self, material: MaterialDocument) -> IndexReport:
        code = material.code
        with self._lock_for(code):
            chunks = self.chunker.chunk(material)
            documents = chunks_to_documents(chunks)

            vectors = self.vector_service.embed_batch([doc.text for doc in documents])
            records = [
                {
                    'id': doc.id,
                    'vector': vector,
                    'text': doc.text,
                    'metadata': doc.metadata,
                }
                for doc, vector in zip(documents, vectors)
            ]
            new_ids = [doc.id for doc in documents]

            with self._lock:
                previous = list(self._manifest.get(code, []))
            keep = set(new_ids)
            stale = [cid for cid in previous if cid not in keep]

            self.vector_service.upsert(self.collection, records)
            if stale:
                self.vector_service.delete(self.collection, stale)

            with self._lock:
                self._manifest[code] = new_ids

        logger.debug(f"Indexed {code}: {len(new_ids)} chunks, {len(stale)} stale removed")
        return IndexReport(code=code, chunk_ids=new_ids, deleted_ids=stale)

    def remove_material(self, code: str) -> int:
        """
        Delete every indexed chunk of a material.

        Returns:
            Number of chunk ids passed to the vector service.
        """
        code = normalize_code(code)
        with self._lock_for(code):
            with self._lock:
                ids = self._manifest.pop(code, [])
            if ids:
                self.vector_service.delete(self.collection, ids)
        if ids:
            self.save_manifest()
        logger.info(f"Removed {len(ids)} chunks for {code}")
        return len(ids)

    # ------------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------------

    def index_materials(
        self,
        materials: List[MaterialDocument],
        num_workers: int = INDEXING_CONFIG['num_workers'],
        show_progress: bool = True,
    ) -> IndexingStats:
        """
        Index many materials in parallel.

        Args:
            materials: Records to index (duplicated codes are indexed once, last wins).
            num_workers: Thread pool size.
            show_progress: Display tqdm progress bar.

        Returns:
            IndexingStats with per-code errors.
        """
        unique = list({m.code: m for m in materials}.values())
        stats = IndexingStats(total=len(unique))
        start = time.time()

        logger.info(f"Indexing {len(unique)} materials into '{self.collection}' "
                    f"with {num_workers} workers")

        with tqdm(total=len(unique), desc="Indexing materials", unit="material",
                  disable=not show_progress) as pbar:
            with ThreadPoolExecutor(max_workers=max(1, num_workers)) as executor:
                futures = {
                    executor.submit(self._index, material): material
                    for material in unique
                }

                for future in as_completed(futures):
                    material = futures[future]
                    try:
                        report = future.result()
                        stats.indexed += 1
                        stats.chunks += len(report.chunk_ids)
                        stats.deleted += len(report.deleted_ids)
                    except Exception as e:
                        stats.failed += 1
                        stats.errors[material.code] = str(e)
                        logger.error(f"Error indexing {material.code}: {e}")
                    finally:
                        pbar.update(1)

                    done = stats.indexed + stats.failed
                    if done % INDEXING_CONFIG['manifest_save_every'] == 0:
                        self.save_manifest()

        stats.duration_seconds = time.time() - start
        self.save_manifest()

        logger.info(
            f"✓ Indexed {stats.indexed}/{stats.total} materials "
            f"({stats.chunks} chunks, {stats.deleted} stale removed, {stats.failed} failed) "
            f"in {stats.duration_seconds:.1f}s"
        )
        return stats

    # ------------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------------

    def chunk_ids(self, code: str) -> List[str]:
        with self._lock:
            return list(self._manifest.get(code, []))

    def save_manifest(self) -> Optional[str]:
        """Write the manifest to manifest_path (no-op without one)."""
        if self.manifest_path is None:
            return None
        with self._save_lock:
            with self._lock:
                snapshot = {code: list(ids) for code, ids in self._manifest.items()}
            return save_json(snapshot, self.manifest_path)

    def _lock_for(self, code: str) -> Lock:
        with self._lock:
            if code not in self._code_locks:
                self._code_locks[code] = Lock()
            return self._code_locks[code]
