# -*- coding: utf-8 -*-
"""
Module: test_vector_store.py
Package: tests.indexing
Purpose: Unit tests for the FAISS vector store (small dimension, fake embedder)
"""

# Standard library
import sys
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import numpy as np
import pytest

# Local
from src.indexing.vector_store import FAISSVectorStore

pytestmark = pytest.mark.indexing

COLLECTION = "raw_materials"

TEXTS = {
    "RM000001_primary_identifier": "RM000001 hyaluronic acid sodium hyaluronate",
    "RM000045_primary_identifier": "RM000045 glycerin humectant",
    "RDSAM00171_primary_identifier": "RDSAM00171 alpha arbutin whitening",
}


@pytest.fixture
def vector_store(fake_embedder):
    vs = FAISSVectorStore(embedder=fake_embedder)
    vs.upsert(COLLECTION, [
        {
            'id': chunk_id,
            'vector': vs.embed(text),
            'text': text,
            'metadata': {'code': chunk_id.split('_')[0]},
        }
        for chunk_id, text in TEXTS.items()
    ])
    return vs


class TestFAISSVectorStore:

    def test_dimension_from_embedder(self, vector_store):
        assert vector_store.dim == 16
        assert vector_store.count(COLLECTION) == 3

    def test_query_finds_same_text_first(self, vector_store):
        query = vector_store.embed(TEXTS["RM000045_primary_identifier"])
        hits = vector_store.query(COLLECTION, query, top_k=2)

        assert len(hits) == 2
        assert hits[0]['id'] == "RM000045_primary_identifier"
        assert hits[0]['metadata'] == {'code': 'RM000045'}
        assert hits[0]['score'] == pytest.approx(1.0, abs=1e-5)
        assert all(0.0 <= h['score'] <= 1.0 for h in hits)

    def test_query_with_metadata_filter(self, vector_store):
        query = vector_store.embed(TEXTS["RM000045_primary_identifier"])

        hits = vector_store.query(COLLECTION, query, top_k=5, filter={'code': 'RDSAM00171'})
        assert [h['id'] for h in hits] == ["RDSAM00171_primary_identifier"]

        hits = vector_store.query(
            COLLECTION, query, top_k=1, filter={'code': ['RM000001', 'RDSAM00171']}
        )
        assert len(hits) == 1
        assert hits[0]['metadata']['code'] in {'RM000001', 'RDSAM00171'}

        assert vector_store.query(COLLECTION, query, top_k=5, filter={'code': 'RM999999'}) == []

    def test_embed_batch(self, vector_store):
        texts = list(TEXTS.values())
        vectors = vector_store.embed_batch(texts)

        assert vectors.shape == (3, 16)
        assert vectors.dtype == np.float32
        np.testing.assert_array_equal(vectors[1], vector_store.embed(texts[1]))
        assert vector_store.embed_batch([]).shape == (0, 16)

    def test_upsert_replaces_by_id(self, vector_store):
        chunk_id = "RM000045_primary_identifier"
        text = "RM000045 glycerol"
        vector_store.upsert(COLLECTION, [{
            'id': chunk_id, 'vector': vector_store.embed(text), 'text': text,
            'metadata': {'code': 'RM000045', 'version': 2},
        }])

        assert vector_store.count(COLLECTION) == 3
        hit = vector_store.query(COLLECTION, vector_store.embed(text), top_k=1)[0]
        assert hit['id'] == chunk_id
        assert hit['text'] == text
        assert hit['metadata']['version'] == 2

    def test_delete(self, vector_store):
        removed = vector_store.delete(COLLECTION, ["RM000001_primary_identifier", "unknown"])

        assert removed == 1
        assert vector_store.count(COLLECTION) == 2
        ids = [h['id'] for h in vector_store.query(COLLECTION, np.ones(16), top_k=10)]
        assert "RM000001_primary_identifier" not in ids

    def test_unknown_collection(self, vector_store):
        assert vector_store.query("other", np.ones(16), top_k=5) == []
        assert vector_store.delete("other", ["x"]) == 0
        assert vector_store.count("other") == 0

    def test_dimension_mismatch(self, vector_store):
        with pytest.raises(ValueError):
            vector_store.query(COLLECTION, np.ones(8), top_k=1)
        with pytest.raises(ValueError):
            vector_store.upsert(COLLECTION, [{'id': 'x', 'vector': np.ones(8)}])

    def test_record_without_id(self, vector_store):
        with pytest.raises(ValueError):
            vector_store.upsert(COLLECTION, [{'vector': np.ones(16)}])

    def test_embed_requires_embedder(self):
        with pytest.raises(RuntimeError):
            FAISSVectorStore(dim=16).embed("RM000001")

    def test_save_and_load(self, vector_store, fake_embedder, tmp_path):
        vector_store.save(tmp_path)

        assert (tmp_path / f"{COLLECTION}.index").exists()
        assert (tmp_path / f"{COLLECTION}_records.json").exists()

        restored = FAISSVectorStore(embedder=fake_embedder)
        assert restored.load(tmp_path) == [COLLECTION]
        assert restored.count(COLLECTION) == 3

        query = restored.embed(TEXTS["RDSAM00171_primary_identifier"])
        hit = restored.query(COLLECTION, query, top_k=1)[0]
        assert hit['id'] == "RDSAM00171_primary_identifier"
        assert hit['metadata']['code'] == "RDSAM00171"

        # Ids survive the round trip, so deletes still work
        assert restored.delete(COLLECTION, ["RDSAM00171_primary_identifier"]) == 1

    def test_load_rejects_wrong_dimension(self, vector_store, tmp_path):
        vector_store.save(tmp_path)
        with pytest.raises(ValueError):
            FAISSVectorStore(dim=32).load(tmp_path)
