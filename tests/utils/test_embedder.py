# -*- coding: utf-8 -*-
"""
Module: test_embedder.py
Package: tests.utils
Purpose: Unit tests for BGEEmbedder with the sentence-transformers model mocked

Tests:
- Single and batch embedding dtype/shape
- Normalization flag forwarded to the model
- Dimension mismatch detection
"""

# Standard library
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import numpy as np
import pytest

# Local
from src.utils.embedder import BGEEmbedder

pytestmark = pytest.mark.utils


@pytest.fixture
def model():
    mock = MagicMock()
    mock.get_sentence_embedding_dimension.return_value = 8
    mock.device = 'cpu'
    mock.encode.side_effect = lambda texts, **kwargs: (
        np.ones(8, dtype=np.float64) if isinstance(texts, str)
        else np.ones((len(texts), 8), dtype=np.float64)
    )
    return mock


@pytest.fixture
def embedder(model):
    with patch('src.utils.embedder.SentenceTransformer', return_value=model):
        yield BGEEmbedder(model_name='BAAI/bge-m3', device='cpu')


class TestBGEEmbedder:

    def test_dimension_from_model(self, embedder):
        assert embedder.get_embedding_dim() == 8

    def test_single_embedding(self, embedder, model):
        vector = embedder.embed_single("วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น")

        assert vector.shape == (8,)
        assert vector.dtype == np.float32
        assert model.encode.call_args.kwargs['normalize_embeddings'] is True

    def test_batch_embedding(self, embedder):
        vectors = embedder.embed_batch(["RM000001", "Glycerin", "Alpha Arbutin"], batch_size=2)

        assert vectors.shape == (3, 8)
        assert vectors.dtype == np.float32

    def test_batch_dimension_mismatch(self, embedder, model):
        model.encode.side_effect = lambda texts, **kwargs: np.ones((len(texts), 4))

        with pytest.raises(ValueError):
            embedder.embed_batch(["RM000001"])

    def test_normalization_can_be_disabled(self, model):
        with patch('src.utils.embedder.SentenceTransformer', return_value=model):
            embedder = BGEEmbedder(normalize=False)

        embedder.embed_single("RM000001")
        assert model.encode.call_args.kwargs['normalize_embeddings'] is False
