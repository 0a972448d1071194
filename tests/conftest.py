# -*- coding: utf-8 -*-
"""
Shared test fixtures for the retrieval engine test suite.

Provides: a small Thai/English material catalogue, an in-memory store over it,
and a deterministic fake embedder for FAISS tests (no model download).
"""

# Standard library
import hashlib
import sys
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Third-party
import numpy as np
import pytest

# Local
from src.retrieval.material_store import InMemoryMaterialStore
from src.utils.dataclasses import MaterialDocument


MATERIAL_ROWS = [
    {
        'rm_code': 'RM000001',
        'trade_name': 'Hyaluronic Acid (Low Molecular Weight)',
        'inci_name': 'Sodium Hyaluronate',
        'category': 'Humectant',
        'benefits': 'Moisturizing, hydrating, plumping',
        'supplier': 'Bloomage Biotech',
        'rm_cost': '3,500',
        'unit': 'กก',
        'company_name': 'Bloomage',
        'details': 'ให้ความชุ่มชื้นแก่ผิว ช่วยลดริ้วรอย',
    },
    {
        'rm_code': 'RC00A008',
        'trade_name': 'Ginger Extract - DL',
        'inci_name': 'Zingiber Officinale Root Extract',
        'category': 'Botanical extract',
        'benefits': 'Soothing, antioxidant',
        'supplier': 'Nature Labs',
    },
    {
        'rm_code': 'RDSAM00171',
        'trade_name': 'Alpha Arbutin',
        'inci_name': 'Alpha-Arbutin',
        'category': 'Skin lightening',
        'benefits': 'Whitening, brightening',
        'details': 'Tyrosinase inhibitor for even skin tone',
    },
    {
        'rm_code': 'RM000045',
        'trade_name': 'Glycerin 99.5%',
        'inci_name': 'Glycerin',
        'category': 'Humectant',
        'benefits': 'Moisturizer',
        'rm_cost': 85,
        'unit': 'kg',
    },
]


@pytest.fixture
def materials():
    """Four well-formed material records."""
    return [MaterialDocument.from_dict(row) for row in MATERIAL_ROWS]


@pytest.fixture
def store(materials):
    """In-memory store holding the sample catalogue."""
    return InMemoryMaterialStore(materials)


class FakeEmbedder:
    """Deterministic bag-of-words embedder (hashes lowercase tokens into buckets)."""

    def __init__(self, dim: int = 16):
        self.dim = dim

    def get_embedding_dim(self) -> int:
        return self.dim

    def embed_single(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dim, dtype=np.float32)
        for token in text.lower().split():
            bucket = int(hashlib.md5(token.encode('utf-8')).hexdigest(), 16) % self.dim
            vector[bucket] += 1.0
        if not vector.any():
            vector[0] = 1.0
        return vector

    def embed_batch(self, texts):
        return np.vstack([self.embed_single(text) for text in texts])


@pytest.fixture
def fake_embedder():
    return FakeEmbedder(dim=16)
