"""
Multilingual BGE-M3 embedder for material chunks and search queries

Usage: indexing (chunk texts) and semantic search (expanded queries).
Thai and English text share one embedding space.
"""

from sentence_transformers import SentenceTransformer
import numpy as np
from typing import List, Optional
import logging

from src.utils.config import (
    EMBEDDING_MODEL, EMBEDDING_DIMENSION, EMBEDDING_BATCH_SIZE, EMBEDDING_DEVICE
)

logger = logging.getLogger(__name__)


class BGEEmbedder:
    """
    BGE-M3 embedder shared by indexing and search.

    Model: BAAI/bge-m3 (1024 dimensions, multilingual)

    Example:
        embedder = BGEEmbedder(device='cpu')

        # Chunk texts at indexing time
        vectors = embedder.embed_batch(["RM000001 Hyaluronic Acid ...", ...])

        # Query at search time
        vector = embedder.embed_single("วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น")
    """

    def __init__(self, model_name: str = EMBEDDING_MODEL, device: Optional[str] = EMBEDDING_DEVICE,
                 normalize: bool = True):
        """
        Initialize BGE-M3 embedder.

        Args:
            model_name: HuggingFace model identifier (default: BAAI/bge-m3)
            device: 'cpu', 'cuda', or None for auto-detect
            normalize: L2-normalize outputs so inner product equals cosine
        """
        logger.info(f"Loading embedding model: {model_name}")

        self.model = SentenceTransformer(model_name, device=device)
        self.normalize = normalize
        self.embedding_dim = (
            self.model.get_sentence_embedding_dimension() or EMBEDDING_DIMENSION
        )

        logger.info(f"Model loaded on device: {self.model.device}")
        logger.info(f"Embedding dimension: {self.embedding_dim}")

    def embed_single(self, text: str) -> np.ndarray:
        """
        Embed a single text (chunk or query).

        Args:
            text: Text to embed

        Returns:
            Embedding vector as float32 numpy array
        """
        embedding = self.model.encode(
            text,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
        )
        return embedding.astype(np.float32)

    def embed_batch(self, texts: List[str], batch_size: int = EMBEDDING_BATCH_SIZE,
                    show_progress: bool = False) -> np.ndarray:
        """
        Embed multiple texts in batches (memory efficient).

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per batch
                - CPU: 32 is optimal
                - GPU: 64-128 depending on VRAM
            show_progress: Show progress bar

        Returns:
            Array of shape (n_texts, embedding_dim)
        """
        logger.info(f"Embedding {len(texts)} texts with batch_size={batch_size}")

        embeddings = self.model.encode(
            texts,
            batch_size=batch_size,
            show_progress_bar=show_progress,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
        )

        if embeddings.shape[1] != self.embedding_dim:
            raise ValueError(
                f"Expected {self.embedding_dim}-dim, got {embeddings.shape[1]}-dim"
            )

        logger.info(f"✓ Embedded {len(texts)} texts successfully")
        return embeddings.astype(np.float32)

    def get_embedding_dim(self) -> int:
        """Return embedding dimensionality (1024 for BGE-M3)."""
        return self.embedding_dim
