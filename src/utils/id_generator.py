# -*- coding: utf-8 -*-
"""
Deterministic ID generation for retrieval artifacts.

Single source of truth for all ID generation. Chunk IDs are readable and
derived from the material code and chunk type, so re-chunking a material
produces the same IDs. Vector IDs are SHA-256 based integers that FAISS can
store in an IndexIDMap.

Example:
    from src.utils.id_generator import generate_chunk_id, generate_vector_id

    chunk_id = generate_chunk_id("RM000001", "technical_specs", 0)
    # Returns: "RM000001_technical_specs_0"
    vector_id = generate_vector_id(chunk_id)
    # Returns: positive 63-bit int, stable across runs
"""

import hashlib
from typing import Optional


def _hash_string(content: str, length: int = 12) -> str:
    """
    Generate truncated SHA-256 hash of content.

    Args:
        content: String to hash (should be pre-normalized)
        length: Number of hex characters to return (default 12 = 48 bits)

    Returns:
        Lowercase hex hash string
    """
    hash_obj = hashlib.sha256(content.encode('utf-8'))
    return hash_obj.hexdigest()[:length]


# ============================================================================
# CHUNK IDS
# ============================================================================

def generate_chunk_id(code: str, chunk_type: str, index: Optional[int] = None) -> str:
    """
    Generate deterministic chunk ID from material code and chunk type.

    Args:
        code: Normalized material code (e.g., "RM000001")
        chunk_type: Chunk type value (e.g., "primary_identifier")
        index: Window index for types split into several chunks

    Returns:
        Chunk ID in format "{code}_{chunk_type}" or "{code}_{chunk_type}_{index}"

    Example:
        >>> generate_chunk_id("RM000001", "code_exact_match")
        "RM000001_code_exact_match"
        >>> generate_chunk_id("RM000001", "technical_specs", 1)
        "RM000001_technical_specs_1"
    """
    if index is None:
        return f"{code}_{chunk_type}"
    return f"{code}_{chunk_type}_{index}"


# ============================================================================
# VECTOR IDS
# ============================================================================

def generate_vector_id(chunk_id: str) -> int:
    """
    Map a chunk ID to a stable 63-bit integer for FAISS ID maps.

    Args:
        chunk_id: String chunk ID

    Returns:
        Non-negative int below 2**63

    Note:
        15 hex chars = 60 bits, always within FAISS's signed int64 range.
    """
    return int(_hash_string(chunk_id, length=15), 16)
