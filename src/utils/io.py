# -*- coding: utf-8 -*-
"""
I/O utilities for catalogue and index artifacts

Simple helpers for JSON and JSONL operations with consistent encoding and logging.
Provides convenience functions for loading and saving JSON files, streaming JSONL
files, and loading material catalogues into MaterialDocument records.

Examples:
# JSON operations
    from src.utils.io import load_json, save_json, load_materials
    manifest = load_json("data/processed/faiss/chunk_manifest.json")
    save_json(manifest, "data/processed/faiss/chunk_manifest.json")

    # Catalogue loading (JSON array, {"materials": [...]}, or JSONL)
    materials = load_materials("data/raw/materials.json")

"""
import json
import logging
from enum import Enum
from pathlib import Path
from typing import List, Dict, Any, Iterator, Union

from src.utils.dataclasses import MaterialDocument

logger = logging.getLogger(__name__)


# ============================================================================
# JSON (for manifests, record maps, catalogues)
# ============================================================================

def load_json(path: Union[str, Path]) -> Any:
    """
    Load JSON file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON content
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    logger.info(f"Loaded {path} ({_size_str(path)})")
    return data


def save_json(
    data: Any,
    path: Union[str, Path],
    indent: int = 2,
) -> str:
    """
    Save data to JSON file.

    Args:
        data: Data to save (must be JSON-serializable)
        path: Output path
        indent: Indentation level (default 2)

    Returns:
        Path string
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=_serialize)

    logger.info(f"Saved {path} ({_size_str(path)})")
    return str(path)


# ============================================================================
# JSONL (for streaming catalogues)
# ============================================================================

def load_jsonl(path: Union[str, Path]) -> List[Dict]:
    """
    Load JSONL file as list.

    Args:
        path: Path to JSONL file

    Returns:
        List of records
    """
    records = list(stream_jsonl(path))
    logger.info(f"Loaded {len(records)} records from {path}")
    return records


def stream_jsonl(path: Union[str, Path]) -> Iterator[Dict]:
    """
    Stream JSONL file (memory efficient).

    Args:
        path: Path to JSONL file

    Yields:
        Records one at a time
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            if line.strip():
                yield json.loads(line)


# ============================================================================
# MATERIAL CATALOGUES
# ============================================================================

def load_materials(path: Union[str, Path]) -> List[MaterialDocument]:
    """
    Load a material catalogue into MaterialDocument records.

    Accepts a JSON array, a JSON object with a "materials" list, or JSONL.
    Rows without a usable code are skipped with a warning.

    Args:
        path: Path to catalogue file

    Returns:
        List of MaterialDocument in file order
    """
    path = Path(path)
    if path.suffix == '.jsonl':
        rows = load_jsonl(path)
    else:
        data = load_json(path)
        rows = data.get('materials', []) if isinstance(data, dict) else data

    materials = []
    skipped = 0
    for i, row in enumerate(rows):
        try:
            materials.append(MaterialDocument.from_dict(row))
        except (ValueError, TypeError, AttributeError) as e:
            skipped += 1
            logger.warning(f"Skipping catalogue row {i}: {e}")

    logger.info(f"✓ Loaded {len(materials)} materials from {path} ({skipped} skipped)")
    return materials


# ============================================================================
# HELPERS
# ============================================================================

def _serialize(obj: Any) -> Any:
    """Convert non-JSON-serializable objects."""
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, 'tolist'):  # numpy array
        return obj.tolist()
    if hasattr(obj, '__dict__'):
        return obj.__dict__
    return str(obj)


def _size_str(path: Path) -> str:
    """Human-readable file size."""
    size = path.stat().st_size
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
