# -*- coding: utf-8 -*-
"""
Structured material store backends for hybrid search.

The hybrid search service talks to its structured store through two methods:

    find_by_code(code) -> Optional[MaterialDocument]
    search_by_field(pattern, fields=None, limit=None) -> List[MaterialDocument]

Any object providing them can be injected (a database adapter, an HTTP client,
a test fake). This module ships an in-memory implementation backed by a dict
keyed on normalized code, and a thread-safe read-through LRU cache that wraps
any store.

Examples:
    from src.retrieval.material_store import InMemoryMaterialStore, CachedMaterialStore
    from src.utils.io import load_materials

    store = InMemoryMaterialStore(load_materials("data/raw/materials.json"))
    store.find_by_code("rm-000001")          # MaterialDocument(code="RM000001", ...)
    store.search_by_field("hyaluronic")      # matches code / trade / INCI names

    cached = CachedMaterialStore(store, max_size=2048)
    cached.find_by_code("RM000001")          # second call served from cache
"""
# Standard library
import logging
from collections import OrderedDict
from threading import Lock, RLock
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

# Config imports (direct)
from config.retrieval_config import normalize_code

# Dataclass imports (direct)
from src.utils.dataclasses import MaterialDocument

logger = logging.getLogger(__name__)

# Fields searched when the caller does not name any
DEFAULT_SEARCH_FIELDS = ('code', 'trade_name', 'inci_name')

SEARCHABLE_FIELDS = (
    'code', 'trade_name', 'inci_name', 'category', 'function',
    'supplier', 'company_name', 'description',
)


class InMemoryMaterialStore:
    """
    Dict-backed material store.

    Codes are unique: adding a record with an existing code replaces it.
    Reads and writes are serialized with an RLock so the store can be
    shared by concurrent search strategies and an indexing job.
    """

    def __init__(self, materials: Optional[Iterable[MaterialDocument]] = None):
        self._materials: Dict[str, MaterialDocument] = {}
        self._lock = RLock()
        for material in materials or []:
            self.add(material)
        logger.info(f"InMemoryMaterialStore initialized with {len(self._materials)} materials")

    def add(self, material: MaterialDocument) -> None:
        with self._lock:
            if material.code in self._materials:
                logger.debug(f"Replacing material {material.code}")
            self._materials[material.code] = material

    def remove(self, code: str) -> bool:
        with self._lock:
            return self._materials.pop(normalize_code(code), None) is not None

    def all_materials(self) -> List[MaterialDocument]:
        with self._lock:
            return list(self._materials.values())

    def __len__(self) -> int:
        return len(self._materials)

    def find_by_code(self, code: str) -> Optional[MaterialDocument]:
        """
        Look up a material by code.

        Args:
            code: Code in any case, with or without separators.

        Returns:
            MaterialDocument or None when the code is not registered.
        """
        with self._lock:
            return self._materials.get(normalize_code(code))

    def search_by_field(
        self,
        pattern: str,
        fields: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[MaterialDocument]:
        """
        Case-insensitive substring search over record fields.

        Args:
            pattern: Literal text to look for.
            fields: Field names to search (default: code, trade_name, inci_name).
            limit: Maximum number of records to return.

        Returns:
            Matching records in insertion order.

        Raises:
            ValueError: If an unknown field is requested.
        """
        needle = ' '.join((pattern or '').lower().split())
        if not needle:
            return []

        fields = tuple(fields or DEFAULT_SEARCH_FIELDS)
        unknown = [f for f in fields if f not in SEARCHABLE_FIELDS]
        if unknown:
            raise ValueError(f"Unknown search fields: {unknown}")

        matches = []
        with self._lock:
            for material in self._materials.values():
                if any(needle in (getattr(material, f) or '').lower() for f in fields):
                    matches.append(material)
                    if limit is not None and len(matches) >= limit:
                        break
        return matches


class CachedMaterialStore:
    """
    Read-through LRU cache over any material store.

    Both lookups (including misses) are cached. Call invalidate() after a
    material changes, or clear() after bulk loads. Safe for concurrent use.
    """

    def __init__(self, store, max_size: int = 1024):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.store = store
        self.max_size = max_size
        self._cache: "OrderedDict[Tuple, object]" = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def find_by_code(self, code: str) -> Optional[MaterialDocument]:
        key = ('code', normalize_code(code))
        return self._get_or_load(key, lambda: self.store.find_by_code(code))

    def search_by_field(
        self,
        pattern: str,
        fields: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[MaterialDocument]:
        key = ('search', (pattern or '').lower(), tuple(fields or ()), limit)
        result = self._get_or_load(
            key, lambda: self.store.search_by_field(pattern, fields=fields, limit=limit)
        )
        return list(result)

    def invalidate(self, code: str) -> None:
        """Drop a code lookup and every cached search (they may include it)."""
        with self._lock:
            self._cache.pop(('code', normalize_code(code)), None)
            for key in [k for k in self._cache if k[0] == 'search']:
                del self._cache[key]

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict[str, float]:
        with self._lock:
            total = self.hits + self.misses
            return {
                'size': len(self._cache),
                'hits': self.hits,
                'misses': self.misses,
                'hit_rate': self.hits / total if total else 0.0,
            }

    def _get_or_load(self, key: Tuple, loader):
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                self.hits += 1
                return self._cache[key]
            self.misses += 1

        # Load outside the lock; backend errors propagate uncached
        value = loader()

        with self._lock:
            self._cache[key] = value
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)
        return value
