# -*- coding: utf-8 -*-
"""
Core data structures for the raw-material hybrid retrieval engine

Single source of truth for all engine data structures. Defines dataclasses for
material records, query classifications, chunks, search results, and the option
objects that configure searching and chunking. Import from this module rather
than individual modules for consistency.

Examples:
# Import core data structures
    from src.utils.dataclasses import MaterialDocument, SearchOptions

    # Build a record from a store row
    material = MaterialDocument.from_dict({
        "rm_code": "rm-000001",
        "trade_name": "Hyaluronic Acid (Low Molecular Weight)",
        "inci_name": "Sodium Hyaluronate",
    })
    material.code  # "RM000001"

    # Options are validated on construction
    options = SearchOptions(top_k=5, similarity_threshold=0.6)

"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any
from enum import Enum
import re

from config.retrieval_config import SEARCH_CONFIG
from config.indexing_config import CHUNKING_CONFIG


# ============================================================================
# ENUMS
# ============================================================================

class QueryType(Enum):
    """Classified intent of a user query."""
    EXACT_CODE = "exact_code"
    NAME_SEARCH = "name_search"
    PROPERTY_SEARCH = "property_search"
    DESCRIPTION_SEARCH = "description_search"
    GENERIC = "generic"


class SearchStrategy(Enum):
    """Strategy recommended by the classifier."""
    EXACT_MATCH = "exact_match"
    FUZZY_MATCH = "fuzzy_match"
    SEMANTIC_SEARCH = "semantic_search"
    HYBRID = "hybrid"


class Language(Enum):
    """Dominant script of a query."""
    ENGLISH = "english"
    THAI = "thai"
    MIXED = "mixed"


class ChunkType(Enum):
    """Retrieval views produced per material record."""
    PRIMARY_IDENTIFIER = "primary_identifier"
    CODE_EXACT_MATCH = "code_exact_match"
    TECHNICAL_SPECS = "technical_specs"
    COMMERCIAL_INFO = "commercial_info"
    COMBINED_CONTEXT = "combined_context"
    THAI_OPTIMIZED = "thai_optimized"


class MatchType(Enum):
    """How a search result was found."""
    EXACT = "exact"
    METADATA = "metadata"
    FUZZY = "fuzzy"
    SEMANTIC = "semantic"


class ResultSource(Enum):
    """Backend that produced a search result."""
    STRUCTURED_STORE = "structured_store"
    VECTOR_INDEX = "vector_index"


class CollectionType(Enum):
    """Material catalogue a search is routed to."""
    IN_STOCK = "in_stock"
    ALL_FDA = "all_fda"
    BOTH = "both"


class SearchMode(Enum):
    """How routed collections are searched and merged."""
    STOCK_ONLY = "stock_only"
    FDA_ONLY = "fda_only"
    UNIFIED = "unified"
    PRIORITIZE_STOCK = "prioritize_stock"


# ============================================================================
# MATERIAL RECORDS
# ============================================================================

_CODE_SEPARATORS = re.compile(r'[-_\s]')

# Alternate field names used by upstream material stores
_FIELD_ALIASES = {
    'rm_code': 'code',
    'material_code': 'code',
    'rm_cost': 'cost_per_unit',
    'cost': 'cost_per_unit',
    'benefits': 'function',
    'details': 'description',
    'company': 'company_name',
}


@dataclass
class MaterialDocument:
    """
    Raw-material record as held by the structured store.

    Read-only to the retrieval engine; `code` is the canonical, unique
    identifier (uppercase, no separators).
    """
    code: str
    trade_name: str = ""
    inci_name: str = ""
    category: str = ""
    function: str = ""
    supplier: str = ""
    cost_per_unit: Optional[float] = None
    unit: str = ""
    company_name: str = ""
    description: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.code, str) or not _CODE_SEPARATORS.sub('', self.code):
            raise ValueError(f"Material record requires a non-empty code, got {self.code!r}")
        self.code = _CODE_SEPARATORS.sub('', self.code).upper()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaterialDocument":
        """
        Build a record from a store row, accepting legacy field names.

        Args:
            data: Mapping with at least a code field (code / rm_code).

        Returns:
            MaterialDocument with normalized code.

        Raises:
            ValueError: If the row has no usable code.
        """
        values: Dict[str, Any] = {}
        known = set(cls.__dataclass_fields__)
        for key, value in data.items():
            name = _FIELD_ALIASES.get(key, key)
            if name in known and name not in values and value is not None:
                values[name] = value

        if 'code' not in values:
            raise ValueError(f"Material record has no code field: {sorted(data)}")

        if 'cost_per_unit' in values:
            values['cost_per_unit'] = _parse_cost(values['cost_per_unit'])

        for name in ('trade_name', 'inci_name', 'category', 'function',
                     'supplier', 'unit', 'company_name'):
            if name in values:
                values[name] = str(values[name]).strip()

        values['code'] = str(values['code'])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict (JSON-ready)."""
        return asdict(self)

    @property
    def cost_text(self) -> str:
        """Cost with unit, empty when no cost is recorded."""
        if self.cost_per_unit is None:
            return ""
        amount = f"{self.cost_per_unit:g}"
        return f"{amount} / {self.unit}" if self.unit else amount


def _parse_cost(value: Any) -> Optional[float]:
    """Coerce a cost value to float; unparseable values become None."""
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(',', '').strip())
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================================
# QUERY CLASSIFICATION
# ============================================================================

@dataclass
class ExtractedEntities:
    """Codes, names, and properties pulled out of a query."""
    codes: List[str] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    properties: List[str] = field(default_factory=list)


@dataclass
class QueryClassification:
    """
    Intent and extracted entities for one query.

    Produced by the query classifier; consumed by the hybrid search
    orchestrator to decide which strategies to run.
    """
    is_raw_materials_query: bool
    query_type: QueryType
    confidence: float
    search_strategy: SearchStrategy
    extracted_entities: ExtractedEntities
    language: Language
    detected_patterns: List[str] = field(default_factory=list)
    expanded_queries: List[str] = field(default_factory=list)
    code_families: List[str] = field(default_factory=list)

    @property
    def has_exact_intent(self) -> bool:
        """True when the query names one or more material codes."""
        return self.query_type == QueryType.EXACT_CODE


# ============================================================================
# CHUNKS
# ============================================================================

@dataclass(frozen=True)
class Chunk:
    """
    Prioritized retrieval view of one material record.

    Deterministic from its source record and never mutated after
    production; re-chunking the same code supersedes earlier chunks.
    """
    id: str
    text: str
    chunk_type: ChunkType
    priority: float
    metadata: Dict[str, Any]
    field_source: List[str] = field(default_factory=list)

    @property
    def character_count(self) -> int:
        return len(self.text)

    @property
    def code(self) -> str:
        return self.metadata.get('code', '')


@dataclass
class EmbeddableDocument:
    """Chunk projection handed to the embedding/vector service."""
    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChunkConfig:
    """
    Chunking parameters.

    Raises:
        ValueError: On a max_chunk_size below the minimum, negative sizes, or
            overlap >= max_chunk_size.
    """
    max_chunk_size: int = CHUNKING_CONFIG['max_chunk_size']
    chunk_overlap: int = CHUNKING_CONFIG['chunk_overlap']
    enable_thai_optimization: bool = CHUNKING_CONFIG['enable_thai_optimization']
    enable_field_weighting: bool = CHUNKING_CONFIG['enable_field_weighting']
    size_tolerance: int = CHUNKING_CONFIG['size_tolerance']

    def __post_init__(self):
        # Room for a "{code} - " window header plus some window text
        minimum = CHUNKING_CONFIG['min_chunk_size']
        if (isinstance(self.max_chunk_size, bool) or not isinstance(self.max_chunk_size, int)
                or self.max_chunk_size < minimum):
            raise ValueError(f"max_chunk_size must be >= {minimum}, got {self.max_chunk_size!r}")
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.max_chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, {self.max_chunk_size}), got {self.chunk_overlap}"
            )
        if self.size_tolerance < 0:
            raise ValueError(f"size_tolerance must be >= 0, got {self.size_tolerance}")


# ============================================================================
# SEARCH
# ============================================================================

@dataclass
class SearchOptions:
    """
    Per-call hybrid search settings.

    Validated eagerly so misconfiguration fails before any backend is hit.
    """
    top_k: int = SEARCH_CONFIG['top_k']
    similarity_threshold: float = SEARCH_CONFIG['similarity_threshold']
    enable_exact_match: bool = SEARCH_CONFIG['enable_exact_match']
    enable_metadata_filter: bool = SEARCH_CONFIG['enable_metadata_filter']
    enable_fuzzy_match: bool = SEARCH_CONFIG['enable_fuzzy_match']
    enable_semantic_search: bool = SEARCH_CONFIG['enable_semantic_search']
    strategy_timeout: float = SEARCH_CONFIG['strategy_timeout']
    semantic_timeout: float = SEARCH_CONFIG['semantic_timeout']
    collection: str = SEARCH_CONFIG['collection']
    metadata_filters: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.top_k, bool) or not isinstance(self.top_k, int) or self.top_k <= 0:
            raise ValueError(f"top_k must be a positive integer, got {self.top_k!r}")
        if not _is_number(self.similarity_threshold) or not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be a number in [0, 1], got {self.similarity_threshold!r}"
            )
        for name in ('strategy_timeout', 'semantic_timeout'):
            value = getattr(self, name)
            if not _is_number(value) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")
        if not self.collection:
            raise ValueError("collection must be a non-empty name")
        if self.metadata_filters is not None and not isinstance(self.metadata_filters, dict):
            raise ValueError(
                f"metadata_filters must be a dict, got {type(self.metadata_filters).__name__}"
            )


@dataclass
class SearchResult:
    """One ranked material returned by hybrid search."""
    document: MaterialDocument
    score: float
    match_type: MatchType
    confidence: float
    matched_fields: List[str] = field(default_factory=list)
    source: ResultSource = ResultSource.STRUCTURED_STORE

    @property
    def code(self) -> str:
        return self.document.code

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict (JSON-ready)."""
        return {
            'code': self.document.code,
            'document': self.document.to_dict(),
            'score': round(self.score, 4),
            'match_type': self.match_type.value,
            'confidence': round(self.confidence, 4),
            'matched_fields': list(self.matched_fields),
            'source': self.source.value,
        }


# ============================================================================
# COLLECTION ROUTING
# ============================================================================

@dataclass
class CollectionRouting:
    """Which catalogues a query goes to, and why."""
    collections: List[CollectionType]
    search_mode: SearchMode
    confidence: float
    reasoning: str


@dataclass
class UnifiedSearchResult:
    """A search result tagged with the catalogue it came from."""
    result: SearchResult
    collection: CollectionType

    @property
    def code(self) -> str:
        return self.result.code

    @property
    def score(self) -> float:
        return self.result.score

    @property
    def in_stock(self) -> bool:
        return self.collection == CollectionType.IN_STOCK

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data['collection'] = self.collection.value
        data['availability'] = 'in_stock' if self.in_stock else 'fda_only'
        return data


@dataclass
class AvailabilityReport:
    """Answer to "is this material in stock?"."""
    query: str
    in_stock: bool
    details: Optional[UnifiedSearchResult] = None
    alternatives: List[UnifiedSearchResult] = field(default_factory=list)


# ============================================================================
# INDEXING
# ============================================================================

@dataclass
class IndexReport:
    """Outcome of (re)indexing one material."""
    code: str
    chunk_ids: List[str] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IndexingStats:
    """Aggregate counters for a batch indexing run."""
    total: int = 0
    indexed: int = 0
    failed: int = 0
    chunks: int = 0
    deleted: int = 0
    duration_seconds: float = 0.0
    errors: Dict[str, str] = field(default_factory=dict)
