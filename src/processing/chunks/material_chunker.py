# -*- coding: utf-8 -*-
"""
Field-aware dynamic chunking for raw-material records

Turns one MaterialDocument into several prioritized retrieval views instead of a
single blob of text. Identifier-oriented chunks (primary identifier, bare code)
let exact and near-exact lookups land on a short, code-dominated vector; the
technical, commercial, and combined views serve descriptive queries; a Thai
labelled view serves Thai-language queries when the record carries Thai text.

Chunking is deterministic and side-effect free: the same record and config always
yield the same chunk ids, texts, and metadata. Long technical descriptions are
split into overlapping windows; every other view is truncated to the configured
size.

Examples:
    from src.processing.chunks.material_chunker import chunk_material, chunks_to_documents
    from src.utils.dataclasses import MaterialDocument, ChunkConfig

    material = MaterialDocument(code="RM000099", trade_name="Test Material")
    chunks = chunk_material(material, ChunkConfig())
    [c.chunk_type.value for c in chunks]
    # ['primary_identifier', 'code_exact_match', 'technical_specs', 'combined_context']

    documents = chunks_to_documents(chunks)   # ready for embedding/upsert

References:
    config.indexing_config: CHUNKING_CONFIG, CHUNK_PRIORITIES, FIELD_WEIGHTS, labels
"""
# Standard library
import logging
from typing import Dict, List, Optional

# Third-party
import numpy as np

# Foundation
from src.utils.dataclasses import (
    Chunk,
    ChunkConfig,
    ChunkType,
    EmbeddableDocument,
    MaterialDocument,
)
from src.utils.id_generator import generate_chunk_id

# Config
from config.indexing_config import (
    CHUNK_PRIORITIES,
    CHUNKING_CONFIG,
    FIELD_LABELS,
    FIELD_WEIGHTS,
    THAI_FIELD_LABELS,
)
from config.retrieval_config import THAI_CHAR_PATTERN

logger = logging.getLogger(__name__)

ELLIPSIS = '...'
MIN_INCI_CHARS = 8

TECHNICAL_FIELDS = ('trade_name', 'inci_name', 'category', 'function', 'description')
COMMERCIAL_FIELDS = ('supplier', 'company_name', 'cost_per_unit')


class MaterialChunker:
    """
    Dynamic chunker producing prioritized views of a material record.

    Views (priority):
        primary_identifier (1.0): code + trade name + INCI name
        code_exact_match (1.0): code only, under 200 characters
        technical_specs (0.9): names, category, function, description (windowed)
        commercial_info (0.85): supplier, company, cost (only when present)
        combined_context (0.9): every available field, truncated
        thai_optimized (0.9): Thai-labelled view (only when Thai text is present)
    """

    def __init__(self, config: Optional[ChunkConfig] = None):
        self.config = config or ChunkConfig()

    def chunk(self, document: MaterialDocument) -> List[Chunk]:
        """
        Chunk one material record.

        Args:
            document: Well-formed MaterialDocument (non-empty code).

        Returns:
            Chunks in fixed type order; at least primary, code, and combined.
        """
        fields = _field_values(document)
        code = document.code

        chunks = [
            self._primary_identifier(code, fields),
            self._code_exact_match(code),
        ]
        chunks.extend(self._technical_specs(code, fields))

        commercial = self._commercial_info(code, fields)
        if commercial is not None:
            chunks.append(commercial)

        chunks.append(self._combined_context(code, fields))

        if self.config.enable_thai_optimization and _has_thai(fields):
            chunks.append(self._thai_optimized(code, fields))

        logger.debug(f"Material {code}: {len(chunks)} chunks")
        return chunks

    # ------------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------------

    def _primary_identifier(self, code: str, fields: Dict[str, str]) -> Chunk:
        # Code and trade name are kept whole; only the INCI name is trimmed
        max_size = self.config.max_chunk_size
        names = [f"{FIELD_LABELS['trade_name']}: {fields['trade_name']}"] if fields.get('trade_name') else []
        text = ' | '.join([code, f"Material Code: {code}"] + names)
        if len(text) > max_size:
            text = ' | '.join([code] + names)

        source = ['code'] + (['trade_name'] if names else [])
        inci = fields.get('inci_name')
        if inci:
            prefix = f" | {FIELD_LABELS['inci_name']}: "
            room = max_size - len(text) - len(prefix)
            if room >= len(inci):
                text += prefix + inci
                source.append('inci_name')
            elif room >= MIN_INCI_CHARS:
                text += prefix + _truncate(inci, room, 0)
                source.append('inci_name')

        return self._make_chunk(code, ChunkType.PRIMARY_IDENTIFIER, text, source, fit=False)

    def _code_exact_match(self, code: str) -> Chunk:
        text = code[:CHUNKING_CONFIG['code_chunk_max_chars']]
        return self._make_chunk(code, ChunkType.CODE_EXACT_MATCH, text, ['code'], fit=False)

    def _technical_specs(self, code: str, fields: Dict[str, str]) -> List[Chunk]:
        source = [n for n in TECHNICAL_FIELDS if fields.get(n)]
        if not source:
            return []

        header = f"{code} - "
        body = '. '.join(f"{FIELD_LABELS[n]}: {fields[n]}" for n in source)
        max_size = self.config.max_chunk_size
        # A long code must not shrink windows to a few characters each
        size = max(max_size - len(header), max_size // 2, self.config.chunk_overlap + 1)
        windows = _split_windows(body, size=size, overlap=self.config.chunk_overlap)

        chunks = []
        for index, window in enumerate(windows):
            chunks.append(self._make_chunk(
                code,
                ChunkType.TECHNICAL_SPECS,
                header + window,
                source,
                index=index,
                extra={'window_index': index, 'window_count': len(windows)},
            ))
        return chunks

    def _commercial_info(self, code: str, fields: Dict[str, str]) -> Optional[Chunk]:
        source = [n for n in COMMERCIAL_FIELDS if fields.get(n)]
        if not source:
            return None
        parts = [f"Material Code: {code}"]
        parts.extend(f"{FIELD_LABELS[n]}: {fields[n]}" for n in source)
        return self._make_chunk(code, ChunkType.COMMERCIAL_INFO, ' | '.join(parts), ['code'] + source)

    def _combined_context(self, code: str, fields: Dict[str, str]) -> Chunk:
        source = _ordered_fields(fields, self.config.enable_field_weighting)
        text = ' | '.join(f"{FIELD_LABELS[n]}: {fields[n]}" for n in source)
        return self._make_chunk(code, ChunkType.COMBINED_CONTEXT, text, source)

    def _thai_optimized(self, code: str, fields: Dict[str, str]) -> Chunk:
        source = _ordered_fields(fields, self.config.enable_field_weighting)
        text = ' | '.join(f"{THAI_FIELD_LABELS[n]}: {fields[n]}" for n in source)
        return self._make_chunk(code, ChunkType.THAI_OPTIMIZED, text, source)

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def _make_chunk(
        self,
        code: str,
        chunk_type: ChunkType,
        text: str,
        field_source: List[str],
        index: Optional[int] = None,
        extra: Optional[Dict] = None,
        fit: bool = True,
    ) -> Chunk:
        if fit:
            text = _truncate(text, self.config.max_chunk_size, self.config.size_tolerance)

        metadata = {'code': code, 'chunk_type': chunk_type.value}
        if self.config.enable_field_weighting:
            metadata['search_boost'] = max(FIELD_WEIGHTS.get(n, 0.0) for n in field_source)
        if extra:
            metadata.update(extra)

        return Chunk(
            id=generate_chunk_id(code, chunk_type.value, index),
            text=text,
            chunk_type=chunk_type,
            priority=CHUNK_PRIORITIES[chunk_type.value],
            metadata=metadata,
            field_source=list(field_source),
        )


def _field_values(document: MaterialDocument) -> Dict[str, str]:
    """Non-empty, whitespace-collapsed field texts keyed by field name."""
    raw = {
        'code': document.code,
        'trade_name': document.trade_name,
        'inci_name': document.inci_name,
        'category': document.category,
        'function': document.function,
        'description': document.description or '',
        'supplier': document.supplier,
        'company_name': document.company_name,
        'cost_per_unit': document.cost_text,
    }
    values = {}
    for name, value in raw.items():
        text = ' '.join(str(value or '').split())
        if text:
            values[name] = text
    return values


def _ordered_fields(fields: Dict[str, str], weighted: bool) -> List[str]:
    names = [n for n in FIELD_LABELS if fields.get(n)]
    if weighted:
        # Stable sort keeps declaration order among equal weights
        names.sort(key=lambda n: -FIELD_WEIGHTS.get(n, 0.0))
    return names


def _has_thai(fields: Dict[str, str]) -> bool:
    return any(THAI_CHAR_PATTERN.search(value) for value in fields.values())


def _truncate(text: str, max_size: int, tolerance: int) -> str:
    """Cut text to max_size, marking the cut with an ellipsis."""
    if len(text) <= max_size:
        return text
    if tolerance >= len(ELLIPSIS):
        return text[:max_size].rstrip() + ELLIPSIS
    if max_size <= len(ELLIPSIS):
        return text[:max_size]
    return text[:max_size - len(ELLIPSIS)].rstrip() + ELLIPSIS


def _split_windows(text: str, size: int, overlap: int) -> List[str]:
    """
    Split text into windows of at most `size` characters.

    Adjacent windows share `overlap` characters. A window end is pulled back to
    the last space when one exists in its second half.
    """
    if len(text) <= size:
        return [text]

    windows = []
    start = 0
    while start < len(text):
        end = min(start + size, len(text))
        if end < len(text):
            space = text.rfind(' ', start + size // 2, end)
            if space > start:
                end = space
        windows.append(text[start:end].strip())
        if end >= len(text):
            break
        start = max(end - overlap, start + 1)
    return [w for w in windows if w]


# ============================================================================
# MODULE-LEVEL API
# ============================================================================

def chunk_material(document: MaterialDocument, config: Optional[ChunkConfig] = None) -> List[Chunk]:
    """Chunk one material record with the given (or default) config."""
    return MaterialChunker(config).chunk(document)


def chunks_to_documents(chunks: List[Chunk]) -> List[EmbeddableDocument]:
    """
    Project chunks to embeddable documents (1:1, order-preserving).

    Metadata is enriched with priority, field_source, and character_count.
    """
    return [
        EmbeddableDocument(
            id=chunk.id,
            text=chunk.text,
            metadata={
                **chunk.metadata,
                'priority': chunk.priority,
                'field_source': list(chunk.field_source),
                'character_count': chunk.character_count,
                'source': 'dynamic_chunking',
            },
        )
        for chunk in chunks
    ]


def get_chunk_stats(chunks: List[Chunk]) -> Dict:
    """
    Calculate chunking statistics for monitoring.

    Args:
        chunks: List of Chunk objects (any number of materials)

    Returns:
        Dict with counts per type, size statistics, and priority buckets
    """
    if not chunks:
        return {'total_chunks': 0, 'materials': 0, 'by_type': {}}

    sizes = [c.character_count for c in chunks]
    by_type: Dict[str, int] = {}
    for c in chunks:
        by_type[c.chunk_type.value] = by_type.get(c.chunk_type.value, 0) + 1

    return {
        'total_chunks': len(chunks),
        'materials': len({c.code for c in chunks}),
        'by_type': by_type,
        'characters': {
            'mean': float(np.mean(sizes)),
            'median': float(np.median(sizes)),
            'min': int(min(sizes)),
            'max': int(max(sizes)),
        },
        'priority': {
            'high': sum(1 for c in chunks if c.priority >= 0.95),
            'medium': sum(1 for c in chunks if 0.85 <= c.priority < 0.95),
            'low': sum(1 for c in chunks if c.priority < 0.85),
        },
    }
