# -*- coding: utf-8 -*-
"""
Module: indexing_config.py
Package: config
Purpose: Configuration for material chunking, embedding, and vector indexing

References:
    - src/processing/chunks/material_chunker.py
    - src/indexing/material_indexer.py
    - src/indexing/vector_store.py
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ============================================================================
# CHUNKING
# ============================================================================

CHUNKING_CONFIG = {
    'max_chunk_size': 500,            # characters
    'chunk_overlap': 50,              # characters shared by adjacent spec windows
    'size_tolerance': 100,            # chunk text may exceed max by this much
    'min_chunk_size': 64,             # smallest accepted max_chunk_size
    'enable_thai_optimization': True,
    'enable_field_weighting': True,
    'code_chunk_max_chars': 199,      # code_exact_match chunks stay under 200
}

# Fixed priority tier per chunk type
CHUNK_PRIORITIES = {
    'primary_identifier': 1.0,
    'code_exact_match': 1.0,
    'technical_specs': 0.9,
    'commercial_info': 0.85,
    'combined_context': 0.9,
    'thai_optimized': 0.9,
}

# Relative importance of record fields for combined context ordering
FIELD_WEIGHTS = {
    'code': 1.0,
    'trade_name': 0.95,
    'inci_name': 0.9,
    'function': 0.85,
    'category': 0.8,
    'description': 0.7,
    'supplier': 0.6,
    'company_name': 0.5,
    'cost_per_unit': 0.4,
}

# English labels in record field order
FIELD_LABELS = {
    'code': 'Material Code',
    'trade_name': 'Trade Name',
    'inci_name': 'INCI Name',
    'category': 'Category',
    'function': 'Function',
    'description': 'Description',
    'supplier': 'Supplier',
    'company_name': 'Company',
    'cost_per_unit': 'Cost',
}

THAI_FIELD_LABELS = {
    'code': 'รหัสสาร',
    'trade_name': 'ชื่อการค้า',
    'inci_name': 'ชื่อ INCI',
    'category': 'หมวดหมู่',
    'function': 'ประโยชน์',
    'description': 'รายละเอียด',
    'supplier': 'ซัพพลายเออร์',
    'company_name': 'บริษัท',
    'cost_per_unit': 'ราคา',
}


# ============================================================================
# VECTOR INDEX
# ============================================================================

VECTOR_CONFIG = {
    'collection': os.getenv('VECTOR_COLLECTION', 'raw_materials'),
    'embedding_dim': int(os.getenv('EMBEDDING_DIMENSION', '1024')),
    'index_file_suffix': '.index',
    'records_file_suffix': '_records.json',
    'manifest_file': 'chunk_manifest.json',
}

INDEXING_CONFIG = {
    'num_workers': int(os.getenv('INDEXING_WORKERS', '4')),
    'manifest_save_every': 100,      # batch runs persist the manifest every N materials
}
