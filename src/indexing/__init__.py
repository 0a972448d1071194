# -*- coding: utf-8 -*-
"""
Indexing package for the material vector index.

Contains vector_store (FAISS-backed embedding/vector service) and
material_indexer (chunk -> embed -> upsert with stale chunk removal).
"""
