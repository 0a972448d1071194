# -*- coding: utf-8 -*-
"""
Raw-material retrieval engine source package.

Top-level package containing the hybrid retrieval components: query
classification, dynamic chunking of material records, vector indexing, and
hybrid search.
"""
