# -*- coding: utf-8 -*-
"""
Chunking subpackage for material record segmentation.

Contains material_chunker (prioritized identifier, technical, commercial,
combined, and Thai views per record).
"""
