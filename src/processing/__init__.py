# -*- coding: utf-8 -*-
"""
Processing package for turning material records into retrieval chunks.

Contains the chunks subpackage (field-aware dynamic chunking).
"""
