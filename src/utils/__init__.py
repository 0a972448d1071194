# -*- coding: utf-8 -*-
"""
Utilities package for common functionality across the retrieval engine.

Contains ID generators, logging setup, I/O helpers, dataclasses, settings, and
the BGE-M3 embedder used throughout the codebase.
"""
