"""
PDF export for finished MangaGenius comic strips.
"""

from .builder import PAGE_SIZES, ComicStripPDFBuilder

__all__ = ["PAGE_SIZES", "ComicStripPDFBuilder"]
