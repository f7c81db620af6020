"""
AI image generation package for MangaGenius.
"""

from .replicate_service import DEFAULT_MODEL, ReplicateImageGenerator

__all__ = ["DEFAULT_MODEL", "ReplicateImageGenerator"]
