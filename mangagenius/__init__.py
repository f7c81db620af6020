"""
MangaGenius package exposing comic script generation, panel orchestration, and PDF export.
"""

from .pdf_generation import ComicStripPDFBuilder
from .pipeline import (
    ComicStory,
    MangaGeniusOrchestrator,
    Panel,
    PanelStatus,
    PanelStore,
    RequestStage,
)

__all__ = [
    "ComicStory",
    "ComicStripPDFBuilder",
    "MangaGeniusOrchestrator",
    "Panel",
    "PanelStatus",
    "PanelStore",
    "RequestStage",
]
