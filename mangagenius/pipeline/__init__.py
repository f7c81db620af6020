"""
Panel-generation orchestration: story store, image jobs, sequencing, and revisions.
"""

from .jobs import PanelJobRunner
from .models import (
    ComicStory,
    ImageGenerator,
    Panel,
    PanelStatus,
    ScriptGenerator,
)
from .pipeline import MangaGeniusOrchestrator, ProgressCallback, RequestStage
from .revisions import PanelRevisionController
from .sequencer import PanelSequencer
from .store import PanelListener, PanelStore

__all__ = [
    "ComicStory",
    "ImageGenerator",
    "MangaGeniusOrchestrator",
    "Panel",
    "PanelJobRunner",
    "PanelListener",
    "PanelRevisionController",
    "PanelSequencer",
    "PanelStatus",
    "PanelStore",
    "ProgressCallback",
    "RequestStage",
    "ScriptGenerator",
]
