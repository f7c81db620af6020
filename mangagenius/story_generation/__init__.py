"""
Script generation utilities that turn a story request into a panel-by-panel comic script.
"""

from .prompting import (
    DEFAULT_PANEL_COUNT,
    PANEL_COUNT_OPTIONS,
    PRESET_PROMPTS,
    ScriptPrompt,
    build_script_prompt,
)
from .script_service import ComicScript, ComicScriptGenerator, ScriptPanel

__all__ = [
    "ComicScript",
    "ComicScriptGenerator",
    "ScriptPanel",
    "DEFAULT_PANEL_COUNT",
    "PANEL_COUNT_OPTIONS",
    "PRESET_PROMPTS",
    "ScriptPrompt",
    "build_script_prompt",
]
