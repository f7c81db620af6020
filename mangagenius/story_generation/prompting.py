"""
Prompt construction utilities for the MangaGenius comic script workflow.
"""

from __future__ import annotations

from dataclasses import dataclass

PANEL_COUNT_OPTIONS: tuple[int, ...] = (4, 6, 8, 10, 12, 16)

DEFAULT_PANEL_COUNT = 4

PRESET_PROMPTS: tuple[str, ...] = (
    "A 10-panel comic about Doraemon using a magic mouse gadget to save Nobita from homework.",
    "A 4-panel comic about a cat who becomes a lawyer.",
    "A cyberpunk detective story in a rainy neon city.",
    "A silent comic about a robot discovering a flower.",
)

SCRIPT_JSON_SCHEMA = """{
  "title": "string, the comic's title",
  "panels": [
    {
      "id": 1,
      "visualPrompt": "string, detailed visual description for image generation. Include style (e.g. Anime, Manga, Doraemon style), colors, setting, and action.",
      "dialogue": "string, character speech bubbles ('' if silent)",
      "caption": "string, narrator box text ('' if none)"
    }
  ]
}"""


@dataclass(frozen=True)
class ScriptPrompt:
    """
    Container for the system and user prompts passed to the script model.
    """

    system: str
    user: str


def build_script_prompt(user_prompt: str, panel_count: int) -> ScriptPrompt:
    """
    Build the prompt pair used to solicit an N-panel comic script from the LLM.
    """
    system_prompt = f"""You are a professional comic book writer.
You turn short story requests into panel-by-panel comic scripts that an AI image generator can draw.

Writing directives:
- Focus on visual descriptions that are vivid and suitable for an AI image generator.
- Every visual description must stand alone: restate characters, setting, art style, and colors in each panel.
- Include dialogue and captions for each panel; use an empty string when a panel has none.
- Keep the story coherent from the first panel to the last, with a clear ending.

Output format:
Respond with a single valid JSON object matching this schema:
{SCRIPT_JSON_SCHEMA}

Number panels sequentially starting at 1. Do not include commentary outside the JSON."""

    user = f"""Create a script for a {panel_count}-panel comic based on this request: "{user_prompt.strip()}".

The script must contain exactly {panel_count} panels."""

    return ScriptPrompt(system=system_prompt, user=user)
