"""
Service layer for producing comic scripts via LiteLLM-compatible models.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from mangagenius.common import ChatResult, CompletionCallable, call_chat_completion

from .prompting import ScriptPrompt, build_script_prompt


@dataclass(frozen=True)
class ScriptPanel:
    """
    One panel of a generated script, before any image work has started.
    """

    id: int
    visual_prompt: str
    dialogue: str
    caption: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "visualPrompt": self.visual_prompt,
            "dialogue": self.dialogue,
            "caption": self.caption,
        }


@dataclass(frozen=True)
class ComicScript:
    """Title plus ordered panels, as written by the script model."""

    title: str
    panels: tuple[ScriptPanel, ...]


class ComicScriptGenerator:
    """
    High-level helper that turns a story request into a structured comic script.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("MANGAGENIUS_SCRIPT_MODEL")
            or os.getenv("LITELLM_SCRIPT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or "gemini/gemini-2.5-flash"
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    async def generate_script(
        self,
        prompt: str,
        panel_count: int,
        *,
        temperature: float = 0.8,
        max_output_tokens: int = 4000,
        **response_kwargs: Any,
    ) -> ComicScript:
        """
        Invoke the configured LLM and parse its answer into a :class:`ComicScript`.
        """
        if not prompt.strip():
            raise ValueError("Story prompt must be a non-empty string.")

        script_prompt: ScriptPrompt = build_script_prompt(prompt, panel_count)

        response_kwargs.setdefault("response_format", {"type": "json_object"})
        result: ChatResult = await self._completion_fn(
            model=self._model,
            messages=[
                {"role": "system", "content": script_prompt.system},
                {"role": "user", "content": script_prompt.user},
            ],
            temperature=temperature,
            max_tokens=max_output_tokens,
            api_key=self._api_key,
            **response_kwargs,
        )

        if not result.text:
            raise RuntimeError("No script generated")

        payload = self._parse_script_json(result.text)
        panels = self._convert_to_panels(payload["panels"])
        self._validate_panels(panels, panel_count)
        return ComicScript(title=payload["title"], panels=tuple(panels))

    def _parse_script_json(self, raw_text: str) -> dict[str, Any]:
        text = _strip_code_fence(raw_text)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError("Failed to parse comic script response as JSON.") from exc

        if not isinstance(parsed, dict):
            raise ValueError("Comic script JSON must be an object.")

        title = str(parsed.get("title") or "").strip()
        if not title:
            raise ValueError("Comic script JSON must contain a non-empty 'title'.")

        panels = parsed.get("panels")
        if not isinstance(panels, list) or not panels:
            raise ValueError("Comic script JSON must contain a non-empty 'panels' list.")

        return {"title": title, "panels": panels}

    def _convert_to_panels(self, panels_data: Iterable[Any]) -> list[ScriptPanel]:
        panels: list[ScriptPanel] = []
        for item in panels_data:
            try:
                panel_id = int(item["id"])
                visual_prompt = str(item["visualPrompt"]).strip()
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"Invalid panel payload: {item}") from exc

            if panel_id < 1:
                raise ValueError(f"Panel ids must be positive integers, received {panel_id}.")
            if not visual_prompt:
                raise ValueError(f"Panel {panel_id} is missing visualPrompt content.")

            panels.append(
                ScriptPanel(
                    id=panel_id,
                    visual_prompt=visual_prompt,
                    dialogue=str(item.get("dialogue") or "").strip(),
                    caption=str(item.get("caption") or "").strip(),
                )
            )
        return panels

    def _validate_panels(self, panels: Sequence[ScriptPanel], panel_count: int) -> None:
        if len(panels) != panel_count:
            raise ValueError(f"Expected {panel_count} panels, received {len(panels)}.")

        ids = [panel.id for panel in panels]
        if len(set(ids)) != len(ids):
            raise ValueError("Panel ids must be unique within a script.")


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    lines = stripped.splitlines()[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()
