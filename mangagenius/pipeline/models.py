"""
Data model for comic stories, their panels, and the collaborators that feed them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import yaml

from mangagenius.story_generation import ComicScript


class PanelStatus(str, Enum):
    """Lifecycle of a single panel's image."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Panel:
    """
    A single comic panel and its rendered image state.

    Instances are immutable; the store swaps whole objects on every update.
    """

    id: int
    visual_prompt: str
    dialogue: str = ""
    caption: str = ""
    image_data: bytes | None = None
    status: PanelStatus = PanelStatus.PENDING
    error: str | None = None

    @property
    def has_image(self) -> bool:
        return self.image_data is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "visual_prompt": self.visual_prompt,
            "dialogue": self.dialogue,
            "caption": self.caption,
            "status": self.status.value,
            "error": self.error,
        }


@dataclass(frozen=True)
class ComicStory:
    """Titled, ordered sequence of panels."""

    title: str
    panels: tuple[Panel, ...] = field(default_factory=tuple)

    @classmethod
    def from_script(cls, script: ComicScript) -> "ComicStory":
        """Create the story with every panel waiting for its image."""
        return cls(
            title=script.title,
            panels=tuple(
                Panel(
                    id=item.id,
                    visual_prompt=item.visual_prompt,
                    dialogue=item.dialogue,
                    caption=item.caption,
                )
                for item in script.panels
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "panels": [panel.to_dict() for panel in self.panels],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


class ScriptGenerator(Protocol):
    async def generate_script(self, prompt: str, panel_count: int) -> ComicScript:
        ...


class ImageGenerator(Protocol):
    async def generate_image(
        self,
        visual_prompt: str,
        reference_image: bytes | None = None,
    ) -> bytes:
        ...

    async def edit_image(self, source_image: bytes, instruction: str) -> bytes:
        ...