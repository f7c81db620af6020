"""
Epoch-guarded store holding the panels of the story currently on screen.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable

from .models import ComicStory, Panel

PanelListener = Callable[[Panel], None]

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = frozenset({"status", "image_data", "error"})


class PanelStore:
    """
    Keyed collection of the current story's panels.

    Every story gets a fresh epoch token. Writers must present the epoch they were
    started under; writes carrying a superseded epoch are discarded so that late
    results from an abandoned story never land in its replacement.
    """

    def __init__(self) -> None:
        self._epoch = 0
        self._title = ""
        self._panels: dict[int, Panel] = {}
        self._listeners: list[PanelListener] = []

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def title(self) -> str:
        return self._title

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def replace(self, story: ComicStory) -> int:
        """Swap in a new story wholesale and return its epoch token."""
        self._epoch += 1
        self._title = story.title
        self._panels = {panel.id: panel for panel in story.panels}
        logger.debug("Store epoch %s seeded with %d panels.", self._epoch, len(self._panels))
        return self._epoch

    def clear(self) -> int:
        self._epoch += 1
        self._title = ""
        self._panels = {}
        return self._epoch

    def panels(self) -> tuple[Panel, ...]:
        return tuple(self._panels.values())

    def get(self, panel_id: int) -> Panel | None:
        return self._panels.get(panel_id)

    def snapshot(self) -> ComicStory:
        return ComicStory(title=self._title, panels=self.panels())

    def update(self, panel_id: int, *, epoch: int, **changes: Any) -> Panel | None:
        """
        Replace one panel with a copy carrying ``changes``.

        Returns the committed panel, or ``None`` when the write was discarded because
        the epoch is stale or the id is unknown.
        """
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update panel fields: {', '.join(sorted(unknown))}.")

        if not self.is_current(epoch):
            logger.debug("Discarding stale write for panel %s (epoch %s).", panel_id, epoch)
            return None

        current = self._panels.get(panel_id)
        if current is None:
            return None

        updated = dataclasses.replace(current, **changes)
        self._panels[panel_id] = updated
        for listener in list(self._listeners):
            try:
                listener(updated)
            except Exception:
                logger.exception("Panel listener failed for panel %s.", panel_id)
        return updated

    def subscribe(self, listener: PanelListener) -> Callable[[], None]:
        """Register ``listener`` for committed panel updates; returns an unsubscribe hook."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
