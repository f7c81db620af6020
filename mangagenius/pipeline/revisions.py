"""
Out-of-band regenerate and edit operations on individual panels.
"""

from __future__ import annotations

import logging

from mangagenius.common import ImagePayload

from .jobs import PanelJobRunner
from .models import ImageGenerator, Panel, PanelStatus
from .store import PanelStore

logger = logging.getLogger(__name__)


class PanelRevisionController:
    """
    User-triggered revisions scoped to a single panel.

    Regeneration reruns the full image job and records failures on the panel. Edits
    transform the existing image in place; an edit failure is raised to the caller
    and leaves the panel exactly as it was.
    """

    def __init__(
        self,
        *,
        store: PanelStore,
        job_runner: PanelJobRunner,
        image_generator: ImageGenerator,
    ) -> None:
        self._store = store
        self._job_runner = job_runner
        self._image_generator = image_generator
        self._editing: set[tuple[int, int]] = set()

    def is_editing(self, panel_id: int) -> bool:
        return (self._store.epoch, panel_id) in self._editing

    def can_regenerate(self, panel: Panel) -> bool:
        return panel.status in (PanelStatus.COMPLETED, PanelStatus.FAILED)

    def can_edit(self, panel: Panel) -> bool:
        return (
            panel.status is PanelStatus.COMPLETED
            and panel.has_image
            and not self.is_editing(panel.id)
        )

    async def regenerate(
        self,
        panel_id: int,
        *,
        reference_image: ImagePayload | None = None,
    ) -> Panel | None:
        panel = self._require_panel(panel_id)
        return await self._job_runner.run_generation(
            panel.id,
            panel.visual_prompt,
            reference_image,
            epoch=self._store.epoch,
        )

    async def edit(self, panel_id: int, instruction: str) -> Panel | None:
        """
        Apply ``instruction`` to the panel's current image.

        Returns the updated panel, or ``None`` if the story was replaced while the
        edit was in flight.
        """
        if not instruction.strip():
            raise ValueError("Edit instruction must be a non-empty string.")

        panel = self._require_panel(panel_id)
        if panel.image_data is None:
            raise ValueError(f"Panel {panel_id} has no image to edit.")

        epoch = self._store.epoch
        self._editing.add((epoch, panel_id))
        try:
            edited = await self._image_generator.edit_image(panel.image_data, instruction)
            if not edited:
                raise RuntimeError("No edited image data returned")
        except Exception:
            logger.warning("Edit failed for panel %s.", panel_id, exc_info=True)
            raise
        finally:
            self._editing.discard((epoch, panel_id))

        return self._store.update(panel_id, epoch=epoch, image_data=edited)

    def _require_panel(self, panel_id: int) -> Panel:
        panel = self._store.get(panel_id)
        if panel is None:
            raise KeyError(f"Unknown panel id {panel_id}.")
        return panel
