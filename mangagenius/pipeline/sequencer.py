"""
Sequential image generation across the panels of one story.
"""

from __future__ import annotations

import logging
from typing import Sequence

from mangagenius.common import ImagePayload

from .jobs import PanelJobRunner
from .models import Panel, PanelStatus
from .store import PanelStore

logger = logging.getLogger(__name__)


class PanelSequencer:
    """Renders panels strictly one at a time, in story order."""

    def __init__(self, *, store: PanelStore, job_runner: PanelJobRunner) -> None:
        self._store = store
        self._job_runner = job_runner

    async def run_all(
        self,
        panels: Sequence[Panel],
        *,
        epoch: int,
        reference_image: ImagePayload | None = None,
    ) -> None:
        total = len(panels)
        completed = 0
        for index, panel in enumerate(panels, start=1):
            if not self._store.is_current(epoch):
                logger.info(
                    "Story epoch %s superseded; stopping after %d/%d panels.",
                    epoch,
                    index - 1,
                    total,
                )
                return

            logger.debug("Generating panel %s (%d/%d).", panel.id, index, total)
            result = await self._job_runner.run_generation(
                panel.id,
                panel.visual_prompt,
                reference_image,
                epoch=epoch,
            )
            if result is not None and result.status is PanelStatus.COMPLETED:
                completed += 1

        logger.info("Sequencer finished: %d/%d panels completed.", completed, total)
