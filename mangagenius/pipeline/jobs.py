"""
Single-panel image generation job.
"""

from __future__ import annotations

import logging

from mangagenius.common import ImagePayload, decode_image_payload

from .models import ImageGenerator, Panel, PanelStatus
from .store import PanelStore

logger = logging.getLogger(__name__)


class PanelJobRunner:
    """
    Drives one panel through ``generating`` to ``completed`` or ``failed``.

    Used both by the initial sequencing pass and by user-triggered regeneration.
    """

    def __init__(self, *, store: PanelStore, image_generator: ImageGenerator) -> None:
        self._store = store
        self._image_generator = image_generator

    async def run_generation(
        self,
        panel_id: int,
        visual_prompt: str,
        reference_image: ImagePayload | None = None,
        *,
        epoch: int,
    ) -> Panel | None:
        """
        Generate the image for ``panel_id`` and record the outcome in the store.

        Failures are recorded on the panel rather than raised; the previous image, if
        any, stays in place. Returns the final panel state, or ``None`` when the story
        was superseded while the job ran.
        """
        self._store.update(
            panel_id,
            epoch=epoch,
            status=PanelStatus.GENERATING,
            error=None,
        )

        try:
            reference_bytes = (
                decode_image_payload(reference_image) if reference_image is not None else None
            )
            image_data = await self._image_generator.generate_image(
                visual_prompt,
                reference_image=reference_bytes,
            )
            if not image_data:
                raise RuntimeError("No image data returned in response")
        except Exception as exc:
            logger.warning("Image generation failed for panel %s: %s", panel_id, exc)
            return self._store.update(
                panel_id,
                epoch=epoch,
                status=PanelStatus.FAILED,
                error=str(exc) or exc.__class__.__name__,
            )

        return self._store.update(
            panel_id,
            epoch=epoch,
            status=PanelStatus.COMPLETED,
            image_data=image_data,
            error=None,
        )
