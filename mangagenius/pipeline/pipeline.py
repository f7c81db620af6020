"""
Orchestrates the MangaGenius request lifecycle from story prompt to rendered panels.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from enum import Enum
from typing import Any, Callable

from mangagenius.ai_generation import ReplicateImageGenerator
from mangagenius.common import CompletionCallable, ImagePayload, decode_image_payload
from mangagenius.story_generation import (
    DEFAULT_PANEL_COUNT,
    PANEL_COUNT_OPTIONS,
    ComicScriptGenerator,
)

from .jobs import PanelJobRunner
from .models import ComicStory, ImageGenerator, Panel, PanelStatus, ScriptGenerator
from .revisions import PanelRevisionController
from .sequencer import PanelSequencer
from .store import PanelStore

ProgressCallback = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)


class RequestStage(str, Enum):
    IDLE = "idle"
    SCRIPTING = "scripting"
    DRAWING = "drawing"
    SETTLED = "settled"


class MangaGeniusOrchestrator:
    """
    High-level coordinator that chains script writing and panel drawing.

    ``submit`` returns as soon as the script is ready; panel images are drawn by a
    background task while callers observe the :class:`PanelStore`. Individual panels
    can be regenerated or edited at any time without touching their siblings.
    """

    def __init__(
        self,
        *,
        script_generator: ScriptGenerator | None = None,
        image_generator: ImageGenerator | None = None,
        store: PanelStore | None = None,
        script_model: str | None = None,
        script_api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        image_model: str | None = None,
        edit_model: str | None = None,
        replicate_api_token: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._script_generator = script_generator or ComicScriptGenerator(
            api_key=script_api_key,
            model=script_model,
            completion_fn=completion_fn,
        )
        self._image_generator = image_generator or ReplicateImageGenerator(
            api_token=replicate_api_token,
            model_identifier=image_model,
            edit_model_identifier=edit_model,
        )
        self._store = store or PanelStore()
        self._job_runner = PanelJobRunner(store=self._store, image_generator=self._image_generator)
        self._sequencer = PanelSequencer(store=self._store, job_runner=self._job_runner)
        self._revisions = PanelRevisionController(
            store=self._store,
            job_runner=self._job_runner,
            image_generator=self._image_generator,
        )
        self._progress_callback = progress_callback
        self._stage = RequestStage.IDLE
        self._stage_changed = asyncio.Event()
        self._sequencer_task: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()
        self.reference_image: bytes | None = None

    @property
    def store(self) -> PanelStore:
        return self._store

    @property
    def revisions(self) -> PanelRevisionController:
        return self._revisions

    @property
    def stage(self) -> RequestStage:
        return self._stage

    @property
    def panels(self) -> tuple[Panel, ...]:
        return self._store.panels()

    @property
    def story(self) -> ComicStory | None:
        if not self._store.title:
            return None
        return self._store.snapshot()

    async def submit(
        self,
        prompt: str,
        *,
        panel_count: int = DEFAULT_PANEL_COUNT,
        reference_image: ImagePayload | None = None,
    ) -> ComicStory | None:
        """
        Start a new comic, replacing whatever story is currently on screen.

        Returns the freshly seeded story once its script exists, with every panel
        pending and drawing under way in the background. Returns ``None`` if a newer
        submission replaced this one while its script was being written. Script
        failures are raised after the controller has returned to ``idle``.
        """
        if not prompt.strip():
            raise ValueError("Story prompt must be a non-empty string.")
        if panel_count not in PANEL_COUNT_OPTIONS:
            options = ", ".join(str(option) for option in PANEL_COUNT_OPTIONS)
            raise ValueError(f"panel_count must be one of {options}, received {panel_count}.")

        reference_bytes = (
            decode_image_payload(reference_image) if reference_image is not None else None
        )

        self.reference_image = reference_bytes
        scripting_epoch = self._store.clear()
        self._sequencer_task = None
        self._set_stage(RequestStage.SCRIPTING)
        self._notify("story:scripting", panel_count=panel_count, has_reference=reference_bytes is not None)

        try:
            script = await self._script_generator.generate_script(prompt, panel_count)
        except Exception as exc:
            if self._store.is_current(scripting_epoch):
                self._set_stage(RequestStage.IDLE)
            logger.exception("Story generation failed.")
            self._notify("story:failed", error=str(exc))
            raise

        if not self._store.is_current(scripting_epoch):
            logger.info("Discarding script '%s'; a newer story was requested.", script.title)
            return None

        story = ComicStory.from_script(script)
        epoch = self._store.replace(story)
        task = asyncio.create_task(
            self._sequencer.run_all(story.panels, epoch=epoch, reference_image=reference_bytes)
        )
        self._background_tasks.add(task)
        task.add_done_callback(functools.partial(self._on_sequencer_done, epoch))
        self._sequencer_task = task
        self._set_stage(RequestStage.DRAWING)

        self._notify(
            "story:ready",
            title=story.title,
            total_panels=len(story.panels),
        )
        return story

    async def wait_until_settled(self) -> None:
        """
        Wait for the current story's drawing pass, following any newer submission.

        A submission still writing its script is waited for as well. Returns once no
        drawing pass is outstanding; a crashed pass is logged, not raised here.
        """
        while True:
            if self._stage is RequestStage.SCRIPTING:
                await self._stage_changed.wait()
                continue

            task = self._sequencer_task
            if task is None:
                return
            await asyncio.wait({task})
            if task is self._sequencer_task and self._stage is not RequestStage.SCRIPTING:
                return

    async def regenerate_panel(self, panel_id: int) -> Panel | None:
        return await self._revisions.regenerate(panel_id, reference_image=self.reference_image)

    async def edit_panel(self, panel_id: int, instruction: str) -> Panel | None:
        try:
            panel = await self._revisions.edit(panel_id, instruction)
        except Exception as exc:
            self._notify("panel:edit_failed", panel_id=panel_id, error=str(exc))
            raise
        if panel is not None:
            self._notify("panel:edited", panel_id=panel_id)
        return panel

    def _on_sequencer_done(self, epoch: int, task: asyncio.Task[None]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Panel sequencing crashed.", exc_info=exc)

        if not self._store.is_current(epoch):
            return

        panels = self._store.panels()
        self._set_stage(RequestStage.SETTLED)
        self._notify(
            "story:settled",
            completed=sum(1 for panel in panels if panel.status is PanelStatus.COMPLETED),
            failed=sum(1 for panel in panels if panel.status is PanelStatus.FAILED),
            total_panels=len(panels),
        )

    def _set_stage(self, stage: RequestStage) -> None:
        self._stage = stage
        # Wake waiters on the old event, later waiters get a fresh one.
        self._stage_changed.set()
        self._stage_changed = asyncio.Event()

    def _notify(self, stage: str, **payload: Any) -> None:
        if self._progress_callback is None:
            return
        try:
            self._progress_callback(stage, payload)
        except Exception:
            logger.exception("Progress callback failed for '%s'.", stage)
