"""
Pytest configuration and fixtures for MangaGenius tests.

This module provides:
- Network blocking fixture so no test reaches Gemini or Replicate
- In-memory script and image generators with controllable gates and failures
"""

from __future__ import annotations

import asyncio
import json
import socket
from unittest.mock import patch

import pytest

from mangagenius.story_generation import ComicScript, ScriptPanel


class NetworkBlockedError(Exception):
    """Raised when a test attempts to make a network connection."""


def _block_socket_connect(*args, **kwargs):
    raise NetworkBlockedError(
        "Network access is blocked in unit tests. Use the fake generators or mocks instead."
    )


@pytest.fixture(autouse=True)
def block_network():
    """Automatically block all outbound connections in tests."""
    with patch.object(socket.socket, "connect", _block_socket_connect):
        with patch.object(socket, "create_connection", _block_socket_connect):
            yield


def make_script(prompt: str, panel_count: int) -> ComicScript:
    return ComicScript(
        title=f"Title for {prompt}",
        panels=tuple(
            ScriptPanel(
                id=index,
                visual_prompt=f"{prompt} scene {index}",
                dialogue=f"Line {index}",
                caption=f"Caption {index}" if index % 2 else "",
            )
            for index in range(1, panel_count + 1)
        ),
    )


def script_json(panel_count: int, *, title: str = "The Cat Lawyer", ids: list[int] | None = None) -> str:
    panel_ids = ids if ids is not None else list(range(1, panel_count + 1))
    return json.dumps(
        {
            "title": title,
            "panels": [
                {
                    "id": panel_id,
                    "visualPrompt": f"Manga style cat in a courtroom, beat {panel_id}",
                    "dialogue": f"Objection #{panel_id}!",
                    "caption": "" if panel_id % 2 else "Meanwhile...",
                }
                for panel_id in panel_ids
            ],
        }
    )


async def drain(turns: int = 20) -> None:
    """Let pending tasks advance a few event-loop turns."""
    for _ in range(turns):
        await asyncio.sleep(0)


async def wait_for(predicate, turns: int = 200) -> None:
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("Condition was not reached in time.")


class FakeScriptGenerator:
    """Writes deterministic scripts; prompts in ``failures`` raise, prompts in ``gates`` wait."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}

    async def generate_script(self, prompt: str, panel_count: int) -> ComicScript:
        self.calls.append((prompt, panel_count))
        gate = self.gates.get(prompt)
        if gate is not None:
            await gate.wait()
        if prompt in self.failures:
            raise self.failures[prompt]
        return make_script(prompt, panel_count)


class FakeImageGenerator:
    """
    Returns ``image:<visual prompt>`` bytes and records concurrency.

    Visual prompts listed in ``failures`` raise, prompts in ``gates`` wait for the event.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.references: list[bytes | None] = []
        self.edit_calls: list[tuple[bytes, str]] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.edit_gate: asyncio.Event | None = None
        self.edit_failure: Exception | None = None
        self.active = 0
        self.max_active = 0

    async def generate_image(self, visual_prompt: str, reference_image: bytes | None = None) -> bytes:
        self.calls.append(visual_prompt)
        self.references.append(reference_image)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            gate = self.gates.get(visual_prompt)
            if gate is not None:
                await gate.wait()
            if visual_prompt in self.failures:
                raise self.failures[visual_prompt]
            return f"image:{visual_prompt}".encode()
        finally:
            self.active -= 1

    async def edit_image(self, source_image: bytes, instruction: str) -> bytes:
        self.edit_calls.append((source_image, instruction))
        if self.edit_gate is not None:
            await self.edit_gate.wait()
        if self.edit_failure is not None:
            raise self.edit_failure
        return source_image + f"|{instruction}".encode()


@pytest.fixture
def script_generator() -> FakeScriptGenerator:
    return FakeScriptGenerator()


@pytest.fixture
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def progress_events() -> list[tuple[str, dict]]:
    return []


@pytest.fixture
def orchestrator(script_generator, image_generator, progress_events):
    from mangagenius.pipeline import MangaGeniusOrchestrator

    return MangaGeniusOrchestrator(
        script_generator=script_generator,
        image_generator=image_generator,
        progress_callback=lambda stage, payload: progress_events.append((stage, payload)),
    )
