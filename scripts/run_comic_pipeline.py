"""
CLI to run the complete MangaGenius pipeline end-to-end.

Usage:
    python scripts/run_comic_pipeline.py \
        --prompt "A 4-panel comic about a cat who becomes a lawyer." \
        --panels 4 \
        --reference-image example_images/cat.png \
        --output-dir comics/cat_lawyer \
        --pdf
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mangagenius import ComicStripPDFBuilder, MangaGeniusOrchestrator  # noqa: E402
from mangagenius.pdf_generation import PAGE_SIZES  # noqa: E402
from mangagenius.pipeline import Panel, PanelStatus  # noqa: E402
from mangagenius.story_generation import (  # noqa: E402
    DEFAULT_PANEL_COUNT,
    PANEL_COUNT_OPTIONS,
    PRESET_PROMPTS,
)


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the MangaGenius pipeline.
    """

    def __init__(self) -> None:
        self._panel_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "story:scripting":
                panel_count = payload.get("panel_count")
                reference = " with a reference image" if payload.get("has_reference") else ""
                self._write(f"[1/3] Writing a {panel_count}-panel script{reference}...")
            case "story:failed":
                self._write(f"[1/3] Failed to generate story: {payload.get('error')}")
            case "story:ready":
                total = payload.get("total_panels", 0)
                self._write(f"[2/3] Script ready: \"{payload.get('title')}\". Drawing {total} panels...")
                self._panel_bar = tqdm(total=total, desc="Panels", unit="panel")
            case "story:settled":
                completed = payload.get("completed", 0)
                total = payload.get("total_panels", 0)
                self.close()
                self._write(f"[3/3] Drawing finished: {completed}/{total} panels completed.")
            case "panel:edited":
                self._write(f"Panel {payload.get('panel_id')} edited.")
            case "panel:edit_failed":
                self._write(f"Failed to edit panel {payload.get('panel_id')}: {payload.get('error')}")

    def on_panel(self, panel: Panel) -> None:
        if self._panel_bar is None:
            return
        if panel.status is PanelStatus.GENERATING:
            self._panel_bar.set_description(f"Panel {panel.id}: drawing")
        elif panel.status in (PanelStatus.COMPLETED, PanelStatus.FAILED):
            self._panel_bar.set_description(f"Panel {panel.id}: {panel.status.value}")
            self._panel_bar.update(1)

    def close(self) -> None:
        if self._panel_bar is not None:
            self._panel_bar.close()
            self._panel_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an AI comic strip from a story prompt.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--prompt",
        help="Free-text description of the story.",
    )
    source.add_argument(
        "--preset",
        type=int,
        choices=range(1, len(PRESET_PROMPTS) + 1),
        help="Use one of the built-in example prompts (1-%d)." % len(PRESET_PROMPTS),
    )
    parser.add_argument(
        "--panels",
        type=int,
        choices=PANEL_COUNT_OPTIONS,
        default=DEFAULT_PANEL_COUNT,
        help=f"Number of panels (default: {DEFAULT_PANEL_COUNT}).",
    )
    parser.add_argument(
        "--reference-image",
        default=None,
        help="Optional character/style reference image file.",
    )
    parser.add_argument(
        "--output-dir",
        default="comic_output",
        help="Directory receiving panel PNGs and the comic manifest (default: comic_output).",
    )
    parser.add_argument(
        "--regenerate-failed",
        action="store_true",
        help="Retry every failed panel once after the first drawing pass.",
    )
    parser.add_argument(
        "--edit",
        action="append",
        default=[],
        metavar="PANEL_ID=INSTRUCTION",
        help="Edit a finished panel with a follow-up instruction (repeatable).",
    )
    parser.add_argument(
        "--pdf",
        action="store_true",
        help="Also render the comic into comic.pdf inside the output directory.",
    )
    parser.add_argument(
        "--page-size",
        choices=sorted(PAGE_SIZES.keys()),
        default="a4",
        help="PDF page size (default: a4).",
    )
    parser.add_argument(
        "--script-model",
        default=None,
        help="Override the LiteLLM model used to write the script.",
    )
    parser.add_argument(
        "--image-model",
        default=None,
        help="Override the Replicate model used to draw panels.",
    )
    parser.add_argument(
        "--edit-model",
        default=None,
        help="Override the Replicate model used to edit panels.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    return parser.parse_args()


def parse_edit_requests(pairs: list[str]) -> list[tuple[int, str]]:
    edits: list[tuple[int, str]] = []
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid --edit '{pair}', expected PANEL_ID=INSTRUCTION.")
        panel_id, instruction = pair.split("=", 1)
        try:
            edits.append((int(panel_id.strip()), instruction.strip()))
        except ValueError as exc:
            raise ValueError(f"Invalid panel id in --edit '{pair}'.") from exc
    return edits


def write_outputs(orchestrator: MangaGeniusOrchestrator, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    story = orchestrator.story
    if story is None:
        raise RuntimeError("No story available to write.")

    for panel in story.panels:
        if panel.image_data is not None:
            (output_dir / f"panel_{panel.id:02d}.png").write_bytes(panel.image_data)

    manifest_path = output_dir / "comic.yaml"
    manifest_path.write_text(story.to_yaml(), encoding="utf-8")
    return manifest_path


async def run(args: argparse.Namespace) -> int:
    prompt = args.prompt if args.prompt is not None else PRESET_PROMPTS[args.preset - 1]
    edits = parse_edit_requests(args.edit)
    reference_image = Path(args.reference_image) if args.reference_image else None

    tracker = ProgressTracker()
    orchestrator = MangaGeniusOrchestrator(
        script_model=args.script_model,
        image_model=args.image_model,
        edit_model=args.edit_model,
        progress_callback=tracker,
    )
    unsubscribe = orchestrator.store.subscribe(tracker.on_panel)

    try:
        try:
            await orchestrator.submit(
                prompt,
                panel_count=args.panels,
                reference_image=reference_image,
            )
        except Exception as exc:
            tqdm.write(f"Could not create the comic: {exc}")
            return 1
        await orchestrator.wait_until_settled()

        if args.regenerate_failed:
            for panel in orchestrator.panels:
                if panel.status is PanelStatus.FAILED:
                    tqdm.write(f"Retrying panel {panel.id}...")
                    result = await orchestrator.regenerate_panel(panel.id)
                    status = result.status.value if result is not None else "discarded"
                    tqdm.write(f"Panel {panel.id}: {status}")

        for panel_id, instruction in edits:
            panel = orchestrator.store.get(panel_id)
            if panel is None or not orchestrator.revisions.can_edit(panel):
                tqdm.write(f"Skipping edit for panel {panel_id}: no finished image.")
                continue
            try:
                await orchestrator.edit_panel(panel_id, instruction)
            except Exception:
                continue
    finally:
        unsubscribe()
        tracker.close()

    output_dir = Path(args.output_dir)
    manifest_path = write_outputs(orchestrator, output_dir)
    print(f"Saved comic manifest to {manifest_path}")

    if args.pdf:
        story = orchestrator.story
        builder = ComicStripPDFBuilder(page_size=PAGE_SIZES[args.page_size])
        pdf_path = builder.build(story, output_dir / "comic.pdf")
        print(f"Rendered comic PDF to {pdf_path}")

    failed = [panel.id for panel in orchestrator.panels if panel.status is PanelStatus.FAILED]
    return 2 if failed else 0


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
