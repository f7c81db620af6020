"""
Utility script to exercise the Replicate integration with a single panel.

Usage:
    python scripts/run_panel_example.py \
        --scene "A cat in a tiny suit argues before a courtroom of mice, manga style." \
        --edit "Make the courtroom lit by sunset" \
        --output panel.png

Environment variables:
    REPLICATE_API_TOKEN  - required unless you pass --api-token
    REPLICATE_MODEL      - optional, defaults to google/nano-banana
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mangagenius.ai_generation import ReplicateImageGenerator  # noqa: E402
from mangagenius.common import decode_image_payload  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Draw one comic panel via Replicate, optionally followed by an edit."
    )
    parser.add_argument(
        "--scene",
        required=True,
        help="Visual description of the panel to draw.",
    )
    parser.add_argument(
        "--reference-image",
        default=None,
        help="Optional reference image path.",
    )
    parser.add_argument(
        "--edit",
        default=None,
        help="Optional follow-up edit instruction applied to the drawn panel.",
    )
    parser.add_argument(
        "--output",
        default="panel.png",
        help="Where to save the resulting image (default: panel.png).",
    )
    parser.add_argument(
        "--api-token",
        default=None,
        help="Optional Replicate API token override (otherwise uses environment variable).",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Optional Replicate model identifier override.",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    generator = ReplicateImageGenerator(
        api_token=args.api_token,
        model_identifier=args.model,
    )
    reference = (
        decode_image_payload(Path(args.reference_image)) if args.reference_image else None
    )

    print("Running generation with the following parameters:")
    print(f"  Scene    : {args.scene}")
    print(f"  Reference: {args.reference_image or '(none)'}")
    print(f"  Model    : {generator.model_identifier}")

    image = await generator.generate_image(args.scene, reference_image=reference)
    if args.edit:
        print(f"Applying edit with {generator.edit_model_identifier}: {args.edit}")
        image = await generator.edit_image(image, args.edit)

    output_path = Path(args.output)
    output_path.write_bytes(image)
    print(f"\nSaved {len(image)} bytes to {output_path}")
    return 0


def main(argv: list[str]) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
