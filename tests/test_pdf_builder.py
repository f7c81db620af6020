"""
Unit tests for the comic strip PDF builder.
"""

import struct
import zlib
from pathlib import Path

import pytest

from mangagenius import ComicStripPDFBuilder
from mangagenius.pdf_generation import PAGE_SIZES
from mangagenius.pipeline import ComicStory, Panel, PanelStatus


def _png(width: int = 4, height: int = 4, rgb: bytes = b"\xff\x80\x00") -> bytes:
    def chunk(kind: bytes, data: bytes) -> bytes:
        return (
            struct.pack(">I", len(data))
            + kind
            + data
            + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)
        )

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    rows = b"".join(b"\x00" + rgb * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(rows))
        + chunk(b"IEND", b"")
    )


def _story() -> ComicStory:
    return ComicStory(
        title="The Cat Lawyer <Vol. 1>",
        panels=(
            Panel(
                id=1,
                visual_prompt="cat in court",
                dialogue="Objection!",
                caption="Monday morning",
                image_data=_png(),
                status=PanelStatus.COMPLETED,
            ),
            Panel(id=2, visual_prompt="judge", dialogue="", status=PanelStatus.FAILED, error="boom"),
            Panel(id=3, visual_prompt="jury", status=PanelStatus.GENERATING),
            Panel(id=4, visual_prompt="verdict", status=PanelStatus.PENDING),
            Panel(
                id=5,
                visual_prompt="corrupt",
                image_data=b"not-an-image",
                status=PanelStatus.COMPLETED,
            ),
        ),
    )


class TestComicStripPDFBuilder:
    """Tests for ComicStripPDFBuilder.build."""

    def test_builds_pdf_with_mixed_panel_states(self, tmp_path: Path):
        output = ComicStripPDFBuilder().build(_story(), tmp_path / "out" / "comic.pdf")

        assert output == tmp_path / "out" / "comic.pdf"
        assert output.read_bytes().startswith(b"%PDF")

    @pytest.mark.parametrize("page_size", sorted(PAGE_SIZES))
    def test_page_sizes(self, tmp_path: Path, page_size):
        builder = ComicStripPDFBuilder(page_size=PAGE_SIZES[page_size], columns=1, rows=3)

        output = builder.build(_story(), tmp_path / f"{page_size}.pdf")

        assert output.stat().st_size > 0

    def test_story_without_panels_still_has_cover(self, tmp_path: Path):
        output = ComicStripPDFBuilder().build(ComicStory(title="Empty"), tmp_path / "empty.pdf")

        assert output.read_bytes().startswith(b"%PDF")

    def test_rejects_empty_grid(self):
        with pytest.raises(ValueError):
            ComicStripPDFBuilder(columns=0)
