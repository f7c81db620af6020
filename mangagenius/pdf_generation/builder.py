"""
High-level utilities for rendering MangaGenius comic strips into printable PDFs.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Frame, Paragraph

from mangagenius.pipeline.models import ComicStory, Panel, PanelStatus


@dataclass(frozen=True)
class PageLayoutConfig:
    page_background: colors.Color
    cover_background: colors.Color
    panel_border: colors.Color
    caption_background: colors.Color
    text_color: colors.Color
    muted_color: colors.Color
    error_color: colors.Color


DEFAULT_LAYOUT = PageLayoutConfig(
    page_background=colors.HexColor("#F8FAFC"),
    cover_background=colors.HexColor("#4F46E5"),
    panel_border=colors.HexColor("#1E293B"),
    caption_background=colors.HexColor("#FEF9C3"),
    text_color=colors.HexColor("#1E293B"),
    muted_color=colors.HexColor("#94A3B8"),
    error_color=colors.HexColor("#EF4444"),
)


PAGE_SIZES = {
    "a4": A4,
    "letter": LETTER,
    "square": (8 * inch, 8 * inch),
}


class ComicStripPDFBuilder:
    """
    Render a comic story into a printable PDF.

    The builder creates:
      * A cover page carrying the story title.
      * Grid pages (``columns`` x ``rows`` panels each) where every cell shows the
        panel image with its caption box on top and its dialogue bubble underneath.
        Panels without an image get a placeholder matching their status.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = PAGE_SIZES["a4"],
        margin_mm: float = 14.0,
        columns: int = 2,
        rows: int = 2,
        layout: PageLayoutConfig = DEFAULT_LAYOUT,
    ) -> None:
        if columns < 1 or rows < 1:
            raise ValueError("columns and rows must both be at least 1.")

        self.page_size = page_size
        self.margin = margin_mm * mm
        self.gutter = 6 * mm
        self.columns = columns
        self.rows = rows
        self.layout = layout

        self.body_font, self.body_bold_font = self._configure_comic_fonts()

        self.title_style = ParagraphStyle(
            name="ComicTitle",
            fontName="Helvetica-Bold",
            fontSize=30,
            leading=36,
            alignment=TA_CENTER,
            textColor=colors.white,
            spaceAfter=12,
        )
        self.subtitle_style = ParagraphStyle(
            name="ComicSubtitle",
            fontName="Helvetica",
            fontSize=14,
            leading=18,
            alignment=TA_CENTER,
            textColor=colors.white,
        )
        self.caption_style = ParagraphStyle(
            name="PanelCaption",
            fontName=self.body_bold_font,
            fontSize=8,
            leading=10,
            textColor=self.layout.text_color,
        )
        self.dialogue_style = ParagraphStyle(
            name="PanelDialogue",
            fontName=self.body_font,
            fontSize=9,
            leading=11,
            alignment=TA_CENTER,
            textColor=self.layout.text_color,
        )
        self.placeholder_style = ParagraphStyle(
            name="PanelPlaceholder",
            fontName="Helvetica",
            fontSize=10,
            leading=12,
            alignment=TA_CENTER,
            textColor=self.layout.muted_color,
        )
        self.footer_style = ParagraphStyle(
            name="Footer",
            fontName="Helvetica-Oblique",
            fontSize=9,
            leading=11,
            alignment=TA_CENTER,
            textColor=self.layout.muted_color,
        )

    def build(self, story: ComicStory, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        width, height = self.page_size

        self._draw_cover_page(pdf, story, width, height)

        per_page = self.columns * self.rows
        panels = list(story.panels)
        for page_index, start in enumerate(range(0, len(panels), per_page), start=1):
            self._draw_panel_page(pdf, panels[start:start + per_page], width, height)
            self._draw_footer(pdf, f"{story.title} \u2022 Page {page_index}", width)
            pdf.showPage()

        pdf.save()
        return output_file

    # ------------------------------------------------------------------ cover rendering

    def _draw_cover_page(
        self,
        pdf: canvas.Canvas,
        story: ComicStory,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.cover_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        frame = Frame(
            self.margin,
            self.margin,
            width - 2 * self.margin,
            height * 0.6,
            showBoundary=0,
        )
        frame.addFromList(
            [
                Paragraph(_escape(story.title), self.title_style),
                Paragraph(f"A {len(story.panels)}-panel comic", self.subtitle_style),
            ],
            pdf,
        )
        pdf.showPage()

    # ------------------------------------------------------------------ panel pages

    def _draw_panel_page(
        self,
        pdf: canvas.Canvas,
        panels: Sequence[Panel],
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.page_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        usable_width = width - 2 * self.margin - (self.columns - 1) * self.gutter
        usable_height = height - 2 * self.margin - (self.rows - 1) * self.gutter
        cell_width = usable_width / self.columns
        cell_height = usable_height / self.rows

        for index, panel in enumerate(panels):
            column = index % self.columns
            row = index // self.columns
            x = self.margin + column * (cell_width + self.gutter)
            y = height - self.margin - (row + 1) * cell_height - row * self.gutter
            self._draw_panel(pdf, panel, x, y, cell_width, cell_height)

    def _draw_panel(
        self,
        pdf: canvas.Canvas,
        panel: Panel,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        dialogue_height = height * 0.22
        image_height = height - dialogue_height
        image_y = y + dialogue_height

        pdf.saveState()
        pdf.setFillColor(colors.white)
        pdf.setStrokeColor(self.layout.panel_border)
        pdf.setLineWidth(2)
        pdf.roundRect(x, y, width, height, 6, stroke=1, fill=1)
        pdf.line(x, image_y, x + width, image_y)
        pdf.restoreState()

        image_reader = self._image_reader(panel)
        if image_reader is not None:
            img_width, img_height = image_reader.getSize()
            scale = min((width - 4) / img_width, (image_height - 4) / img_height)
            draw_width = img_width * scale
            draw_height = img_height * scale
            pdf.drawImage(
                image_reader,
                x + (width - draw_width) / 2,
                image_y + (image_height - draw_height) / 2,
                draw_width,
                draw_height,
                preserveAspectRatio=True,
                mask="auto",
            )
        else:
            self._draw_placeholder(pdf, panel, x, image_y, width, image_height)

        if panel.caption:
            self._draw_caption(pdf, panel.caption, x, image_y, width, image_height)

        dialogue = _escape(panel.dialogue) if panel.dialogue else "<i>No dialogue</i>"
        frame = Frame(x + 6, y + 4, width - 12, dialogue_height - 8, showBoundary=0)
        frame.addFromList([Paragraph(dialogue, self.dialogue_style)], pdf)

    def _draw_caption(
        self,
        pdf: canvas.Canvas,
        caption: str,
        x: float,
        image_y: float,
        width: float,
        image_height: float,
    ) -> None:
        box_height = min(image_height * 0.25, 40)
        box_x = x + 8
        box_y = image_y + image_height - box_height - 8
        box_width = width - 16

        pdf.saveState()
        pdf.setFillColor(self.layout.caption_background)
        pdf.setStrokeColor(self.layout.panel_border)
        pdf.setLineWidth(1)
        pdf.rect(box_x, box_y, box_width, box_height, stroke=1, fill=1)
        pdf.restoreState()

        frame = Frame(box_x + 3, box_y + 1, box_width - 6, box_height - 2, showBoundary=0)
        frame.addFromList([Paragraph(_escape(caption.upper()), self.caption_style)], pdf)

    def _draw_placeholder(
        self,
        pdf: canvas.Canvas,
        panel: Panel,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        if panel.status is PanelStatus.FAILED:
            style = ParagraphStyle("PanelFailed", parent=self.placeholder_style, textColor=self.layout.error_color)
            text = "Failed to generate"
        elif panel.status is PanelStatus.COMPLETED:
            style, text = self.placeholder_style, "Image unavailable"
        elif panel.status is PanelStatus.GENERATING:
            style, text = self.placeholder_style, "Drawing..."
        else:
            style, text = self.placeholder_style, "Queued"

        frame = Frame(x + 6, y + height / 2 - 12, width - 12, 24, showBoundary=0)
        frame.addFromList([Paragraph(f"Panel {panel.id}: {text}", style)], pdf)

    # ------------------------------------------------------------------ helpers

    def _draw_footer(self, pdf: canvas.Canvas, text: str, width: float) -> None:
        footer_frame = Frame(
            self.margin,
            6,
            width - 2 * self.margin,
            20,
            showBoundary=0,
        )
        footer_frame.addFromList([Paragraph(_escape(text), self.footer_style)], pdf)

    @staticmethod
    def _image_reader(panel: Panel) -> Optional[ImageReader]:
        if not panel.image_data:
            return None
        try:
            return ImageReader(BytesIO(panel.image_data))
        except Exception:
            return None

    def _configure_comic_fonts(self) -> tuple[str, str]:
        playful_options = [
            (
                "ComicSansMS",
                "ComicSansMS-Bold",
                ["Comic Sans MS.ttf", "ComicSansMS.ttf", "comic.ttf"],
                ["Comic Sans MS Bold.ttf", "ComicSansMS-Bold.ttf", "comicbd.ttf"],
            ),
            (
                "ChalkboardSE-Light",
                "ChalkboardSE-Bold",
                ["ChalkboardSE-Light.ttf", "ChalkboardSE.ttc"],
                ["ChalkboardSE-Bold.ttf"],
            ),
        ]

        search_roots = [
            Path("/Library/Fonts"),
            Path("/System/Library/Fonts"),
            Path.home() / "Library" / "Fonts",
            Path("C:/Windows/Fonts"),
            Path("/usr/share/fonts"),
            Path("/usr/local/share/fonts"),
        ]

        for regular_name, bold_name, regular_candidates, bold_candidates in playful_options:
            regular_ready = self._register_font_if_available(regular_name, regular_candidates, search_roots)
            bold_ready = self._register_font_if_available(bold_name, bold_candidates, search_roots)
            if regular_ready and bold_ready:
                return regular_name, bold_name

        return "Helvetica", "Helvetica-Bold"

    @staticmethod
    def _register_font_if_available(
        font_name: str,
        candidate_filenames: Sequence[str],
        search_roots: Sequence[Path],
    ) -> bool:
        if font_name in pdfmetrics.getRegisteredFontNames():
            return True

        for root in search_roots:
            for candidate in candidate_filenames:
                font_path = root / candidate
                if font_path.exists():
                    try:
                        pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
                        return True
                    except Exception:
                        continue
        return False


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\n", "<br/>")
