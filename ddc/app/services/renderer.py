"""
Digital Document Card renderer.

Produces the card PDF in two stages:

1. reportlab draws every card page: the info block, one framed page per
   page of the embedded PDF (when document visualization is requested)
   and one page per signature (when signature visualization is
   requested), each with header, footer and the rotated left margin.
2. pikepdf imports the embedded PDF pages into their frames as form
   XObjects and attaches the original document followed by every
   signature, in order.

All layout is expressed in millimetres from the top-left page corner;
``_Painter`` converts to reportlab's bottom-left point space.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pikepdf
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen.canvas import Canvas

from ddc.app.core.errors import DDCError, InvalidInputError, RenderError
from ddc.app.schemas.document import (
    DocumentInfo,
    SignatureInfo,
    SignatureVisualization,
)
from ddc.app.services import translations as tr

logger = logging.getLogger("ddc.renderer")


# -------------------------------------------------------------------------
# Page geometry (mm)
# -------------------------------------------------------------------------

PAGE_WIDTH = 210
PAGE_HEIGHT = 297
PAGE_TOP_MARGIN = 10
PAGE_BOTTOM_MARGIN = 10
PAGE_LEFT_MARGIN = 30
PAGE_RIGHT_MARGIN = 10
CONTENT_MAX_WIDTH = PAGE_WIDTH - PAGE_LEFT_MARGIN - PAGE_RIGHT_MARGIN
CONTENT_MAX_HEIGHT = PAGE_HEIGHT - PAGE_TOP_MARGIN - PAGE_BOTTOM_MARGIN
HEADER_HEIGHT = 10
FOOTER_HEIGHT = 10
ID_QR_SIZE = HEADER_HEIGHT + 2
LINK_QR_SIZE = 17
LINK_QR_TEXT_MARGIN = 4.5
BUILDER_LOGO_WIDTH = 26
BUILDER_LOGO_HEIGHT = 13
FOOTER_DESCRIPTION_MAX_LENGTH = 90

EMBEDDED_PAGE_MAX_WIDTH = CONTENT_MAX_WIDTH
EMBEDDED_PAGE_MAX_HEIGHT = CONTENT_MAX_HEIGHT - HEADER_HEIGHT - FOOTER_HEIGHT
CONTENT_TOP = PAGE_TOP_MARGIN + HEADER_HEIGHT + 5
CONTENT_BOTTOM = PAGE_HEIGHT - PAGE_BOTTOM_MARGIN - FOOTER_HEIGHT
LEFT_COLUMN_WIDTH = CONTENT_MAX_WIDTH * 2 / 3
RIGHT_COLUMN_WIDTH = CONTENT_MAX_WIDTH / 3
RIGHT_COLUMN_X = PAGE_LEFT_MARGIN + LEFT_COLUMN_WIDTH

SIGNATURE_QR_SIZE = 42
SIGNATURE_QRS_IN_ROW = 4
SIGNATURE_QR_MARGIN = (
    CONTENT_MAX_WIDTH - SIGNATURE_QR_SIZE * SIGNATURE_QRS_IN_ROW
) / (SIGNATURE_QRS_IN_ROW + 2)
SIGNATURE_QR_TOP_MARGIN = 5

CONTENTS_PAGE_COLUMN_WIDTH = 10
ATTACHMENT_INDEX_COLUMN_WIDTH = 11
ATTACHMENT_DESCRIPTION_COLUMN_WIDTH = 75
ATTACHMENT_NAME_COLUMN_WIDTH = (
    CONTENT_MAX_WIDTH
    - ATTACHMENT_INDEX_COLUMN_WIDTH
    - ATTACHMENT_DESCRIPTION_COLUMN_WIDTH
)

GRAY = (211 / 255, 211 / 255, 211 / 255)
WATERMARK_ALPHA = 0.5

# Millimetres per typographic point
PT = 25.4 / 72
CELL_PADDING = 1.0


# -------------------------------------------------------------------------
# Fonts
# -------------------------------------------------------------------------

_FONT_DIRS = (
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/truetype/liberation",
    "/usr/share/fonts/truetype/liberation2",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/dejavu-sans-fonts",
    "/usr/share/fonts/dejavu-sans-mono-fonts",
    "/usr/share/fonts/liberation-sans",
    "/usr/share/fonts/liberation-mono",
    "/usr/share/fonts/TTF",
    "/Library/Fonts",
    "C:/Windows/Fonts",
)

_FONT_CANDIDATES = {
    "regular": ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "arial.ttf"),
    "bold": ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "arialbd.ttf"),
    "italic": (
        "DejaVuSans-Oblique.ttf",
        "LiberationSans-Italic.ttf",
        "ariali.ttf",
    ),
    "mono": ("DejaVuSansMono.ttf", "LiberationMono-Regular.ttf", "cour.ttf"),
}

# Built-in Type 1 fonts. They lack Cyrillic glyphs, which reportlab
# replaces with its notdef glyph.
_FALLBACK_FONTS = {
    "regular": "Helvetica",
    "bold": "Helvetica-Bold",
    "italic": "Helvetica-Oblique",
    "mono": "Courier",
}


def _probe_font(role: str) -> Optional[Path]:
    for directory in _FONT_DIRS:
        for file_name in _FONT_CANDIDATES[role]:
            candidate = Path(directory) / file_name
            if candidate.is_file():
                return candidate
    return None


def register_fonts(
    font_path: Optional[Path] = None,
    bold_font_path: Optional[Path] = None,
) -> Dict[str, str]:
    """
    Register card fonts with reportlab and return role -> font name.

    Explicit paths win over probed system fonts. An explicit path that
    cannot be loaded is a configuration error and propagates.
    """
    explicit = {"regular": font_path, "bold": bold_font_path}
    fonts: Dict[str, str] = {}

    for role in ("regular", "bold", "italic", "mono"):
        path = explicit.get(role) or _probe_font(role)
        if path is None:
            fonts[role] = _FALLBACK_FONTS[role]
            continue

        name = f"DDC-{role.capitalize()}-{Path(path).stem}"
        if name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(name, str(path)))
        fonts[role] = name

    if fonts["regular"] != _FALLBACK_FONTS["regular"]:
        # Keep Cyrillic coverage for styles without a font of their own
        for role in ("bold", "italic", "mono"):
            if fonts[role] == _FALLBACK_FONTS[role]:
                fonts[role] = fonts["regular"]
    else:
        logger.warning("ddc_fonts_without_cyrillic", extra={"fonts": fonts})
    return fonts


# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------


def truncate_description(text: str) -> str:
    """Shorten a description to fit the footer line."""
    limit = FOOTER_DESCRIPTION_MAX_LENGTH - 3
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def signer_display_name(signature: SignatureInfo, language: str = "") -> str:
    """
    Name shown for a signature in the attachment list.

    A certificate visualization takes precedence: its subject name, then
    its subject IIN. Without one the explicit signer name is used.
    """
    visualization = signature.signature_visualization
    if visualization is None:
        signer = signature.signer_name
    else:
        signer = visualization.subject_name
        if not signer and visualization.subject_id:
            signer = tr.translate(language, tr.IIN).format(
                iin=visualization.subject_id
            )

    if not signer:
        raise InvalidInputError("subject ID not provided")
    return signer


def validate_signature(signature: SignatureInfo, language: str = "") -> None:
    signer_display_name(signature, language)
    if not signature.file_name:
        raise InvalidInputError("signature file name not provided")


def _fit(width: float, height: float) -> Tuple[float, float]:
    if width > EMBEDDED_PAGE_MAX_WIDTH:
        height = height * EMBEDDED_PAGE_MAX_WIDTH / width
        width = EMBEDDED_PAGE_MAX_WIDTH
    if height > EMBEDDED_PAGE_MAX_HEIGHT:
        width = width * EMBEDDED_PAGE_MAX_HEIGHT / height
        height = EMBEDDED_PAGE_MAX_HEIGHT
    return width, height


def inspect_pdf(document: bytes) -> Optional[List[Tuple[float, float]]]:
    """
    Return page sizes (mm, as displayed) if ``document`` is a PDF.

    Returns None for anything pikepdf cannot open or for a PDF without
    pages, which makes the document non-visualizable.
    """
    try:
        with pikepdf.open(BytesIO(document)) as pdf:
            sizes = []
            for page in pdf.pages:
                box = page.trimbox
                width = abs(float(box[2]) - float(box[0])) * PT
                height = abs(float(box[3]) - float(box[1])) * PT
                if int(page.obj.get("/Rotate", 0)) % 180:
                    width, height = height, width
                sizes.append((width, height))
    except pikepdf.PdfError:
        return None

    return sizes or None


@dataclass
class _Attachment:
    file_name: str
    description: str
    data: bytes


@dataclass
class _Placement:
    card_page: int
    source_page: int
    rect: Tuple[float, float, float, float]


# -------------------------------------------------------------------------
# Drawing primitives (mm, top-left origin)
# -------------------------------------------------------------------------


class _Painter:
    def __init__(self, canvas: Canvas, fonts: Dict[str, str]) -> None:
        self.canvas = canvas
        self.fonts = fonts
        self.font_name = fonts["regular"]
        self.font_size = 12.0

    def font(self, role: str, size: float) -> None:
        self.font_name = self.fonts[role]
        self.font_size = size
        self.canvas.setFont(self.font_name, size)

    def wrap(self, text: str, width: float) -> List[str]:
        """Wrap ``text`` to ``width`` mm, keeping explicit empty lines."""
        usable = max(width - 2 * CELL_PADDING, 1) * mm
        lines: List[str] = []
        for paragraph in text.split("\n"):
            wrapped = simpleSplit(
                paragraph, self.font_name, self.font_size, usable
            )
            lines.extend(wrapped or [""])
        return lines

    def cell(
        self,
        x: float,
        y: float,
        w: float,
        h: float,
        text: str,
        align: str = "LM",
    ) -> None:
        if not text:
            return
        horizontal, vertical = align[0], align[1]
        size = self.font_size * PT

        if vertical == "T":
            baseline = y + size * 0.9
        elif vertical == "B":
            baseline = y + h - size * 0.25
        else:
            baseline = y + h / 2 + size * 0.3

        y_pt = (PAGE_HEIGHT - baseline) * mm
        if horizontal == "R":
            self.canvas.drawRightString((x + w - CELL_PADDING) * mm, y_pt, text)
        elif horizontal == "C":
            self.canvas.drawCentredString((x + w / 2) * mm, y_pt, text)
        else:
            self.canvas.drawString((x + CELL_PADDING) * mm, y_pt, text)

    def multi_cell(
        self,
        x: float,
        y: float,
        w: float,
        line_height: float,
        text: str,
        align: str = "L",
        border: bool = False,
    ) -> float:
        lines = self.wrap(text, w)
        for index, line in enumerate(lines):
            self.cell(x, y + index * line_height, w, line_height, line, align + "M")
        height = len(lines) * line_height
        if border:
            self.rect(x, y, w, height)
        return y + height

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.canvas.line(
            x1 * mm,
            (PAGE_HEIGHT - y1) * mm,
            x2 * mm,
            (PAGE_HEIGHT - y2) * mm,
        )

    def rect(self, x: float, y: float, w: float, h: float) -> None:
        self.canvas.rect(
            x * mm, (PAGE_HEIGHT - y - h) * mm, w * mm, h * mm, stroke=1, fill=0
        )

    def image(self, data: bytes, x: float, y: float, w: float, h: float) -> None:
        self.canvas.drawImage(
            ImageReader(BytesIO(data)),
            x * mm,
            (PAGE_HEIGHT - y - h) * mm,
            w * mm,
            h * mm,
            mask="auto",
        )


# -------------------------------------------------------------------------
# Card layout
# -------------------------------------------------------------------------


class _CardLayout:
    """Draws the pages of one card onto a reportlab canvas."""

    def __init__(
        self,
        canvas: Canvas,
        fonts: Dict[str, str],
        info: DocumentInfo,
        attachments: Sequence[_Attachment],
        *,
        info_pages: int,
        total_pages: int,
    ) -> None:
        self.paint = _Painter(canvas, fonts)
        self.canvas = canvas
        self.info = info
        self.attachments = attachments
        self.info_pages = info_pages
        self.total_pages = total_pages
        self.page_no = 0
        self.y = CONTENT_TOP

    def t(self, text: str) -> str:
        return tr.translate(self.info.language, text)

    # ------------------------------------------------------------------
    # Page chrome
    # ------------------------------------------------------------------

    def decorate(self, header: str, footer: str, page_number: bool) -> None:
        """Header, footer and left margin of the current page."""
        paint = self.paint
        info = self.info
        c = self.canvas

        c.setStrokeColorRGB(0, 0, 0)
        c.setFillColorRGB(0, 0, 0)

        if header:
            position = "LT" if info.id and info.language == "kk/ru" else "LM"
            paint.font("regular", 11)
            paint.cell(
                PAGE_LEFT_MARGIN,
                PAGE_TOP_MARGIN,
                CONTENT_MAX_WIDTH,
                HEADER_HEIGHT,
                header,
                position,
            )

        header_line_end = PAGE_LEFT_MARGIN + CONTENT_MAX_WIDTH
        if info.id:
            paint.font("regular", 10)
            paint.cell(
                PAGE_LEFT_MARGIN,
                PAGE_TOP_MARGIN,
                CONTENT_MAX_WIDTH - ID_QR_SIZE,
                HEADER_HEIGHT - 1,
                info.id,
                "RB",
            )
            if info.id_qr_code:
                paint.image(
                    info.id_qr_code,
                    PAGE_LEFT_MARGIN + CONTENT_MAX_WIDTH - ID_QR_SIZE,
                    PAGE_TOP_MARGIN,
                    ID_QR_SIZE,
                    ID_QR_SIZE,
                )
            header_line_end -= ID_QR_SIZE

        paint.line(
            PAGE_LEFT_MARGIN,
            PAGE_TOP_MARGIN + HEADER_HEIGHT,
            header_line_end,
            PAGE_TOP_MARGIN + HEADER_HEIGHT,
        )
        paint.line(
            PAGE_LEFT_MARGIN,
            CONTENT_BOTTOM,
            PAGE_LEFT_MARGIN + CONTENT_MAX_WIDTH,
            CONTENT_BOTTOM,
        )

        if footer:
            paint.font("regular", 8)
            paint.cell(
                PAGE_LEFT_MARGIN,
                CONTENT_BOTTOM,
                CONTENT_MAX_WIDTH,
                FOOTER_HEIGHT / 2,
                footer,
                "LB",
            )
            paint.font("bold", 8)
            paint.cell(
                PAGE_LEFT_MARGIN,
                CONTENT_BOTTOM + FOOTER_HEIGHT / 2,
                CONTENT_MAX_WIDTH,
                FOOTER_HEIGHT / 2,
                truncate_description(info.description),
                "LT",
            )

        if page_number:
            paint.font("regular", 11)
            paint.cell(
                PAGE_LEFT_MARGIN,
                CONTENT_BOTTOM,
                CONTENT_MAX_WIDTH,
                FOOTER_HEIGHT,
                self.t(tr.PAGE_OF).format(
                    page=self.page_no, total=self.total_pages
                ),
                "RM",
            )

        self._left_margin()

    def _left_margin(self) -> None:
        info = self.info
        paint = self.paint
        c = self.canvas

        # Rotated 90 degrees counter-clockwise around the bottom-left
        # corner: x runs bottom to top, y grows rightwards from
        # PAGE_HEIGHT at the left page edge.
        c.saveState()
        c.rotate(90)
        base = PAGE_HEIGHT + PAGE_TOP_MARGIN

        if info.link_qr_code:
            far = PAGE_HEIGHT - PAGE_TOP_MARGIN - LINK_QR_SIZE
            paint.image(
                info.link_qr_code,
                PAGE_BOTTOM_MARGIN,
                base,
                LINK_QR_SIZE,
                LINK_QR_SIZE,
            )
            paint.image(info.link_qr_code, far, base, LINK_QR_SIZE, LINK_QR_SIZE)

            paint.font("mono", 6)
            near_x = PAGE_BOTTOM_MARGIN + LINK_QR_SIZE
            far_x = far - CONTENT_MAX_WIDTH
            paint.cell(
                near_x,
                base + LINK_QR_TEXT_MARGIN,
                CONTENT_MAX_WIDTH,
                LINK_QR_SIZE,
                "<-- қол қойылған құжатты тексеріңіз",
                "LT",
            )
            paint.cell(
                near_x,
                base,
                CONTENT_MAX_WIDTH,
                LINK_QR_SIZE - LINK_QR_TEXT_MARGIN,
                "<-- проверить подписанный документ",
                "LB",
            )
            paint.cell(
                far_x,
                base + LINK_QR_TEXT_MARGIN,
                CONTENT_MAX_WIDTH,
                LINK_QR_SIZE,
                "қол қойылған құжатты тексеріңіз -->",
                "RT",
            )
            paint.cell(
                far_x,
                base,
                CONTENT_MAX_WIDTH,
                LINK_QR_SIZE - LINK_QR_TEXT_MARGIN,
                "проверить подписанный документ -->",
                "RB",
            )

        if info.builder_logo:
            paint.image(
                info.builder_logo,
                (PAGE_HEIGHT - BUILDER_LOGO_WIDTH) / 2,
                base,
                BUILDER_LOGO_WIDTH,
                BUILDER_LOGO_HEIGHT,
            )

        if info.sub_builder_logo_string:
            paint.font("mono", 8)
            paint.cell(
                (PAGE_HEIGHT - CONTENT_MAX_WIDTH) / 2,
                base,
                CONTENT_MAX_WIDTH,
                LINK_QR_SIZE,
                info.sub_builder_logo_string,
                "CB",
            )

        c.restoreState()

    def start_page(self) -> None:
        self.page_no += 1
        self.y = CONTENT_TOP

    def finish_page(self, header: str = "", footer: str = "") -> None:
        is_first = self.page_no == 1
        self.decorate(
            header,
            "" if is_first else footer,
            page_number=not is_first,
        )
        self.canvas.showPage()

    # ------------------------------------------------------------------
    # Info block (flowing layout with automatic page breaks)
    # ------------------------------------------------------------------

    def _break_info_page(self) -> None:
        self.finish_page(footer=self.t(tr.CARD_FOOTER))
        self.start_page()

    def _ensure(self, height: float) -> None:
        if self.y + height > CONTENT_BOTTOM and self.y > CONTENT_TOP:
            self._break_info_page()

    def _paragraph(
        self,
        role: str,
        size: float,
        line_height: float,
        text: str,
        align: str = "L",
    ) -> None:
        self.paint.font(role, size)
        for line in self.paint.wrap(text, CONTENT_MAX_WIDTH):
            self._ensure(line_height)
            self.paint.cell(
                PAGE_LEFT_MARGIN,
                self.y,
                CONTENT_MAX_WIDTH,
                line_height,
                line,
                align + "M",
            )
            self.y += line_height

    def _row(
        self,
        role: str,
        size: float,
        line_height: float,
        columns: Sequence[Tuple[float, float, str, str]],
    ) -> None:
        """Draw side-by-side columns of (x offset, width, text, align)."""
        self.paint.font(role, size)
        wrapped = [
            (offset, width, self.paint.wrap(text, width), align)
            for offset, width, text, align in columns
        ]
        rows = max(len(lines) for _, _, lines, _ in wrapped)
        self._ensure(rows * line_height)

        for offset, width, lines, align in wrapped:
            for index, line in enumerate(lines):
                self.paint.cell(
                    PAGE_LEFT_MARGIN + offset,
                    self.y + index * line_height,
                    width,
                    line_height,
                    line,
                    align + "M",
                )
        self.y += rows * line_height

    def info_block(
        self,
        *,
        visualize_document: bool,
        document_pages: int,
        visualize_signatures: bool,
        creation_date: str,
        builder_name: str,
        how_to_verify: str,
    ) -> int:
        """Draw the info block and return the number of pages it took."""
        half = CONTENT_MAX_WIDTH / 2
        self.start_page()

        self._paragraph("bold", 14, 10, self.t(tr.CARD_TITLE), "C")
        self.y += PAGE_TOP_MARGIN
        self._paragraph("bold", 14, 5, self.info.description, "C")

        self.y += 5
        self._row(
            "bold",
            12,
            5,
            [
                (0, half, self.t(tr.CREATION_DATE), "L"),
                (half, half, self.t(tr.BUILDER_NAME), "L"),
            ],
        )
        self._row(
            "regular",
            12,
            5,
            [(0, half, creation_date, "L"), (half, half, builder_name, "L")],
        )

        # Contents
        self.y += 5
        self._paragraph("bold", 12, 5, self.t(tr.CONTENTS))

        start_page = self.info_pages + 1
        document_page = "-"
        if visualize_document:
            document_page = str(start_page)
            start_page += document_pages
        signatures_page = "-"
        if visualize_signatures:
            signatures_page = str(start_page)

        label_width = CONTENT_MAX_WIDTH - CONTENTS_PAGE_COLUMN_WIDTH
        for label, page in (
            (tr.INFO_BLOCK, "1"),
            (tr.DOCUMENT_VISUALIZATION, document_page),
            (tr.SIGNATURES_VISUALIZATION, signatures_page),
        ):
            self._row(
                "regular",
                12,
                5,
                [
                    (0, label_width, self.t(label), "L"),
                    (label_width, CONTENTS_PAGE_COLUMN_WIDTH, page, "R"),
                ],
            )

        # Attachments
        self._paragraph("bold", 12, 10, self.t(tr.ATTACHMENTS_LIST))
        for index, attachment in enumerate(self.attachments, start=1):
            self._row(
                "regular",
                12,
                5,
                [
                    (0, ATTACHMENT_INDEX_COLUMN_WIDTH, f"{index}.", "L"),
                    (
                        ATTACHMENT_INDEX_COLUMN_WIDTH,
                        ATTACHMENT_NAME_COLUMN_WIDTH,
                        attachment.file_name,
                        "L",
                    ),
                    (
                        ATTACHMENT_INDEX_COLUMN_WIDTH
                        + ATTACHMENT_NAME_COLUMN_WIDTH,
                        ATTACHMENT_DESCRIPTION_COLUMN_WIDTH,
                        attachment.description,
                        "L",
                    ),
                ],
            )

        info_text = self.t(tr.INFO_TEXT).format(how_to_verify=how_to_verify)
        self._paragraph("italic", 10, 4, info_text)

        self.finish_page(footer=self.t(tr.CARD_FOOTER))
        return self.page_no

    # ------------------------------------------------------------------
    # Document visualization
    # ------------------------------------------------------------------

    def document_page(
        self, width: float, height: float
    ) -> Tuple[float, float, float, float]:
        """Draw one framed document page and return its frame (mm)."""
        self.start_page()
        paint = self.paint
        c = self.canvas

        w, h = _fit(width, height)
        x = PAGE_LEFT_MARGIN + max((EMBEDDED_PAGE_MAX_WIDTH - w) / 2, 0)
        y = (
            PAGE_TOP_MARGIN
            + HEADER_HEIGHT
            + max((EMBEDDED_PAGE_MAX_HEIGHT - h) / 2, 0)
        )

        c.setStrokeColorRGB(*GRAY)
        paint.rect(x, y, w, h)

        # Watermark, 45 degrees around the frame centre
        c.saveState()
        c.translate((x + w / 2) * mm, (PAGE_HEIGHT - y - h / 2) * mm)
        c.rotate(45)
        c.setFillColorRGB(*GRAY)
        c.setFillAlpha(WATERMARK_ALPHA)
        paint.font("regular", 20)
        lines = paint.wrap(self.t(tr.DOCUMENT_COPY_WATERMARK), w)
        line_height = 10
        top = -len(lines) * line_height / 2
        for index, line in enumerate(lines):
            baseline = top + index * line_height + line_height / 2 + 20 * PT * 0.3
            c.drawCentredString(0, -baseline * mm, line)
        c.restoreState()

        self.finish_page(
            header=self.t(tr.DOCUMENT_VISUALIZATION),
            footer=self.t(tr.CARD_FOOTER),
        )
        return x, y, w, h

    # ------------------------------------------------------------------
    # Signature visualization
    # ------------------------------------------------------------------

    def signature_page(
        self,
        number: int,
        signature: SignatureInfo,
        visualization: SignatureVisualization,
    ) -> None:
        self.start_page()
        paint = self.paint
        c = self.canvas
        x = PAGE_LEFT_MARGIN
        y = CONTENT_TOP

        # Left column
        paint.font("bold", 10)
        paint.cell(
            x,
            y,
            LEFT_COLUMN_WIDTH,
            5,
            self.t(tr.SIGNATURE_NUMBER).format(number=number),
            "LB",
        )
        y += 5

        def label(text: str) -> None:
            nonlocal y
            paint.font("regular", 8)
            paint.cell(x, y, LEFT_COLUMN_WIDTH, 7, text, "LB")
            y += 7

        def value(text: str) -> None:
            nonlocal y
            paint.font("bold", 8)
            y = paint.multi_cell(x, y, LEFT_COLUMN_WIDTH, 5, text)

        label(self.t(tr.SIGNATURE_DATE))
        value(visualization.tsp.generated_at)

        label(self.t(tr.SIGNED_BY))
        name = self.t(tr.IIN).format(iin=visualization.subject_id)
        if visualization.subject_name:
            name = self.t(tr.SUBJECT_WITH_IIN).format(
                name=visualization.subject_name, iin=visualization.subject_id
            )
        if visualization.subject_org_id:
            name += "\n" + self.t(tr.ORGANIZATION_WITH_BIN).format(
                name=visualization.subject_org_name,
                bin=visualization.subject_org_id,
            )
        value(name)

        label(self.t(tr.TEMPLATE))
        for policy in visualization.policies:
            value(f"- {policy}")

        if visualization.key_usage or visualization.ext_key_usage:
            label(self.t(tr.KEY_USAGE))
            for usage in [*visualization.key_usage, *visualization.ext_key_usage]:
                value(f"- {usage}")

        text_bottom = y

        # Right column
        y = CONTENT_TOP
        c.setStrokeColorRGB(*GRAY)
        paint.font("regular", 6)
        for template, fields in (
            (
                tr.CERTIFICATE_DETAILS,
                dict(
                    subject=visualization.subject,
                    alt_name=visualization.subject_alt_name,
                    serial=visualization.serial_number,
                    valid_from=visualization.valid_from,
                    valid_until=visualization.valid_until,
                    issuer=visualization.issuer,
                ),
            ),
            (
                tr.TSP_DETAILS,
                dict(
                    generated_at=visualization.tsp.generated_at,
                    subject=visualization.tsp.subject,
                    serial=visualization.tsp.serial_number,
                    issuer=visualization.tsp.issuer,
                ),
            ),
            (
                tr.OCSP_DETAILS,
                dict(
                    status=visualization.ocsp.cert_status,
                    generated_at=visualization.ocsp.generated_at,
                    subject=visualization.ocsp.subject,
                    serial=visualization.ocsp.serial_number,
                    issuer=visualization.ocsp.issuer,
                ),
            ),
        ):
            y = paint.multi_cell(
                RIGHT_COLUMN_X,
                y,
                RIGHT_COLUMN_WIDTH,
                3,
                self.t(template).format(**fields),
                border=True,
            )
            y += 1
        c.setStrokeColorRGB(0, 0, 0)

        text_bottom = max(text_bottom, y)

        # QR codes
        qr_y = text_bottom + SIGNATURE_QR_TOP_MARGIN + SIGNATURE_QR_MARGIN
        for index, qr_code in enumerate(visualization.qr_codes):
            column = index % SIGNATURE_QRS_IN_ROW
            if index and column == 0:
                qr_y += SIGNATURE_QR_MARGIN + SIGNATURE_QR_SIZE
            qr_x = (
                PAGE_LEFT_MARGIN
                + SIGNATURE_QR_MARGIN * (column + 1)
                + SIGNATURE_QR_SIZE * column
            )
            paint.image(qr_code, qr_x, qr_y, SIGNATURE_QR_SIZE, SIGNATURE_QR_SIZE)

        self.finish_page(
            header=self.t(tr.SIGNATURE_VISUALIZATION),
            footer=self.t(tr.CARD_FOOTER),
        )


# -------------------------------------------------------------------------
# Public renderer
# -------------------------------------------------------------------------


class DocumentRenderer:
    """Builds Digital Document Cards. Safe to share between threads."""

    def __init__(
        self,
        font_path: Optional[Path] = None,
        bold_font_path: Optional[Path] = None,
    ) -> None:
        self.fonts = register_fonts(font_path, bold_font_path)

    def render(
        self,
        document_info: DocumentInfo,
        document: bytes,
        file_name: str,
        *,
        visualize_document: bool = True,
        visualize_signatures: bool = True,
        creation_date: str = "",
        builder_name: str = "",
        how_to_verify: str = "",
    ) -> bytes:
        """
        Render a card for ``document`` and return the PDF bytes.

        Raises RenderError (or InvalidInputError for unusable
        signatures) without producing partial output.
        """
        page_sizes = inspect_pdf(document)
        if visualize_document and page_sizes is None:
            raise RenderError("visualization of non-PDF files is not available")

        if visualize_signatures:
            for signature in document_info.signatures:
                if signature.signature_visualization is None:
                    raise RenderError(
                        "no signature visualization information provided"
                    )

        attachments = self._attachments(document_info, document, file_name)
        document_pages = len(page_sizes) if page_sizes else 0

        try:
            # Dry run to learn how many pages the info block takes
            info_pages = self._draw(
                document_info,
                attachments,
                page_sizes=None,
                info_pages=0,
                total_pages=0,
                visualize_document=visualize_document,
                document_pages=document_pages,
                visualize_signatures=False,
                creation_date=creation_date,
                builder_name=builder_name,
                how_to_verify=how_to_verify,
            )[1]

            total_pages = info_pages
            if visualize_document:
                total_pages += document_pages
            if visualize_signatures:
                total_pages += len(document_info.signatures)

            card, _, placements = self._draw(
                document_info,
                attachments,
                page_sizes=page_sizes if visualize_document else None,
                info_pages=info_pages,
                total_pages=total_pages,
                visualize_document=visualize_document,
                document_pages=document_pages,
                visualize_signatures=visualize_signatures,
                creation_date=creation_date,
                builder_name=builder_name,
                how_to_verify=how_to_verify,
            )

            output = self._assemble(card, document, placements, attachments)

        except DDCError:
            raise
        except Exception as exc:
            logger.exception(
                "ddc_render_failed",
                extra={"document_size": len(document)},
            )
            raise RenderError(f"unable to build DDC: {exc}") from exc

        logger.info(
            "ddc_rendered",
            extra={
                "pages": total_pages,
                "attachments": len(attachments),
                "size": len(output),
            },
        )
        return output

    def _attachments(
        self,
        info: DocumentInfo,
        document: bytes,
        file_name: str,
    ) -> List[_Attachment]:
        attachments = [
            _Attachment(
                file_name=file_name,
                description=tr.translate(info.language, tr.DOCUMENT_ORIGINAL),
                data=document,
            )
        ]
        for signature in info.signatures:
            validate_signature(signature, info.language)
            signer = signer_display_name(signature, info.language)
            attachments.append(
                _Attachment(
                    file_name=signature.file_name,
                    description=tr.translate(
                        info.language, tr.SIGNATURE_OF
                    ).format(signer=signer),
                    data=signature.body,
                )
            )
        return attachments

    def _draw(
        self,
        info: DocumentInfo,
        attachments: Sequence[_Attachment],
        *,
        page_sizes: Optional[List[Tuple[float, float]]],
        info_pages: int,
        total_pages: int,
        visualize_document: bool,
        document_pages: int,
        visualize_signatures: bool,
        creation_date: str,
        builder_name: str,
        how_to_verify: str,
    ) -> Tuple[bytes, int, List[_Placement]]:
        buffer = BytesIO()
        canvas = Canvas(buffer, pagesize=A4, pageCompression=1)
        canvas.setTitle(info.title or tr.translate(info.language, tr.CARD_FOOTER))
        canvas.setSubject(info.description)
        if builder_name:
            canvas.setCreator(builder_name)

        layout = _CardLayout(
            canvas,
            self.fonts,
            info,
            attachments,
            info_pages=info_pages,
            total_pages=total_pages,
        )
        drawn_info_pages = layout.info_block(
            visualize_document=visualize_document,
            document_pages=document_pages,
            visualize_signatures=visualize_signatures,
            creation_date=creation_date,
            builder_name=builder_name,
            how_to_verify=how_to_verify,
        )

        placements: List[_Placement] = []
        for source_page, (width, height) in enumerate(page_sizes or []):
            x, y, w, h = layout.document_page(width, height)
            placements.append(
                _Placement(
                    card_page=layout.page_no - 1,
                    source_page=source_page,
                    rect=(
                        x * mm,
                        (PAGE_HEIGHT - y - h) * mm,
                        (x + w) * mm,
                        (PAGE_HEIGHT - y) * mm,
                    ),
                )
            )

        if visualize_signatures:
            for number, signature in enumerate(info.signatures, start=1):
                layout.signature_page(
                    number, signature, signature.signature_visualization
                )

        canvas.save()
        return buffer.getvalue(), drawn_info_pages, placements

    @staticmethod
    def _assemble(
        card: bytes,
        document: bytes,
        placements: Sequence[_Placement],
        attachments: Sequence[_Attachment],
    ) -> bytes:
        with pikepdf.open(BytesIO(card)) as pdf:
            if placements:
                with pikepdf.open(BytesIO(document)) as source:
                    for placement in placements:
                        # Copy the page in, turn it into a form XObject and
                        # drop the copied page again.
                        pdf.pages.append(source.pages[placement.source_page])
                        form = pdf.pages[-1].as_form_xobject()
                        pdf.pages[placement.card_page].add_underlay(
                            form, pikepdf.Rectangle(*placement.rect)
                        )
                        del pdf.pages[-1]

            # Zero-padded keys keep the name tree in attachment order
            for index, attachment in enumerate(attachments):
                pdf.attachments[f"{index:04d}"] = pikepdf.AttachedFileSpec(
                    pdf,
                    attachment.data,
                    description=attachment.description,
                    filename=attachment.file_name,
                )

            buffer = BytesIO()
            pdf.save(buffer)
            return buffer.getvalue()
