"""
PDF export of a rendered receipt layout, using ReportLab.

The exporter only ever sees a ``ReceiptLayout``; whatever the on-screen
preview shows is exactly what ends up on the page. Presentation parameters
are fixed module constants, never taken from the receipt.
"""
from __future__ import annotations

import io
import logging
import re
from functools import lru_cache
from typing import Any, Callable, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.flowables import HRFlowable

from app.config import settings
from app.schemas import LayoutSection, ReceiptLayout, ReceiptRecord

logger = logging.getLogger(__name__)

# Page setup
PAGE_SIZE = A4
PAGE_MARGIN = 0.5 * inch
LOGO_SIZE = 12 * mm
CONTENT_WIDTH = PAGE_SIZE[0] - 2 * PAGE_MARGIN

# Color scheme
PRIMARY_COLOR = colors.HexColor("#7c3aed")
MUTED_COLOR = colors.HexColor("#6b7280")
DARK_COLOR = colors.HexColor("#111827")
RULE_COLOR = colors.HexColor("#e5e7eb")
PANEL_COLOR = colors.HexColor("#f3f4f6")

LogoLoader = Callable[[str], bytes]

_FILENAME_UNSAFE = re.compile(r'[\\/:*?"<>|\r\n]+')


# (regular, bold) TTFs looked up on reportlab's TTFSearchPath when no font is configured
UNICODE_FONT_CANDIDATES = (
    ("DejaVuSans.ttf", "DejaVuSans-Bold.ttf"),
    ("dejavu/DejaVuSans.ttf", "dejavu/DejaVuSans-Bold.ttf"),
    ("NotoSans-Regular.ttf", "NotoSans-Bold.ttf"),
    ("noto/NotoSans-Regular.ttf", "noto/NotoSans-Bold.ttf"),
    ("liberation/LiberationSans-Regular.ttf", "liberation/LiberationSans-Bold.ttf"),
)


def _register_ttf(name: str, path: str) -> bool:
    if name in pdfmetrics.getRegisteredFontNames():
        return True
    try:
        pdfmetrics.registerFont(TTFont(name, path))
    except (TTFError, OSError) as e:
        logger.debug("Font %s not usable: %s", path, e)
        return False
    return True


@lru_cache(maxsize=None)
def _resolve_fonts(font_path: str, candidates: tuple[tuple[str, str], ...]) -> tuple[str, str]:
    if font_path:
        # an explicitly configured font must load
        pdfmetrics.registerFont(TTFont("ReceiptFont", font_path))
        return "ReceiptFont", "ReceiptFont"
    for regular, bold in candidates:
        stem = regular.rsplit("/", 1)[-1].rsplit(".", 1)[0]
        if _register_ttf(stem, regular):
            bold_name = f"{stem}-Bold"
            if not _register_ttf(bold_name, bold):
                bold_name = stem
            logger.info("Using %s for PDF export", regular)
            return stem, bold_name
    logger.warning("No Unicode TTF found; PDFs fall back to Helvetica")
    return "Helvetica", "Helvetica-Bold"


def _fonts() -> tuple[str, str]:
    """(regular, bold) font names; a TTF covers symbols like ₦ and ₹."""
    return _resolve_fonts(settings.PDF_FONT_PATH, UNICODE_FONT_CANDIDATES)


def missing_glyphs(font_name: str, text: str) -> set[str]:
    """Characters of ``text`` that ``font_name`` cannot draw."""
    font = pdfmetrics.getFont(font_name)
    if isinstance(font, TTFont):
        return {c for c in text if not c.isspace() and ord(c) not in font.face.charToGlyph}
    # standard Type 1 fonts use WinAnsi encoding
    missing = set()
    for c in text:
        if c.isspace():
            continue
        try:
            c.encode("cp1252")
        except UnicodeEncodeError:
            missing.add(c)
    return missing


def _layout_text(layout: ReceiptLayout) -> str:
    parts = [layout.branding.name, layout.branding.monogram, layout.heading, *layout.footer]
    for section in layout.sections:
        parts.append(section.title or "")
        for row in section.rows:
            parts.extend([row.label, row.value, row.detail or ""])
    return "".join(parts)


def _styles() -> dict[str, ParagraphStyle]:
    regular, bold = _fonts()
    base = getSampleStyleSheet()["Normal"]
    return {
        "Brand": ParagraphStyle("Brand", parent=base, fontName=bold, fontSize=18,
                                leading=22, textColor=PRIMARY_COLOR),
        "Monogram": ParagraphStyle("Monogram", parent=base, fontName=bold, fontSize=16,
                                   leading=18, textColor=colors.white, alignment=1),
        "Heading": ParagraphStyle("Heading", parent=base, fontName=bold, fontSize=14,
                                  leading=18, textColor=DARK_COLOR, alignment=2),
        "SectionTitle": ParagraphStyle("SectionTitle", parent=base, fontName=bold,
                                       fontSize=11, textColor=DARK_COLOR),
        "Label": ParagraphStyle("Label", parent=base, fontName=regular, fontSize=10,
                                leading=13, textColor=MUTED_COLOR),
        "Value": ParagraphStyle("Value", parent=base, fontName=regular, fontSize=10,
                                leading=13, textColor=DARK_COLOR, alignment=2),
        "Emphasis": ParagraphStyle("Emphasis", parent=base, fontName=bold, fontSize=14,
                                   leading=18, textColor=DARK_COLOR, alignment=2),
        "Footer": ParagraphStyle("Footer", parent=base, fontName=regular, fontSize=9,
                                 leading=12, textColor=MUTED_COLOR, alignment=1),
    }


def _load_logo(url: str, logo_loader: Optional[LogoLoader]) -> Optional[Image]:
    if logo_loader is None:
        return None
    try:
        content = logo_loader(url)
        # Decode now so a broken image falls back here instead of failing the build.
        ImageReader(io.BytesIO(content)).getSize()
    except Exception as e:
        logger.warning("Logo %s unavailable for PDF, using monogram: %s", url, e)
        return None
    return Image(io.BytesIO(content), width=LOGO_SIZE, height=LOGO_SIZE)


def _monogram(letter: str, styles: dict[str, ParagraphStyle]) -> Table:
    cell = Table([[Paragraph(escape(letter), styles["Monogram"])]],
                 colWidths=[LOGO_SIZE], rowHeights=[LOGO_SIZE])
    cell.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), PRIMARY_COLOR),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    return cell


def _header(layout: ReceiptLayout, styles, logo_loader: Optional[LogoLoader]) -> list[Any]:
    mark = None
    if layout.branding.logo_url:
        mark = _load_logo(layout.branding.logo_url, logo_loader)
    if mark is None:
        mark = _monogram(layout.branding.monogram, styles)

    brand = Table(
        [[mark, Paragraph(escape(layout.branding.name), styles["Brand"])]],
        colWidths=[LOGO_SIZE + 4 * mm, None],
    )
    brand.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LEFTPADDING", (0, 0), (0, 0), 0),
    ]))
    return [
        brand,
        Spacer(1, 12),
        Paragraph(escape(layout.heading), styles["Heading"]),
        Spacer(1, 8),
        HRFlowable(width="100%", thickness=1.5, color=PRIMARY_COLOR),
        Spacer(1, 12),
    ]


def _section(section: LayoutSection, styles) -> list[Any]:
    story: list[Any] = []
    if section.title:
        title = Table([[Paragraph(escape(section.title), styles["SectionTitle"])]],
                      colWidths=[CONTENT_WIDTH])
        title.setStyle(TableStyle([("BACKGROUND", (0, 0), (-1, -1), PANEL_COLOR)]))
        story.extend([title, Spacer(1, 6)])

    has_detail = any(row.detail is not None for row in section.rows)
    data = []
    for row in section.rows:
        value_style = styles["Emphasis"] if row.emphasis else styles["Value"]
        cells = [Paragraph(escape(row.label), styles["Label"])]
        if has_detail:
            cells.append(Paragraph(escape(row.detail or ""), styles["Value"]))
        cells.append(Paragraph(escape(row.value), value_style))
        data.append(cells)
    if not data:
        return story

    widths = [CONTENT_WIDTH * 0.5, CONTENT_WIDTH * 0.15, CONTENT_WIDTH * 0.35] if has_detail \
        else [CONTENT_WIDTH * 0.45, CONTENT_WIDTH * 0.55]
    table = Table(data, colWidths=widths)
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LINEBELOW", (0, 0), (-1, -2), 0.5, RULE_COLOR),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    story.extend([table, Spacer(1, 14)])
    return story


def export_pdf(layout: ReceiptLayout, logo_loader: Optional[LogoLoader] = None) -> bytes:
    """Rasterise ``layout`` to PDF bytes.

    Args:
        layout: output of the preview renderer
        logo_loader: resolves ``layout.branding.logo_url`` to image bytes;
            without one (or when it fails) the monogram is drawn instead

    Returns:
        PDF bytes
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=PAGE_SIZE,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=layout.heading,
        author=layout.branding.name,
    )
    styles = _styles()
    for font_name in set(_fonts()):
        missing = missing_glyphs(font_name, _layout_text(layout))
        if missing:
            logger.warning("Font %s has no glyph for %s in %s",
                           font_name, " ".join(sorted(missing)), layout.element_id)

    story: list[Any] = []
    story.extend(_header(layout, styles, logo_loader))
    for section in layout.sections:
        story.extend(_section(section, styles))
    if layout.footer:
        story.append(HRFlowable(width="100%", thickness=0.5, color=RULE_COLOR))
        story.append(Spacer(1, 8))
        for line in layout.footer:
            story.append(Paragraph(escape(line), styles["Footer"]))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.info("Rendered %s PDF (%d bytes)", layout.element_id, len(pdf_bytes))
    return pdf_bytes


def preview_filename(layout: ReceiptLayout) -> str:
    return f"{layout.element_id}.pdf"


def record_filename(record: ReceiptRecord) -> str:
    title = _FILENAME_UNSAFE.sub("_", record.title).strip() or record.id
    return f"{title}-receipt.pdf"
