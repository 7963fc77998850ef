"""
Print-grade label sheets.

The canvas is created with invariant=1 so reportlab writes fixed creation
dates and document ids: the same sheet always produces the same bytes.
"""
from io import BytesIO
from typing import Dict

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from services import qr_identity
from services.labels.composer import Label, LabelSheet, cell_position
from services.labels.paper import PaperSize

PAGE_MARGIN = 5 * mm
CELL_PADDING = 2.5 * mm
FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
ELLIPSIS = "..."


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    """Cut `text` so it fits `max_width` points, marking the cut with an ellipsis."""
    if stringWidth(text, font, size) <= max_width:
        return text
    while text and stringWidth(text + ELLIPSIS, font, size) > max_width:
        text = text[:-1]
    return text + ELLIPSIS if text else ""


def _label_lines(label: Label):
    lines = [(label.name, FONT_BOLD, 1.0)]
    if label.specifications:
        lines.append((f"Spec: {label.specifications}", FONT_REGULAR, 0.8))
    lines.append((f"Qty: {label.quantity_text}", FONT_BOLD, 0.9))
    if label.location_name:
        lines.append((f"Loc: {label.location_name}", FONT_REGULAR, 0.8))
    return lines


def _draw_label(
    c: canvas.Canvas,
    label: Label,
    x: float,
    y: float,
    width: float,
    height: float,
    qr_cache: Dict[str, ImageReader],
) -> None:
    c.setStrokeColor(colors.lightgrey)
    c.setLineWidth(0.5)
    c.rect(x, y, width, height, stroke=1, fill=0)

    text_width = width - 2 * CELL_PADDING
    if label.qr_code_id:
        qr_size = max(0.0, min(height - 2 * CELL_PADDING, width * 0.4))
        if label.qr_code_id not in qr_cache:
            qr_cache[label.qr_code_id] = ImageReader(qr_identity.make_image(label.qr_code_id))
        c.drawImage(
            qr_cache[label.qr_code_id],
            x + width - CELL_PADDING - qr_size,
            y + (height - qr_size) / 2,
            width=qr_size,
            height=qr_size,
        )
        text_width -= qr_size + CELL_PADDING

    base_size = max(5.0, min(11.0, height / 7))
    cursor = y + height - CELL_PADDING
    c.setFillColor(colors.black)
    for text, font, scale in _label_lines(label):
        size = base_size * scale
        cursor -= size * 1.25
        if cursor < y + CELL_PADDING:
            break
        c.setFont(font, size)
        c.drawString(x + CELL_PADDING, cursor, fit_text(text, font, size, text_width))


def render_pdf(sheet: LabelSheet, paper: PaperSize) -> bytes:
    """One PDF page per sheet page, labels placed row-major; empty cells stay blank."""
    page_width = paper.width_mm * mm
    page_height = paper.height_mm * mm
    cell_width = (page_width - 2 * PAGE_MARGIN) / sheet.columns
    cell_height = (page_height - 2 * PAGE_MARGIN) / sheet.rows

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(page_width, page_height), invariant=1)
    c.setTitle("Item Labels")
    c.setSubject(f"{sheet.label_count} labels, {sheet.columns}x{sheet.rows} on {paper.name}")

    qr_cache: Dict[str, ImageReader] = {}
    for page in sheet.pages:
        for index, label in enumerate(page):
            row, col = cell_position(index, sheet.columns)
            x = PAGE_MARGIN + col * cell_width
            y = page_height - PAGE_MARGIN - (row + 1) * cell_height
            _draw_label(c, label, x, y, cell_width, cell_height, qr_cache)
        c.showPage()
    c.save()
    return buffer.getvalue()
