from io import BytesIO
from typing import Dict, Optional

from PIL import Image, ImageDraw, ImageFont

from core.config import settings
from core.errors import InvalidConfig
from services import qr_identity
from services.labels.composer import Label, LabelSheet, cell_position

ELLIPSIS = "..."
BORDER_COLOR = (190, 190, 190)


def _fit(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> str:
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + ELLIPSIS, font=font) > max_width:
        text = text[:-1]
    return text + ELLIPSIS if text else ""


def _draw_label(
    img: Image.Image,
    draw: ImageDraw.ImageDraw,
    label: Label,
    x0: int,
    y0: int,
    width: int,
    height: int,
    fonts: Dict[str, ImageFont.ImageFont],
) -> None:
    pad = max(4, height // 20)
    draw.rectangle([x0, y0, x0 + width - 1, y0 + height - 1], outline=BORDER_COLOR)

    text_width = width - 2 * pad
    if label.qr_code_id:
        qr_size = max(1, min(height - 2 * pad, int(width * 0.4)))
        img.paste(qr_identity.make_image(label.qr_code_id, qr_size), (x0 + width - pad - qr_size, y0 + (height - qr_size) // 2))
        text_width -= qr_size + pad

    lines = [(label.name, fonts["title"])]
    if label.specifications:
        lines.append((f"Spec: {label.specifications}", fonts["body"]))
    lines.append((f"Qty: {label.quantity_text}", fonts["title"]))
    if label.location_name:
        lines.append((f"Loc: {label.location_name}", fonts["body"]))

    cursor = y0 + pad
    for text, font in lines:
        line_height = font.getbbox("Ag")[3] + pad // 2
        if cursor + line_height > y0 + height - pad:
            break
        draw.text((x0 + pad, cursor), _fit(draw, text, font, text_width), fill="black", font=font)
        cursor += line_height


def render_png(
    sheet: LabelSheet,
    page: int = 0,
    cell_width: Optional[int] = None,
    cell_height: Optional[int] = None,
) -> bytes:
    """
    A single columns x rows grid as a PNG. Only one sheet page is drawn per
    call; `page` picks which one.
    """
    if not 0 <= page < sheet.page_count:
        raise InvalidConfig(f"page must be between 0 and {sheet.page_count - 1}")
    cell_width = cell_width or settings.label_image_cell_width
    cell_height = cell_height or settings.label_image_cell_height

    img = Image.new("RGB", (sheet.columns * cell_width, sheet.rows * cell_height), "white")
    draw = ImageDraw.Draw(img)
    fonts = {
        "title": ImageFont.load_default(size=max(10, cell_height // 9)),
        "body": ImageFont.load_default(size=max(8, cell_height // 12)),
    }
    for index, label in enumerate(sheet.pages[page]):
        row, col = cell_position(index, sheet.columns)
        _draw_label(img, draw, label, col * cell_width, row * cell_height, cell_width, cell_height, fonts)

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
