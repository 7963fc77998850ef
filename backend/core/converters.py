import base64

PNG_MIME = "image/png"
PDF_MIME = "application/pdf"


def to_data_url(data: bytes, mime: str) -> str:
    """Encode binary artifacts the way the UI expects them: data:<mime>;base64,<payload>"""
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"
