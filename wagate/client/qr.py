"""Render pairing codes as PNG data URLs."""
import base64
import io

import qrcode

DATA_URL_PREFIX = "data:image/png;base64,"


def render_png(code: str) -> bytes:
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=4,
    )
    qr.add_data(code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="#000000", back_color="#FFFFFF").convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def to_data_url(code: str) -> str:
    """Encode ``code`` as a scannable ``data:image/png;base64,...`` URL."""
    if not code:
        raise ValueError("QR code payload cannot be empty")
    return DATA_URL_PREFIX + base64.b64encode(render_png(code)).decode("ascii")
