"""QR rendering for otpauth:// provisioning URIs."""

from __future__ import annotations

import base64
from io import BytesIO

import qrcode
import qrcode.constants


def render_qr_data_url(data: str, *, box_size: int = 8, border: int = 1) -> str:
    """Render *data* as a PNG QR code and return it as a data URL.

    Args:
        data: Payload to encode, usually an otpauth:// URI.
        box_size: Pixels per QR module.
        border: Quiet zone width in modules.

    Returns:
        ``data:image/png;base64,...`` string usable directly in an ``<img>``.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


__all__: list[str] = ["render_qr_data_url"]
