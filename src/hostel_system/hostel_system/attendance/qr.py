from __future__ import annotations

import io
from typing import BinaryIO

import qrcode
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import InvalidTokenError


def render_qr_png(data: str) -> io.BytesIO:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def decode_qr_image(stream: BinaryIO) -> str:
    """Return the text of the first QR code found in an uploaded image."""

    # pyzbar loads the native zbar library on import; only the upload route needs it.
    from pyzbar.pyzbar import decode as pyzbar_decode

    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError):
        raise InvalidTokenError("Uploaded file is not a valid image")

    decoded = pyzbar_decode(img)
    if not decoded:
        raise InvalidTokenError("No QR code found in image")
    try:
        return decoded[0].data.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidTokenError("Invalid QR code format")
