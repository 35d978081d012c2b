# backend/qr_scanner/render.py

"""
Bitmap rendering for generated payloads (OpenCV encoder, Pillow output).
"""

from __future__ import annotations

import base64
import io

import cv2
from PIL import Image, ImageColor, ImageOps

CORRECTION_LEVELS = {
    "L": cv2.QRCodeEncoder_CORRECT_LEVEL_L,
    "M": cv2.QRCodeEncoder_CORRECT_LEVEL_M,
    "Q": cv2.QRCodeEncoder_CORRECT_LEVEL_Q,
    "H": cv2.QRCodeEncoder_CORRECT_LEVEL_H,
}


class RenderError(ValueError):
    """Raised when a payload cannot be rendered with the given options."""


def render_png(
    payload: str,
    size: int = 256,
    margin: int = 2,
    foreground: str = "#000000",
    background: str = "#FFFFFF",
    error_correction: str = "M",
) -> bytes:
    if error_correction not in CORRECTION_LEVELS:
        raise RenderError(f"Unknown error correction level: {error_correction!r}")
    try:
        dark = ImageColor.getrgb(foreground)
        light = ImageColor.getrgb(background)
    except ValueError as exc:
        raise RenderError(str(exc)) from exc

    params = cv2.QRCodeEncoder_Params()
    params.correction_level = CORRECTION_LEVELS[error_correction]
    encoder = cv2.QRCodeEncoder.create(params)
    try:
        matrix = encoder.encode(payload)
    except cv2.error as exc:
        raise RenderError("Payload could not be encoded.") from exc
    if matrix is None or matrix.size == 0:
        raise RenderError("Payload is too large to encode.")

    # one pixel per module: 0 = dark, 255 = light
    img = Image.fromarray(matrix).convert("L")
    img = ImageOps.expand(img, border=margin, fill=255)
    img = img.resize((size, size), Image.Resampling.NEAREST)
    img = ImageOps.colorize(img, black=dark[:3], white=light[:3])

    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
