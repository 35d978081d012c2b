# backend/qr_scanner/qr_utils.py

"""
Image helpers for QR decoding: bytes → PIL → OpenCV → payload strings.
"""

from __future__ import annotations

import io
from typing import Any, Dict, List

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError


class ImageDecodeError(ValueError):
    """Raised when uploaded bytes are not a readable image."""


def pil_to_cv2(img: Image.Image) -> np.ndarray:
    """Convert a PIL image to an OpenCV BGR ndarray."""
    if img.mode not in ("RGB", "RGBA", "L"):
        img = img.convert("RGB")

    arr = np.array(img)

    if img.mode == "RGBA":
        arr = cv2.cvtColor(arr, cv2.COLOR_RGBA2BGR)
    elif img.mode == "RGB":
        arr = cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)
    elif img.mode == "L":
        arr = cv2.cvtColor(arr, cv2.COLOR_GRAY2BGR)

    return arr


def load_image_bytes(image_bytes: bytes) -> Image.Image:
    """Robust loader from raw bytes → PIL image."""
    bio = io.BytesIO(image_bytes)
    try:
        img = Image.open(bio)
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError("Uploaded file is not a readable image.") from exc
    return img


def decode_qr_codes(img_bgr: np.ndarray) -> List[Dict[str, Any]]:
    """
    Run OpenCV's QR detector on a BGR image, multi-code first with a
    single-code fallback.

    Returns a list of dicts:
    {
        "data": str,
        "points": List[[x, y]],
        "format": "QR_CODE",
    }
    """
    detector = cv2.QRCodeDetector()
    results: List[Dict[str, Any]] = []

    # Try Multi QR
    try:
        ret, data, points, _ = detector.detectAndDecodeMulti(img_bgr)
    except cv2.error:
        ret, data, points = False, None, None

    if ret and data and points is not None:
        for i, txt in enumerate(data):
            if not txt:
                continue
            pts = points[i].astype(int).tolist()
            results.append({"data": txt, "points": pts, "format": "QR_CODE"})

        if results:
            return results

    # Single fallback
    try:
        txt, pts, _ = detector.detectAndDecode(img_bgr)
    except cv2.error:
        return results
    if txt:
        polygon = pts.astype(int).tolist() if pts is not None else []
        results.append({"data": txt, "points": polygon, "format": "QR_CODE"})

    return results
