# backend/qr_scanner/qr_engine.py

import json
import logging
import secrets
import string
import time
from typing import Any, Dict, List, Optional

from backend.models import ScanEvent
from .classifier import classify, suggest_action
from .qr_utils import decode_qr_codes, load_image_bytes, pil_to_cv2

logger = logging.getLogger("qrhub.scanner")

_ID_ALPHABET = string.ascii_lowercase + string.digits


# ---------------------------------------------------------
# SCAN EVENTS
# ---------------------------------------------------------
def new_scan_id(now_ms: int) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"scan_{now_ms}_{suffix}"


def scan_payload(data: str, format: str = "QR_CODE", now: Optional[int] = None) -> ScanEvent:
    """Classify a decoded payload and stamp it as a new, immutable ScanEvent."""
    now_ms = int(time.time() * 1000) if now is None else int(now)
    return ScanEvent(
        id=new_scan_id(now_ms),
        data=data,
        timestamp=now_ms,
        type=classify(data),
        format=format or "QR_CODE",
    )


def describe_event(event: ScanEvent) -> Dict[str, Any]:
    item = event.model_dump(mode="json")
    item.update(suggest_action(event))
    return item


# ---------------------------------------------------------
# MAIN ENTRY
# ---------------------------------------------------------
def process_qr_image(image_bytes: bytes, now: Optional[int] = None) -> List[ScanEvent]:
    """
    Decode every QR code in an image and return one ScanEvent per payload,
    in detection order. An image without a readable code yields [].
    """
    img = pil_to_cv2(load_image_bytes(image_bytes))
    decoded = decode_qr_codes(img)

    events = [scan_payload(qr["data"], qr["format"], now=now) for qr in decoded]

    logger.info(
        json.dumps(
            {
                "event": "qr_image_decoded",
                "count": len(events),
                "items": [
                    {"qr_type": e.type.value, "content_preview": e.data[:120]}
                    for e in events
                ],
            }
        )
    )
    return events
