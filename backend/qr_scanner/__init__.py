# backend/qr_scanner/__init__.py

"""
QR payload codec package.

Exposes:

    classify(raw: str) -> IntentType
    encode(intent: IntentType, fields) -> str
    process_qr_image(image_bytes: bytes) -> List[ScanEvent]

which:
- Classify decoded text (URL, Email, Phone, SMS, WiFi, Location, Contact, Text)
- Build the exact payload string for a generated code
- Decode still images into freshly stamped scan events
"""

from .classifier import action_for, classify, suggest_action
from .encoder import encode, encode_mapping, parse_fields
from .qr_engine import process_qr_image, scan_payload
