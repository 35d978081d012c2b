# backend/qr_scanner/classifier.py

"""
Payload classification: maps decoded QR text onto an IntentType.

Checks run in a fixed order and the first match wins. Every prefix is
case-sensitive except ``wifi:``, which is matched case-insensitively so
that ``WIFI:`` payloads produced by the encoder classify as WiFi.
"""

from __future__ import annotations

import json
import logging
from typing import Dict

from backend.models import IntentType, ScanEvent

logger = logging.getLogger("qrhub.classifier")


def classify(raw: str) -> IntentType:
    if raw.startswith(("http://", "https://")):
        intent = IntentType.URL
    elif raw.startswith("mailto:"):
        intent = IntentType.EMAIL
    elif raw.startswith("tel:"):
        intent = IntentType.PHONE
    elif raw.startswith("sms:"):
        intent = IntentType.SMS
    elif raw[:5].lower() == "wifi:":
        intent = IntentType.WIFI
    elif raw.startswith("geo:"):
        intent = IntentType.LOCATION
    elif "BEGIN:VCARD" in raw:
        intent = IntentType.CONTACT
    else:
        intent = IntentType.TEXT

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            json.dumps(
                {
                    "event": "qr_classification",
                    "qr_type": intent.value,
                    "content_preview": raw[:140],
                }
            )
        )
    return intent


def action_for(intent: IntentType, data: str) -> Dict[str, str]:
    """What a client should do with a payload of the given type: open it or copy it."""
    if intent is IntentType.URL:
        target = data if data.startswith("http") else "https://" + data
        return {"action": "open", "target": target}
    if intent in (IntentType.EMAIL, IntentType.PHONE, IntentType.SMS):
        return {"action": "open", "target": data}
    if intent in (
        IntentType.TEXT,
        IntentType.WIFI,
        IntentType.CONTACT,
        IntentType.LOCATION,
    ):
        return {"action": "copy", "target": data}
    raise ValueError(f"Unhandled intent type: {intent!r}")


def suggest_action(event: ScanEvent) -> Dict[str, str]:
    # stored type wins; the payload is never re-classified here
    return action_for(event.type, event.data)
