# backend/qr_scanner/encoder.py

"""
Payload encoding for QR generation.

Formats structured fields into the exact wire string a standard reader
expects. Contents are not validated: a malformed email or phone number
still yields a well-formed payload. Wi-Fi and vCard fields are emitted
unescaped (``;``, ``,`` and ``\\`` pass through as-is).
"""

from __future__ import annotations

from typing import Any, Dict, Type
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from backend.models import (
    ContactFields,
    EmailFields,
    FieldSet,
    IntentType,
    PhoneFields,
    SmsFields,
    TextFields,
    UrlFields,
    WifiFields,
)

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class UnsupportedIntentError(ValueError):
    """Raised for intent types that have no generation path (Location)."""


class InvalidFieldsError(ValueError):
    """Raised when a field mapping does not fit the intent's field set."""


FIELD_MODELS: Dict[IntentType, Type[BaseModel]] = {
    IntentType.URL: UrlFields,
    IntentType.EMAIL: EmailFields,
    IntentType.PHONE: PhoneFields,
    IntentType.SMS: SmsFields,
    IntentType.WIFI: WifiFields,
    IntentType.CONTACT: ContactFields,
    IntentType.TEXT: TextFields,
}


def percent_encode(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def parse_fields(intent: IntentType, fields: Dict[str, Any]) -> FieldSet:
    """Shape-check a loose JSON mapping into the field set for ``intent``."""
    model = FIELD_MODELS.get(intent)
    if model is None:
        raise UnsupportedIntentError(f"{intent.value} payloads cannot be generated.")
    try:
        return model.model_validate(fields)
    except ValidationError as exc:
        raise InvalidFieldsError(
            f"Invalid fields for {intent.value}: {exc.error_count()} error(s)."
        ) from exc


def encode(intent: IntentType, fields: FieldSet) -> str:
    if intent is IntentType.URL:
        return fields.url if fields.url.startswith("http") else "https://" + fields.url

    if intent is IntentType.EMAIL:
        return (
            f"mailto:{fields.email}"
            f"?subject={percent_encode(fields.subject)}"
            f"&body={percent_encode(fields.body)}"
        )

    if intent is IntentType.PHONE:
        return f"tel:{fields.number}"

    if intent is IntentType.SMS:
        return f"sms:{fields.number}?body={percent_encode(fields.message)}"

    if intent is IntentType.WIFI:
        hidden = "true" if fields.hidden else "false"
        return f"WIFI:T:{fields.security};S:{fields.ssid};P:{fields.password};H:{hidden};;"

    if intent is IntentType.CONTACT:
        return "\n".join(
            [
                "BEGIN:VCARD",
                "VERSION:3.0",
                f"FN:{fields.first_name} {fields.last_name}",
                f"ORG:{fields.organization}",
                f"TEL:{fields.phone}",
                f"EMAIL:{fields.email}",
                "END:VCARD",
            ]
        )

    if intent is IntentType.TEXT:
        return fields.text

    if intent is IntentType.LOCATION:
        raise UnsupportedIntentError("Location payloads are scan-only; no geo: encoder exists.")

    raise UnsupportedIntentError(f"Unhandled intent type: {intent!r}")


def encode_mapping(intent: IntentType, fields: Dict[str, Any]) -> str:
    """Convenience wrapper: validate the mapping, then encode it."""
    return encode(intent, parse_fields(intent, fields))
