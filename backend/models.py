# backend/models.py

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class IntentType(str, Enum):
    TEXT = "Text"
    URL = "URL"
    EMAIL = "Email"
    PHONE = "Phone"
    SMS = "SMS"
    WIFI = "WiFi"
    CONTACT = "Contact"
    LOCATION = "Location"

    @classmethod
    def from_name(cls, name: str) -> "IntentType":
        """Resolve a display name case-insensitively ("url", "URL", "wifi" ...)."""
        lowered = (name or "").strip().lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member
        raise ValueError(f"Unknown intent type: {name!r}")


class ScanEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    data: str
    timestamp: int = Field(..., description="epoch milliseconds")
    type: IntentType
    format: str = "QR_CODE"


# ---------------------------------------------------------
# Encoder field sets
# ---------------------------------------------------------
class UrlFields(BaseModel):
    url: str


class EmailFields(BaseModel):
    email: str
    subject: str = ""
    body: str = ""


class PhoneFields(BaseModel):
    number: str


class SmsFields(BaseModel):
    number: str
    message: str = ""


class WifiFields(BaseModel):
    ssid: str
    password: str = ""
    security: Literal["WPA", "WEP", "nopass"] = "WPA"
    hidden: bool = False


class ContactFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    phone: str = ""
    email: str = ""
    organization: str = ""


class TextFields(BaseModel):
    text: str


FieldSet = Union[
    UrlFields,
    EmailFields,
    PhoneFields,
    SmsFields,
    WifiFields,
    ContactFields,
    TextFields,
]


# ---------------------------------------------------------
# Analytics
# ---------------------------------------------------------
class DailyBucket(BaseModel):
    date: str
    label: str
    scans: int


class HourlyBucket(BaseModel):
    hour: int
    count: int


class DomainStat(BaseModel):
    domain: str
    count: int
    percentage: float


class TypeStat(BaseModel):
    type: str
    count: int
    percentage: float


class AnalyticsSnapshot(BaseModel):
    type_stats: Dict[str, int]
    type_breakdown: List[TypeStat]
    most_used_type: TypeStat
    last_7_days: List[DailyBucket]
    hourly_stats: List[HourlyBucket]
    peak_hour: HourlyBucket
    peak_day: DailyBucket
    domain_stats: Dict[str, int]
    top_domains: List[DomainStat]
    last_24_hours: int
    avg_per_day: int
    days_tracked: int
    success_rate: int = 100
    total_scans: int
    unique_types: int
    first_scan: int


# ---------------------------------------------------------
# API requests
# ---------------------------------------------------------
class ClassifyRequest(BaseModel):
    data: str = Field(..., min_length=1, description="Decoded payload text.")


class ScanRequest(BaseModel):
    data: str = Field(..., min_length=1, description="Decoded payload text.")
    format: str = "QR_CODE"


class GenerateRequest(BaseModel):
    type: str = Field("Text", description="Intent type display name.")
    fields: dict = Field(default_factory=dict)
    render: bool = True
    size: int = Field(256, ge=64, le=1024)
    margin: int = Field(2, ge=0, le=16)
    foreground: str = "#000000"
    background: str = "#FFFFFF"
    error_correction: Literal["L", "M", "Q", "H"] = "M"


class DeleteHistoryRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    type: IntentType
    payload: str
    image: Optional[str] = None
