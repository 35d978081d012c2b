"""Tests for payload encoding and the classify/encode round trip."""

from __future__ import annotations

import pytest

from backend.models import (
    ContactFields,
    EmailFields,
    IntentType,
    PhoneFields,
    SmsFields,
    TextFields,
    UrlFields,
    WifiFields,
)
from backend.qr_scanner.classifier import classify
from backend.qr_scanner.encoder import (
    InvalidFieldsError,
    UnsupportedIntentError,
    encode,
    encode_mapping,
    parse_fields,
    percent_encode,
)


class TestWireFormats:
    def test_url_keeps_existing_scheme(self) -> None:
        assert encode(IntentType.URL, UrlFields(url="http://example.com")) == "http://example.com"

    def test_url_gets_https_prefix(self) -> None:
        assert encode(IntentType.URL, UrlFields(url="example.com/a")) == "https://example.com/a"

    def test_email(self) -> None:
        fields = EmailFields(email="a@b.com", subject="Hi there", body="See you!")
        assert (
            encode(IntentType.EMAIL, fields)
            == "mailto:a@b.com?subject=Hi%20there&body=See%20you!"
        )

    def test_email_empty_subject_and_body(self) -> None:
        assert encode(IntentType.EMAIL, EmailFields(email="a@b.com")) == "mailto:a@b.com?subject=&body="

    def test_phone_is_not_transformed(self) -> None:
        assert encode(IntentType.PHONE, PhoneFields(number="+1 (555) 010-9999")) == "tel:+1 (555) 010-9999"

    def test_sms(self) -> None:
        fields = SmsFields(number="5550100", message="Call me & text back")
        assert encode(IntentType.SMS, fields) == "sms:5550100?body=Call%20me%20%26%20text%20back"

    def test_wifi(self) -> None:
        fields = WifiFields(ssid="Home", password="secret", security="WPA", hidden=False)
        assert encode(IntentType.WIFI, fields) == "WIFI:T:WPA;S:Home;P:secret;H:false;;"

    def test_wifi_hidden_nopass(self) -> None:
        fields = WifiFields(ssid="Lab", security="nopass", hidden=True)
        assert encode(IntentType.WIFI, fields) == "WIFI:T:nopass;S:Lab;P:;H:true;;"

    def test_wifi_fields_are_not_escaped(self) -> None:
        fields = WifiFields(ssid="a;b", password="c,d\\e")
        assert encode(IntentType.WIFI, fields) == "WIFI:T:WPA;S:a;b;P:c,d\\e;H:false;;"

    def test_contact(self) -> None:
        fields = ContactFields(
            first_name="Jane",
            last_name="Doe",
            phone="+15550100",
            email="jane@example.com",
            organization="Acme",
        )
        assert encode(IntentType.CONTACT, fields) == (
            "BEGIN:VCARD\n"
            "VERSION:3.0\n"
            "FN:Jane Doe\n"
            "ORG:Acme\n"
            "TEL:+15550100\n"
            "EMAIL:jane@example.com\n"
            "END:VCARD"
        )

    def test_text_is_identity(self) -> None:
        raw = "  keep\nme  exactly; "
        assert encode(IntentType.TEXT, TextFields(text=raw)) == raw

    def test_location_has_no_encoder(self) -> None:
        with pytest.raises(UnsupportedIntentError):
            encode(IntentType.LOCATION, TextFields(text="geo:1,2"))


class TestPercentEncode:
    def test_matches_uri_component_rules(self) -> None:
        assert percent_encode("A-Z a_z.0~9!*'()") == "A-Z%20a_z.0~9!*'()"

    def test_reserved_characters(self) -> None:
        assert percent_encode("a/b?c=d&e#f") == "a%2Fb%3Fc%3Dd%26e%23f"

    def test_utf8(self) -> None:
        assert percent_encode("café") == "caf%C3%A9"


class TestParseFields:
    def test_contact_accepts_camel_case_aliases(self) -> None:
        fields = parse_fields(IntentType.CONTACT, {"firstName": "Jane", "lastName": "Doe"})
        assert isinstance(fields, ContactFields)
        assert fields.first_name == "Jane"

    def test_missing_required_field(self) -> None:
        with pytest.raises(InvalidFieldsError):
            parse_fields(IntentType.URL, {})

    def test_bad_security_token(self) -> None:
        with pytest.raises(InvalidFieldsError):
            parse_fields(IntentType.WIFI, {"ssid": "x", "security": "WPA3"})

    def test_location_is_rejected(self) -> None:
        with pytest.raises(UnsupportedIntentError):
            parse_fields(IntentType.LOCATION, {"lat": 1, "lng": 2})

    def test_errors_are_value_errors(self) -> None:
        assert issubclass(InvalidFieldsError, ValueError)
        assert issubclass(UnsupportedIntentError, ValueError)

    def test_encode_mapping(self) -> None:
        assert encode_mapping(IntentType.PHONE, {"number": "123"}) == "tel:123"


ROUND_TRIP_FIELDS = {
    IntentType.URL: {"url": "example.com"},
    IntentType.EMAIL: {"email": "a@b.com", "subject": "s", "body": "b"},
    IntentType.PHONE: {"number": "+15550100"},
    IntentType.SMS: {"number": "5550100", "message": "hey"},
    IntentType.WIFI: {"ssid": "Home", "password": "pw", "security": "WEP", "hidden": True},
    IntentType.CONTACT: {"firstName": "Jane", "lastName": "Doe"},
    IntentType.TEXT: {"text": "hello world"},
}


class TestRoundTrip:
    @pytest.mark.parametrize("intent", list(ROUND_TRIP_FIELDS))
    def test_classify_recovers_encoded_type(self, intent: IntentType) -> None:
        payload = encode_mapping(intent, ROUND_TRIP_FIELDS[intent])
        assert classify(payload) is intent

    def test_every_generatable_type_is_covered(self) -> None:
        assert set(ROUND_TRIP_FIELDS) == set(IntentType) - {IntentType.LOCATION}
