import json
from datetime import datetime

import pytest

from src.hostel_system.hostel_system.attendance.qr_token import QRToken, decode_token, encode_token
from src.hostel_system.hostel_system.core.exceptions import InvalidTokenError, ValidationError


def test_encoded_token_uses_camel_case_payload():
    raw = encode_token(QRToken(user_id=7, name="An", email="an@hostel.local", issued_at=datetime(2025, 3, 1, 7, 30)))

    assert json.loads(raw) == {
        "userId": 7,
        "name": "An",
        "email": "an@hostel.local",
        "timestamp": "2025-03-01T07:30:00",
    }


def test_decode_accepts_utc_timestamp_and_string_user_id():
    token = decode_token('{"userId": "3", "name": "Binh", "email": "b@x.io", "timestamp": "2025-03-01T00:00:00.000Z"}')

    assert token.user_id == 3
    assert token.issued_at is not None
    assert token.issued_at.tzinfo is None


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "not-json",
        "[1, 2]",
        '{"name": "x", "email": "x@y.z"}',
        '{"userId": 1, "email": "x@y.z"}',
        '{"userId": 1, "name": "x"}',
        '{"userId": "abc", "name": "x", "email": "x@y.z"}',
        '{"userId": true, "name": "x", "email": "x@y.z"}',
    ],
)
def test_decode_rejects_malformed_tokens(raw):
    with pytest.raises(InvalidTokenError):
        decode_token(raw)


def test_invalid_token_is_a_validation_error():
    assert issubclass(InvalidTokenError, ValidationError)
