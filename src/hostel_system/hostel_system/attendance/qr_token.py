"""QR attendance token: a small JSON document identifying one student."""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.exceptions import InvalidTokenError


@dataclass(frozen=True)
class QRToken:
    user_id: int
    name: str
    email: str
    issued_at: Optional[datetime] = None


def encode_token(token: QRToken) -> str:
    payload = {
        "userId": token.user_id,
        "name": token.name,
        "email": token.email,
        "timestamp": token.issued_at.isoformat() if token.issued_at else None,
    }
    return json.dumps(payload, separators=(",", ":"))


def _parse_timestamp(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        # Compare in local wall-clock time like the rest of the recorder.
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def decode_token(raw: str) -> QRToken:
    if not raw or not str(raw).strip():
        raise InvalidTokenError("QR data is required")
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidTokenError("Invalid QR code format")
    if not isinstance(data, dict):
        raise InvalidTokenError("Invalid QR code format")

    user_id = data.get("userId")
    name = data.get("name")
    email = data.get("email")
    if user_id is None or not name or not email:
        raise InvalidTokenError("Invalid QR code data")
    if isinstance(user_id, bool):
        raise InvalidTokenError("Invalid QR code data")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise InvalidTokenError("Invalid QR code data")

    return QRToken(user_id=user_id, name=str(name), email=str(email), issued_at=_parse_timestamp(data.get("timestamp")))
