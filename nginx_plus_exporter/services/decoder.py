from __future__ import annotations

from pydantic import ValidationError

from nginx_plus_exporter.models.status import NginxStatus
from nginx_plus_exporter.services.errors import DecodeError


def decode_status(raw: bytes, uri: str = "") -> NginxStatus:
    """Parse a status document; malformed or mistyped JSON raises DecodeError."""
    try:
        return NginxStatus.model_validate_json(raw)
    except ValidationError as exc:
        # Invalid JSON surfaces as a ValidationError too (type json_invalid).
        source = uri or "<payload>"
        raise DecodeError(
            uri, f"cannot decode status from {source}: {exc.error_count()} error(s): {exc}"
        ) from exc
