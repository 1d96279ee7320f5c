"""Schema and application version metadata for serialized contracts."""

from __future__ import annotations

from typing import Any, Dict

from exceptions import FormatError

SCHEMA_VERSION = "1.0.0"
APP_VERSION = "0.3.0"


def make_envelope(kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a payload with schema/app versions for serialization."""
    return {
        "schema_version": SCHEMA_VERSION,
        "app_version": APP_VERSION,
        "kind": kind,
        "payload": payload,
    }


def open_envelope(kind: str, data: Any) -> Dict[str, Any]:
    """Return the payload of an envelope, checking it holds ``kind``."""
    if not isinstance(data, dict) or "payload" not in data:
        raise FormatError(f"Expecting a versioned '{kind}' document")
    if data.get("kind") != kind:
        raise FormatError(f"Expecting a '{kind}' document, got '{data.get('kind')}'")
    major = str(data.get("schema_version", "")).split(".")[0]
    if major != SCHEMA_VERSION.split(".")[0]:
        raise FormatError(
            f"Unsupported schema version {data.get('schema_version')} (expecting {SCHEMA_VERSION})"
        )
    return data["payload"]
