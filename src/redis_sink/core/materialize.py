"""Conversion of write-intent payloads into Redis wire values."""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from redis_sink.core.models import BinaryPayload, ObjectPayload, Payload, TextPayload
from redis_sink.errors import MaterializationError

# Redis has no null value; an absent payload is written as an empty string.
EMPTY_VALUE = b""


def serialize_object(value: Any) -> str:
    """Serialize a structured value to deterministic JSON.

    Keys are sorted and separators are compact so identical input always
    yields identical text. Dataclass instances are converted with
    ``dataclasses.asdict()``.

    Raises:
        MaterializationError: If the value is not JSON serializable.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise MaterializationError(
            f"Cannot serialize {type(value).__name__} payload: {exc}"
        ) from exc


def materialize(payload: Payload | None) -> bytes | str:
    """Return the wire value for a payload variant."""
    match payload:
        case BinaryPayload(data=data):
            return data
        case ObjectPayload(value=value):
            return serialize_object(value)
        case TextPayload(text=text):
            return text
        case None:
            return EMPTY_VALUE
        case _:
            raise MaterializationError(f"Unsupported payload type: {type(payload).__name__}")
