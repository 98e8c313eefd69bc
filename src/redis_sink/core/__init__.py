"""Write-intent models, configuration merging and value materialization."""

from redis_sink.core.materialize import materialize, serialize_object
from redis_sink.core.merge import merge_flag, merge_operation, merge_value, resolve_write
from redis_sink.core.models import (
    BinaryPayload,
    FlushResult,
    FlushStatus,
    GlobalDefaults,
    ObjectPayload,
    Payload,
    ResolvedWrite,
    SiteDefaults,
    TextPayload,
    WriteIntent,
    WriteOperation,
    select_payload,
)

__all__ = [
    # Models
    "BinaryPayload",
    "FlushResult",
    "FlushStatus",
    "GlobalDefaults",
    "ObjectPayload",
    "Payload",
    "ResolvedWrite",
    "SiteDefaults",
    "TextPayload",
    "WriteIntent",
    "WriteOperation",
    "select_payload",
    # Merging
    "merge_flag",
    "merge_operation",
    "merge_value",
    "resolve_write",
    # Materialization
    "materialize",
    "serialize_object",
]
