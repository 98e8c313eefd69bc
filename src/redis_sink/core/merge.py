"""Layered configuration merging for write intents.

Every configurable field is resolved by consulting up to three layers in a
fixed order: the intent itself, the binding site defaults, then the global
defaults. The first layer holding a non-empty value wins.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TypeVar

from redis_sink.core.models import (
    GlobalDefaults,
    ResolvedWrite,
    SiteDefaults,
    WriteIntent,
    WriteOperation,
)
from redis_sink.errors import ResolutionError


T = TypeVar("T", str, timedelta)


def _is_set(value: object) -> bool:
    return value is not None and value != ""


def merge_value(
    item: T | None,
    site: T | None,
    default: T | None,
) -> T | None:
    """Return the first non-empty value in item > site > default order.

    Empty strings count as unset. The default is returned as-is when neither
    of the higher layers is set, so the result may itself be empty.

    Example:
        >>> merge_value("", "k2", "k3")
        'k2'
    """
    if _is_set(item):
        return item
    if _is_set(site):
        return site
    return default


def merge_operation(
    item: WriteOperation,
    site: WriteOperation,
    default: WriteOperation,
) -> WriteOperation:
    """Return the first operation that is not UNSET, falling back to SET."""
    for candidate in (item, site, default):
        if candidate is not WriteOperation.UNSET:
            return candidate
    return WriteOperation.SET_KEY_VALUE


def merge_flag(site: bool | None, default: bool) -> bool:
    """Return the site override when present, else the global flag."""
    return default if site is None else site


def resolve_write(
    intent: WriteIntent,
    site: SiteDefaults,
    defaults: GlobalDefaults,
    value: bytes | str,
) -> ResolvedWrite:
    """Merge an intent with its site and global defaults.

    Args:
        intent: The caller's write intent.
        site: Defaults of the binding site the intent was submitted through.
        defaults: Process-wide defaults.
        value: The already materialized wire value.

    Returns:
        The dispatch-ready write.

    Raises:
        ResolutionError: If no layer supplies a non-empty key.
    """
    key = merge_value(intent.key, site.key, defaults.key)
    if not key:
        raise ResolutionError("Destination key is empty after merging item, site and global")

    return ResolvedWrite(
        key=key,
        operation=merge_operation(intent.operation, site.operation, defaults.operation),
        # Connections are configured per site, never per item.
        connection_target=merge_value(None, site.connection, defaults.connection),
        time_to_live=merge_value(intent.time_to_live, site.time_to_live, defaults.time_to_live),
        value=value,
        increment_amount=intent.increment_amount,
    )
