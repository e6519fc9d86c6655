"""Canonical counter names built from an event type and optional qualifier."""
from __future__ import annotations

from typing import Optional, Tuple

SEPARATOR = "."


def build_metric_key(event_type: str, qualifier: Optional[str] = None) -> str:
    if qualifier is None:
        return event_type
    return f"{event_type}{SEPARATOR}{qualifier}"


def split_metric_key(metric: str) -> Tuple[str, Optional[str]]:
    """Split ``metric`` on its first separator into ``(event_type, qualifier)``."""

    event_type, separator, qualifier = metric.partition(SEPARATOR)
    if not separator:
        return event_type, None
    return event_type, qualifier
