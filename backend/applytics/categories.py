"""Derive a semantic category from a free-text event type."""
from __future__ import annotations

DEFAULT_CATEGORY = "general"


def categorize(event_type: str) -> str:
    """Return the category for ``event_type``.

    Rules are evaluated top to bottom and the first match wins, so
    ``error_on_login`` is an ``error`` rather than a ``user`` event.
    Matching is case sensitive.
    """

    if (
        event_type.startswith("purchase")
        or "payment" in event_type
        or "subscription" in event_type
    ):
        return "revenue"
    if event_type in ("install", "uninstall") or "update" in event_type:
        return "lifecycle"
    if _contains_any(event_type, ("view", "screen", "page")):
        return "engagement"
    if _contains_any(event_type, ("click", "tap", "swipe")):
        return "interaction"
    if _contains_any(event_type, ("error", "crash", "exception")):
        return "error"
    if _contains_any(event_type, ("user", "account", "login")):
        return "user"
    return DEFAULT_CATEGORY


def _contains_any(value: str, needles: tuple[str, ...]) -> bool:
    return any(needle in value for needle in needles)
