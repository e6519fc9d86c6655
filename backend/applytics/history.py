"""Read access to the raw event log."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Event

DEFAULT_HISTORY_SECONDS = 24 * 60 * 60
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100


@dataclass
class EventRecord:
    id: int
    event_type: str
    event_category: str
    qualifier: Optional[str]
    value: int
    country: Optional[str]
    timestamp: int

    @classmethod
    def from_model(cls, event: Event) -> "EventRecord":
        return cls(
            id=event.id,
            event_type=event.event_type,
            event_category=event.event_category,
            qualifier=event.qualifier,
            value=event.value,
            country=event.country,
            timestamp=event.timestamp,
        )


@dataclass
class EventHistory:
    app_id: str
    from_ts: int
    count: int
    events: List[EventRecord] = field(default_factory=list)


def list_events(
    db: Session,
    app_id: str,
    event_type: Optional[str] = None,
    category: Optional[str] = None,
    country: Optional[str] = None,
    from_ts: Optional[int] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
    now: Optional[int] = None,
) -> EventHistory:
    """Newest-first events since ``from_ts`` (default: the last 24 hours)."""

    if from_ts is None:
        now = int(time.time()) if now is None else now
        from_ts = now - DEFAULT_HISTORY_SECONDS
    limit = min(MAX_HISTORY_LIMIT, max(1, limit))

    stmt = select(Event).where(Event.app_id == app_id, Event.timestamp >= from_ts)
    if event_type:
        stmt = stmt.where(Event.event_type == event_type)
    if category:
        stmt = stmt.where(Event.event_category == category)
    if country:
        stmt = stmt.where(Event.country == country)
    stmt = stmt.order_by(Event.timestamp.desc(), Event.id.desc()).limit(limit)

    events = [EventRecord.from_model(event) for event in db.execute(stmt).scalars()]
    return EventHistory(app_id=app_id, from_ts=from_ts, count=len(events), events=events)


def recent_events(db: Session, app_id: str, limit: int = 5) -> List[EventRecord]:
    stmt = (
        select(Event)
        .where(Event.app_id == app_id)
        .order_by(Event.timestamp.desc(), Event.id.desc())
        .limit(limit)
    )
    return [EventRecord.from_model(event) for event in db.execute(stmt).scalars()]
