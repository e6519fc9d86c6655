"""Event recording: the only writer of the events and stats tables.

Each event becomes exactly two statements, an insert into the event log and an
upsert-increment of the matching counter, and every call submits its
statements to :func:`database.execute_batch` as a single transaction.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import insert, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable

from .categories import categorize
from .database import dialect_name, execute_batch
from .errors import CapacityError, StorageError, ValidationError
from .metric_key import build_metric_key
from .models import Event, Stat

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100


@dataclass
class RecordedEvent:
    app_id: str
    event_type: str
    qualifier: Optional[str]
    metric: str
    category: str
    value: int
    timestamp: int
    country: Optional[str]


@dataclass
class TrackResult:
    """Outcome of a single tracked event; ``value`` is the counter after commit."""

    app_id: str
    metric: str
    category: str
    value: int
    timestamp: int
    country: Optional[str]


@dataclass
class BatchResult:
    app_id: str
    processed: int
    events: List[RecordedEvent] = field(default_factory=list)


def _now() -> int:
    return int(time.time())


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def resolve_event(
    app_id: str,
    event_type: Optional[str],
    qualifier: Optional[str] = None,
    value: Optional[int] = 1,
    category: Optional[str] = None,
    timestamp: Optional[int] = None,
    country: Optional[str] = None,
) -> RecordedEvent:
    """Validate raw event fields and derive the category and metric key."""

    if not event_type:
        raise ValidationError("Missing event_type")
    if value is None:
        value = 1
    if not _is_int(value):
        raise ValidationError("value must be an integer")
    if timestamp is None:
        timestamp = _now()
    if not _is_int(timestamp):
        raise ValidationError("timestamp must be an integer number of seconds")

    # An empty qualifier would otherwise land under the bare event_type counter
    # while its rows never match a qualifier-less series query.
    qualifier = qualifier or None
    return RecordedEvent(
        app_id=app_id,
        event_type=event_type,
        qualifier=qualifier,
        metric=build_metric_key(event_type, qualifier),
        category=category or categorize(event_type),
        value=value,
        timestamp=timestamp,
        country=country or None,
    )


def _stat_upsert(dialect: str, event: RecordedEvent) -> Executable:
    values = {
        "app_id": event.app_id,
        "metric": event.metric,
        "category": event.category,
        "value": event.value,
        "last_updated": event.timestamp,
    }
    if dialect == "mysql":
        stmt = mysql.insert(Stat).values(**values)
        return stmt.on_duplicate_key_update(
            value=Stat.value + stmt.inserted.value,
            category=stmt.inserted.category,
            last_updated=stmt.inserted.last_updated,
        )

    if dialect == "sqlite":
        stmt = sqlite.insert(Stat).values(**values)
    elif dialect == "postgresql":
        stmt = postgresql.insert(Stat).values(**values)
    else:
        raise StorageError(f"Unsupported database dialect for counter upserts: {dialect}")
    return stmt.on_conflict_do_update(
        index_elements=[Stat.app_id, Stat.metric],
        set_={
            "value": Stat.value + stmt.excluded.value,
            "category": stmt.excluded.category,
            "last_updated": stmt.excluded.last_updated,
        },
    )


def build_event_statements(dialect: str, event: RecordedEvent) -> List[Executable]:
    """Return the event-log insert and the counter upsert for ``event``."""

    event_insert = insert(Event).values(
        app_id=event.app_id,
        event_type=event.event_type,
        event_category=event.category,
        qualifier=event.qualifier,
        value=event.value,
        timestamp=event.timestamp,
        country=event.country,
    )
    return [event_insert, _stat_upsert(dialect, event)]


def current_value(db: Session, app_id: str, metric: str) -> Optional[int]:
    stmt = select(Stat.value).where(Stat.app_id == app_id, Stat.metric == metric)
    return db.execute(stmt).scalar_one_or_none()


def record_event(
    db: Session,
    app_id: str,
    event_type: Optional[str],
    qualifier: Optional[str] = None,
    value: Optional[int] = 1,
    category: Optional[str] = None,
    timestamp: Optional[int] = None,
    country: Optional[str] = None,
) -> TrackResult:
    event = resolve_event(app_id, event_type, qualifier, value, category, timestamp, country)
    execute_batch(db, build_event_statements(dialect_name(db), event))

    # Read back after commit so concurrent increments from other callers show up.
    cumulative = current_value(db, app_id, event.metric)
    return TrackResult(
        app_id=app_id,
        metric=event.metric,
        category=event.category,
        value=cumulative if cumulative is not None else event.value,
        timestamp=event.timestamp,
        country=event.country,
    )


def record_batch(
    db: Session,
    app_id: str,
    events: Sequence[Mapping[str, Any]],
    default_country: Optional[str] = None,
) -> BatchResult:
    """Record up to :data:`MAX_BATCH_SIZE` events in one transaction.

    Every item is validated before any statement is built, so an invalid item
    anywhere in the batch leaves the store untouched.
    """

    if not events:
        raise ValidationError("Missing or empty events array")
    if len(events) > MAX_BATCH_SIZE:
        raise CapacityError(f"Batch size exceeds maximum ({MAX_BATCH_SIZE})")

    default_timestamp = _now()
    resolved: List[RecordedEvent] = []
    for index, item in enumerate(events):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Invalid batch item {index}")
        timestamp = item.get("timestamp")
        try:
            resolved.append(
                resolve_event(
                    app_id,
                    item.get("event_type"),
                    qualifier=item.get("qualifier"),
                    value=item.get("value"),
                    category=item.get("category"),
                    timestamp=default_timestamp if timestamp is None else timestamp,
                    country=item.get("country") or default_country,
                )
            )
        except ValidationError as exc:
            raise ValidationError(f"{exc} in batch item {index}") from exc

    dialect = dialect_name(db)
    statements: List[Executable] = []
    for event in resolved:
        statements.extend(build_event_statements(dialect, event))
    execute_batch(db, statements)

    logger.debug("Recorded batch of %d events for app %s", len(resolved), app_id)
    return BatchResult(app_id=app_id, processed=len(resolved), events=resolved)
