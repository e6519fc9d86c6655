"""Application directory: enumerate apps and compose their summaries."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .categories import DEFAULT_CATEGORY
from .models import Event, Stat
from .stats import group_by_category

DAY_SECONDS = 24 * 60 * 60
TOP_EVENT_TYPES = 5
TOP_COUNTRIES = 10


@dataclass
class AppSummary:
    app_id: str
    event_count: int
    metric_count: int
    last_activity: Optional[int]
    categories: Dict[str, int] = field(default_factory=dict)


@dataclass
class CategoryTotal:
    category: str
    total: int


@dataclass
class EventTypeCount:
    event_type: str
    event_count: int


@dataclass
class CountryBreakdown:
    country: str
    event_count: int
    value_sum: int


@dataclass
class AppDashboard:
    app_id: str
    summary: AppSummary
    last_24h_events: int
    last_24h_value: int
    top_event_types: List[EventTypeCount] = field(default_factory=list)
    categories: List[CategoryTotal] = field(default_factory=list)
    top_countries: List[CountryBreakdown] = field(default_factory=list)


def list_apps(db: Session, with_stats: bool = False) -> Union[List[str], List[AppSummary]]:
    """Distinct app ids seen in the stats table, alphabetically."""

    app_ids = list(db.execute(select(Stat.app_id).distinct().order_by(Stat.app_id)).scalars())
    if not with_stats:
        return app_ids
    return [app_summary(db, app_id) for app_id in app_ids]


def app_summary(db: Session, app_id: str) -> AppSummary:
    event_count = db.execute(
        select(func.count()).select_from(Event).where(Event.app_id == app_id)
    ).scalar_one()
    metric_count = db.execute(
        select(func.count()).select_from(Stat).where(Stat.app_id == app_id)
    ).scalar_one()
    last_activity = db.execute(
        select(func.max(Event.timestamp)).where(Event.app_id == app_id)
    ).scalar_one_or_none()
    return AppSummary(
        app_id=app_id,
        event_count=event_count,
        metric_count=metric_count,
        last_activity=last_activity,
        categories=group_by_category(db, app_id),
    )


def app_dashboard(db: Session, app_id: str, now: Optional[int] = None) -> AppDashboard:
    now = int(time.time()) if now is None else now
    summary = app_summary(db, app_id)

    day_ago = now - DAY_SECONDS
    recent_count, recent_value = db.execute(
        select(func.count(Event.id), func.sum(Event.value)).where(
            Event.app_id == app_id, Event.timestamp >= day_ago, Event.timestamp <= now
        )
    ).one()

    week_ago = now - 7 * DAY_SECONDS
    event_count = func.count(Event.id).label("event_count")
    top_types = db.execute(
        select(Event.event_type, event_count)
        .where(Event.app_id == app_id, Event.timestamp >= week_ago, Event.timestamp <= now)
        .group_by(Event.event_type)
        .order_by(event_count.desc(), Event.event_type.asc())
        .limit(TOP_EVENT_TYPES)
    ).all()

    total = func.sum(Stat.value).label("total")
    category_rows = db.execute(
        select(Stat.category, total)
        .where(Stat.app_id == app_id)
        .group_by(Stat.category)
        .order_by(total.desc())
    ).all()

    country_count = func.count(Event.id).label("event_count")
    country_rows = db.execute(
        select(Event.country, country_count, func.sum(Event.value))
        .where(Event.app_id == app_id, Event.country.is_not(None))
        .group_by(Event.country)
        .order_by(country_count.desc(), Event.country.asc())
        .limit(TOP_COUNTRIES)
    ).all()

    return AppDashboard(
        app_id=app_id,
        summary=summary,
        last_24h_events=recent_count or 0,
        last_24h_value=recent_value or 0,
        top_event_types=[
            EventTypeCount(event_type=event_type, event_count=count)
            for event_type, count in top_types
        ],
        categories=[
            CategoryTotal(category=category or DEFAULT_CATEGORY, total=value or 0)
            for category, value in category_rows
        ],
        top_countries=[
            CountryBreakdown(country=country, event_count=count, value_sum=value or 0)
            for country, count, value in country_rows
        ],
    )
