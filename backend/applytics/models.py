"""SQLAlchemy models for the raw event log and cumulative stats."""
from __future__ import annotations

from sqlalchemy import BigInteger, Column, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

from .categories import DEFAULT_CATEGORY

Base = declarative_base()


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_app", "app_id", "event_type", "qualifier"),
        Index("idx_events_category", "app_id", "event_category"),
        Index("idx_events_country", "app_id", "country", "timestamp"),
    )

    id = Column(Integer, primary_key=True, index=True)
    app_id = Column(String(128), nullable=False)
    event_type = Column(String(128), nullable=False)
    event_category = Column(String(64), nullable=False, default=DEFAULT_CATEGORY)
    qualifier = Column(String(255), nullable=True)
    value = Column(BigInteger, nullable=False, default=1)
    timestamp = Column(BigInteger, nullable=False, index=True)
    country = Column(String(8), nullable=True)


class Stat(Base):
    __tablename__ = "stats"
    __table_args__ = (
        UniqueConstraint("app_id", "metric", name="uq_stats_app_metric"),
        Index("idx_stats_category", "app_id", "category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    app_id = Column(String(128), nullable=False)
    metric = Column(String(384), nullable=False)
    category = Column(String(64), nullable=False, default=DEFAULT_CATEGORY)
    value = Column(BigInteger, nullable=False, default=0)
    last_updated = Column(BigInteger, nullable=False)
