"""Database configuration and the atomic batch primitive for the event store."""
from __future__ import annotations

import logging
import os
from typing import Sequence

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql import Executable

from .errors import StorageError

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("APPLYTICS_DATABASE_URL", "sqlite:///./applytics.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    future=True,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


def execute_batch(db: Session, statements: Sequence[Executable]) -> None:
    """Execute ``statements`` in order as one transaction.

    Either every statement is committed or the transaction is rolled back and
    :class:`StorageError` is raised; callers never observe a partial batch.
    """

    try:
        for statement in statements:
            db.execute(statement)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Write batch of %d statements failed and was rolled back", len(statements))
        raise StorageError("Failed to apply write batch") from exc
