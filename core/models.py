"""Shared declarative base and column mixins."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_base, declared_attr

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.utcnow()


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class OrderMixin(TimestampMixin):
    """Audit timestamps plus an optimistic version counter.

    Status changes are check-then-set, so every UPDATE is guarded by
    ``version_id``; a concurrent writer holding a stale row gets
    ``StaleDataError`` instead of overwriting the other transition.
    """

    completed_at = Column(DateTime, nullable=True)
    version_id = Column(Integer, nullable=False, default=1)

    @declared_attr
    def __mapper_args__(cls):
        return {"version_id_col": cls.version_id}


def next_order_number(db, column, prefix: str, width: int = 4) -> str:
    """Return ``prefix`` + zero-padded (count + 1) among numbers sharing the prefix."""
    count = db.query(column).filter(column.like(f"{prefix}%")).count()
    return f"{prefix}{count + 1:0{width}d}"
