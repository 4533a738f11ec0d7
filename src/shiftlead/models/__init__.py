"""SQLAlchemy ORM models."""

from shiftlead.models.attribution import AttributedOrderRecord
from shiftlead.models.base import Base, TimestampMixin

__all__ = [
    "AttributedOrderRecord",
    "Base",
    "TimestampMixin",
]
