"""
Database package.

Async SQLAlchemy engine, session factory and the declarative base
shared by every persistence model.
"""

from app.database.base import Base, TimestampMixin

__all__ = ["Base", "TimestampMixin"]
