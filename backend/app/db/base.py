"""SQLAlchemy declarative base for the engagement store models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for users, follows, posts and post views."""
