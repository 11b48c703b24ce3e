#!/usr/bin/env python3
"""
Shared SQLAlchemy base for the auth models.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps, stored as naive UTC

Timestamps are filled on the Python side so that freshly inserted objects
can be serialized without a round trip; the server default covers rows
written outside the ORM.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time without tzinfo, matching what the columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if user passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id}>"
