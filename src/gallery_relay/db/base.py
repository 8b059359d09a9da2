"""
gallery_relay.db.base

SQLAlchemy declarative base shared by the registry, community and rate-limit models.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# --- Module Notes -----------------------------------------------------------
# `alembic/env.py` and `init_db` both read `Base.metadata`; models must import this Base.
