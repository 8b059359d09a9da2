"""
gallery_relay.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models for the gallery registry, the community feed and the
  shared rate-limit counters.
- Engine/session setup and per-aggregate repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# SQLite (aiosqlite) is the default; any async SQLAlchemy backend can be swapped in
# through `GALLERY_DATABASE_URL` without touching services.
