"""
gallery_relay.uploads

Guarded media upload path.

Responsibilities:
- Admission: token check, rate limiting, schema and media-source policy.
- Media resolution under per-asset and per-request byte ceilings.
- Deterministic storage path construction.
"""

# Package marker.
