"""
gallery_relay.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Coordinate media resolution, object storage and the registry tables.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake storage/transports.
