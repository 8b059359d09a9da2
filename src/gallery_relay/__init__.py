"""
gallery_relay

Top-level package for the gallery relay service: upload delegations, guarded
media uploads and the community gallery registry.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal to avoid import-time side effects across the codebase.
