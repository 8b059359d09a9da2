"""
gallery_relay.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories (galleries, community cards, rate limits).
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories only flush; commits belong to services (or the rate-limit store).
