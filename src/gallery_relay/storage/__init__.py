"""
gallery_relay.storage

Object storage boundary for uploaded media.

Responsibilities:
- Define the `StorageBackend` protocol.
- Provide a Supabase Storage client and a local-directory backend.
"""

# Package marker; backends are built via `gallery_relay.storage.factory`.
