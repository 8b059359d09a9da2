"""
gallery_relay.identity

Server identity and capability delegation.

Responsibilities:
- Parse the agent signing key and the space delegation proof.
- Encode/decode UCAN delegations and their CAR archives.
- Mint short-lived upload delegations for browser clients.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package performs network I/O.
