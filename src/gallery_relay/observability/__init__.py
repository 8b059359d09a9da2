"""
gallery_relay.observability

Observability package.

Responsibilities:
- Structured logging configuration with secret redaction.
- Request context propagation (request id, client address) for log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Metrics/tracing exporters can be added here without touching upload or registry logic.
