from __future__ import annotations

from gallery_relay.errors import PayloadTooLargeError


class ByteBudget:
    """
    Aggregate byte ceiling for one upload request.

    `charge` reads and updates the running total without awaiting, so
    concurrent tasks on the same event loop cannot interleave between the
    comparison and the update.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    def ensure_available(self, declared: int | None = None) -> None:
        if self.used >= self.limit:
            raise PayloadTooLargeError(f"Upload exceeds max total media size of {self.limit} bytes")
        if declared is not None and declared > self.remaining:
            raise PayloadTooLargeError(f"Upload exceeds max total media size of {self.limit} bytes")

    def charge(self, size: int) -> int:
        self.used += size
        if self.used > self.limit:
            raise PayloadTooLargeError(f"Upload exceeds max total media size of {self.limit} bytes")
        return self.used
