from __future__ import annotations

import re

MAX_SEGMENT_LENGTH = 64

_DISALLOWED = re.compile(r"[^a-z0-9_-]+")


def sanitize_segment(value: str | int | None, fallback: str) -> str:
    """Lower-case, keep `[a-z0-9_-]`, trim dashes, cap length; empty -> fallback."""
    text = _DISALLOWED.sub("-", str(value if value is not None else "").strip().lower())
    text = text.strip("-")[:MAX_SEGMENT_LENGTH].strip("-")
    return text or fallback


def build_card_path_prefix(
    *,
    deck_id: str,
    deck_type: str,
    card_number: int,
    timestamp: int,
    request_id: str,
    card_index: int,
) -> str:
    return "/".join(
        [
            sanitize_segment(deck_id, "community"),
            sanitize_segment(deck_type, "deck"),
            f"card-{sanitize_segment(card_number, 'card')}",
            f"{sanitize_segment(timestamp, 'upload')}-{sanitize_segment(request_id, 'request')}-{card_index}",
        ]
    )


def frame_name(index: int, extension: str) -> str:
    return f"frame-{index}{extension}"


def gif_name(extension: str) -> str:
    return f"gif{extension}"


def video_name(extension: str) -> str:
    return f"video{extension}"
