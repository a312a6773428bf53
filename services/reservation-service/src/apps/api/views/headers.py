# services/reservation-service/src/apps/api/views/headers.py
"""Request header helpers."""

import uuid
from typing import Optional


def actor_id(request) -> Optional[uuid.UUID]:
    """Caller id from the ``X-User-ID`` header, recorded as the history actor."""
    value = request.headers.get('X-User-ID')
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None
