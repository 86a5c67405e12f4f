"""Event ids, entry keys, payload fingerprints and the UTC clock reading.

Identifier kinds
----------------
1. Event ids: UUID v4 strings assigned once, when an event is built.
2. Entry keys: relationship identity keys (``person-role``, ``product``)
   joined with ``-``; pending entries carry a prefix on top.
3. Payload fingerprints: short SHA256 digests of type plus payload, logged
   in place of the payload itself.

Timestamps from :func:`utc_now` are always timezone-aware UTC.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any


def new_event_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def entry_key(*parts: str, prefix: str = "") -> str:
    """Identity key of a relationship entry, e.g. ``entry_key("P1", "R1")``.

    With *prefix* the key marks a synthetic entry added by a pending event.
    """
    key = "-".join(parts)
    return f"{prefix}-{key}" if prefix else key


def payload_fingerprint(event_type: str, payload: Mapping[str, Any], *, length: int = 16) -> str:
    """Deterministic digest of an event body, independent of key order.

    The type is part of the digest, so equal payloads of different event
    types never share a fingerprint.
    """
    raw = json.dumps({"type": event_type, "payload": dict(payload)}, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()[:length]
