"""
ID generators used across the guestbook:
- Local entry ids (UUID v4 hex, client side)
- ULID (lexicographically sortable, used by the file-backed log)
"""

from __future__ import annotations
import base64
import os
import time
import uuid


def generate_local_id() -> str:
    """Generate a client-side entry id."""
    return f"local-{uuid.uuid4().hex}"


def generate_ulid() -> str:
    """
    Generate a ULID string (no external dependency).
    Used as the remote id assigned by the file-backed log.
    """
    # timestamp part (48 bits)
    timestamp_ms = int(time.time() * 1000)
    ts_bytes = timestamp_ms.to_bytes(6, byteorder="big")

    # randomness part (80 bits)
    entropy = os.urandom(10)

    encoded = base64.b32encode(ts_bytes + entropy).decode("utf-8")
    return encoded.replace("=", "").lower()
