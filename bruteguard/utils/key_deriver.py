"""Store key derivation from ordered identity parts."""

from __future__ import annotations

import base64
from collections.abc import Iterable
from hashlib import sha256

KeyPart = str | bytes | None


def _digest_b64(data: bytes) -> str:
    return base64.b64encode(sha256(data).digest()).decode("ascii")


def _as_bytes(part: str | bytes) -> bytes:
    return part if isinstance(part, bytes) else part.encode("utf-8")


def derive_key(parts: Iterable[KeyPart]) -> str:
    """Derive a fixed-length store key from identity parts.

    Every non-empty part is hashed on its own, the base64 digests are joined
    in order, and the joined string is hashed again. Empty parts are skipped
    entirely, so callers must keep a stable part order per key type
    (e.g. ``[ip, guard_name, username]``).

    Args:
        parts: Ordered parts such as client address, guard name, sub-key.

    Returns:
        Base64-encoded SHA-256 digest (44 characters).
    """
    joined = "".join(_digest_b64(_as_bytes(part)) for part in parts if part)
    return _digest_b64(joined.encode("ascii"))
