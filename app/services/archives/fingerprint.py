# app/services/archives/fingerprint.py
"""
Integrity fingerprint over an archive snapshot.

Tamper evidence against accidental corruption, not a credential. The
snapshot triple is encoded canonically (sorted keys, compact separators,
ISO timestamps) before hashing, so key order never changes the digest.
"""

import hashlib
import json
from typing import Any, Optional, Sequence

from pydantic import BaseModel

# Hex characters kept from the SHA-256 digest
DIGEST_LENGTH = 32


def _plain(records: Optional[Sequence[Any]]) -> list:
    return [r.model_dump(mode="json") if isinstance(r, BaseModel) else r for r in records or []]


def canonical_snapshot(
    teams: Optional[Sequence[Any]],
    members: Optional[Sequence[Any]],
    payment_events: Optional[Sequence[Any]],
) -> bytes:
    """Stable byte encoding of the snapshot triple as it is persisted."""
    payload = {
        "teams": _plain(teams),
        "members": _plain(members),
        "payment_events": _plain(payment_events),
    }
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


def generate_data_hash(
    teams: Optional[Sequence[Any]],
    members: Optional[Sequence[Any]],
    payment_events: Optional[Sequence[Any]],
) -> str:
    """Short hex digest of the snapshot triple. Accepts typed records or plain dicts."""
    digest = hashlib.sha256(canonical_snapshot(teams, members, payment_events)).hexdigest()
    return digest[:DIGEST_LENGTH]


def verify_data_hash(
    expected: Optional[str],
    teams: Optional[Sequence[Any]],
    members: Optional[Sequence[Any]],
    payment_events: Optional[Sequence[Any]],
) -> bool:
    if not expected:
        return False
    return generate_data_hash(teams, members, payment_events) == expected
