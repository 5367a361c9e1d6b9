# Overview: Service-layer operations for identifiers; record ids and receipt numbers.

"""
Identifier Service

RECORD IDS: uuid4 hex, assigned when a record is first saved.

RECEIPT NUMBERS: {PREFIX}-{NNNNNN}-{XXX}
- PREFIX: COL for collections, SAL for sales
- NNNNNN: last six digits of the epoch-millisecond clock
- XXX: three random characters from A-Z0-9

The time part alone repeats every ~16.7 minutes, so each candidate is
checked against the existing receipts and redrawn on a clash.
"""

from __future__ import annotations

import secrets
import string
import time
import uuid
from typing import Callable

from ..validation import ConflictError


RECEIPT_PREFIXES = ("COL", "SAL")
RECEIPT_ALPHABET = string.ascii_uppercase + string.digits


def new_id() -> str:
    return uuid.uuid4().hex


def _candidate_receipt_number(prefix: str, now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    timestamp = str(now_ms)[-6:].zfill(6)
    suffix = "".join(secrets.choice(RECEIPT_ALPHABET) for _ in range(3))
    return f"{prefix}-{timestamp}-{suffix}"


def generate_receipt_number(
    prefix: str,
    *,
    is_taken: Callable[[str], bool] | None = None,
    attempts: int = 5,
) -> str:
    """
    Generate a receipt number not already in use.

    is_taken: callback answering whether a candidate already exists.
    Raises ConflictError if every attempt collides.
    """
    prefix = prefix.upper().strip()
    if prefix not in RECEIPT_PREFIXES:
        raise ValueError(f"Unknown receipt prefix: {prefix}")

    for _ in range(max(1, attempts)):
        candidate = _candidate_receipt_number(prefix)
        if is_taken is None or not is_taken(candidate):
            return candidate

    raise ConflictError(f"Could not allocate a unique {prefix} receipt number after {attempts} attempts")
