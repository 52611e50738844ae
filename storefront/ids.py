"""
Identifier coercion and generation.

Identifiers are stored as strings. Values arriving from payloads, query
parameters or seed files may be numbers or strings; ``canonical_id`` maps
both forms onto the same string so ``1``, ``"1"`` and ``"01"`` compare equal.
"""

from __future__ import annotations

import secrets
from typing import Any, Callable, Optional


def canonical_id(value: Any) -> Optional[str]:
    """Return the canonical string form of ``value`` or ``None`` if it has none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if stripped.isdigit():
            return str(int(stripped))
        return stripped
    return None


def generate_id(is_taken: Callable[[str], bool]) -> str:
    """Draw random 6-digit identifiers until one is free."""
    while True:
        candidate = str(100000 + secrets.randbelow(900000))
        if not is_taken(candidate):
            return candidate
