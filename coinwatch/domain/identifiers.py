"""Classification of raw account identifiers.

Accounts are keyed by a UUID surrogate. Records migrated from the previous
document store also carry their 24-character hex object id, and clients may
still address them that way. Parsing happens up front so the store can pick
the right column instead of probing with failing conversions.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Union

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


@dataclass(frozen=True, slots=True)
class SurrogateKey:
    value: str


@dataclass(frozen=True, slots=True)
class NativeKey:
    value: str


@dataclass(frozen=True, slots=True)
class MalformedKey:
    raw: str


AccountKey = Union[SurrogateKey, NativeKey, MalformedKey]


def parse_account_key(raw: str) -> AccountKey:
    """Classify ``raw`` as a surrogate UUID, a legacy object id, or neither."""
    candidate = (raw or "").strip()
    if _OBJECT_ID_RE.match(candidate):
        return NativeKey(candidate.lower())
    try:
        return SurrogateKey(str(uuid.UUID(candidate)))
    except ValueError:
        return MalformedKey(raw)
