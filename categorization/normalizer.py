"""Merchant name canonicalization.

The normalized form is the join key for per-user rules and, once hashed,
for the community corpus.
"""

import hashlib
import re
from typing import List, Optional

MAX_MERCHANT_LENGTH = 100

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RUNS = re.compile(r"\s+")


def normalize_merchant(text: Optional[str]) -> str:
    """Canonicalize a merchant or transaction display string.

    Lower-cases, drops everything outside [a-z0-9 ], collapses whitespace
    to single spaces, trims and caps the length. Idempotent.

    Example:
        >>> normalize_merchant("  WHOLE FOODS #456  ")
        'whole foods 456'
    """
    if not text:
        return ""

    normalized = text.lower().strip()
    normalized = _DISALLOWED_CHARS.sub("", normalized)
    normalized = _WHITESPACE_RUNS.sub(" ", normalized)
    # Trim again: removed characters or the cut can leave edge spaces
    return normalized.strip()[:MAX_MERCHANT_LENGTH].strip()


def hash_merchant(normalized: str) -> str:
    """One-way SHA-256 hex digest of a normalized merchant string."""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def rule_lookup_keys(normalized: str) -> List[str]:
    """Keys to try, in order, when looking up a rule for `normalized`.

    The exact normalized merchant comes first. Feeds often append a store
    or terminal number ("whole foods 456"), so the merchant with trailing
    all-digit tokens removed is tried second.

    The fallback only reads the base key. Learning stores the full
    normalized merchant, so a rule learned from "starbucks 123" does not
    match "starbucks 456"; a rule stored as "starbucks" matches both.
    """
    if not normalized:
        return []

    keys = [normalized]
    tokens = normalized.split(" ")
    while len(tokens) > 1 and tokens[-1].isdigit():
        tokens.pop()
    base = " ".join(tokens)
    if base != normalized:
        keys.append(base)
    return keys
