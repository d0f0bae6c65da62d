"""Shared type aliases and numeric helpers."""

from __future__ import annotations

from typing import TypeAlias

# JSON-like dict
JsonDict: TypeAlias = dict[str, object]

# (category, market_id)
CacheKey: TypeAlias = tuple[str, str]


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp a value into [lo, hi]."""
    return max(lo, min(hi, value))
