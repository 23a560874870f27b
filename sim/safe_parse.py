from __future__ import annotations
"""Defensive coercion of values read from save and balance files.

Each helper tries to interpret a value as a finite number (or a mapping of
resource kinds to finite numbers) and falls back to a default when that is
impossible. A warning is logged whenever coercion fails so malformed files
can be diagnosed without the simulation crashing.
"""

from typing import Any, Dict, Mapping
import math
import logging

logger = logging.getLogger(__name__)


def to_int(value: Any, default: int = 0) -> int:
    """Coerce ``value`` to ``int``.

    Booleans are rejected (they are ints in Python but never a count in a
    save file). Strings are stripped and parsed when they look like
    integers; finite floats are truncated.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if s and (s.isdigit() or (s[0] in {"+", "-"} and s[1:].isdigit())):
            return int(s)
    if value is None:
        return default
    logger.warning("to_int: coercing %r to default %r", value, default)
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite ``float`` or return ``default``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        f = float(value)
        if math.isfinite(f):
            return f
    elif isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            f = math.nan
        if math.isfinite(f):
            return f
    elif value is None:
        return default
    logger.warning("to_float: coercing %r to default %r", value, default)
    return default


def to_amounts(value: Any) -> Dict[str, float]:
    """Coerce a ``{resource: amount}`` mapping.

    Non-mapping input yields an empty dict. Entries whose amount cannot be
    read as a finite number are dropped with a warning instead of being
    replaced by zero, so a corrupt cost never silently becomes free.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logger.warning("to_amounts: expected mapping, got %r", value)
        return {}
    out: Dict[str, float] = {}
    for kind, raw in value.items():
        amount = to_float(raw, default=math.nan)
        if math.isnan(amount):
            logger.warning("to_amounts: dropping %r=%r", kind, raw)
            continue
        out[str(kind)] = amount
    return out
