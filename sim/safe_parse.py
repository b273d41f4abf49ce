from __future__ import annotations
"""Helpers for coercing persisted or user supplied values.

Every helper returns a caller supplied default instead of raising when the
value cannot be interpreted.  A warning is logged whenever real data had to
be discarded so malformed saves can be diagnosed without the simulation
stopping.  ``None`` is treated as "missing" and falls back silently.
"""

from typing import Any, List, Optional
import json
import math
import logging

logger = logging.getLogger(__name__)

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def to_int(value: Any, default: int = 0) -> int:
    """Coerce ``value`` to ``int``.

    Integers pass through, finite floats are truncated and strings holding an
    integer or a finite float are parsed.  ``bool`` is rejected because a
    stray ``True`` in a save almost always means a misplaced key.
    """
    if isinstance(value, bool):
        logger.warning("to_int: refusing bool %r, using %r", value, default)
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and _finite(value) is not None:
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if s[:1] in {"+", "-"} and s[1:].isdigit() or s.isdigit():
            return int(s)
        try:
            f = float(s)
        except ValueError:
            f = math.nan
        if _finite(f) is not None:
            return int(f)
    if value is None:
        return default
    logger.warning("to_int: coercing %r to default %r", value, default)
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite ``float``.

    ``nan`` and infinities count as malformed.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        f = float(value)
        if _finite(f) is not None:
            return f
    elif isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            f = math.nan
        if _finite(f) is not None:
            return f
    elif value is None:
        return default
    logger.warning("to_float: coercing %r to default %r", value, default)
    return default


def to_bool(value: Any, default: bool = False) -> bool:
    """Coerce ``value`` to ``bool`` accepting the usual textual spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE_WORDS:
            return True
        if s in _FALSE_WORDS:
            return False
    if value is None:
        return default
    logger.warning("to_bool: coercing %r to default %r", value, default)
    return default


def to_str_list(value: Any, sep: str = ";") -> List[str]:
    """Split a delimiter joined string into its non-empty, stripped parts."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    if not isinstance(value, str):
        logger.warning("to_str_list: expected text, got %r", value)
        return []
    return [part.strip() for part in value.split(sep) if part.strip()]


def to_json_list(value: Any) -> List[Any]:
    """Decode ``value`` as a JSON array, returning ``[]`` when it is not one."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    try:
        data = json.loads(value)
    except (TypeError, ValueError):
        logger.warning("to_json_list: undecodable payload %.60r", value)
        return []
    if not isinstance(data, list):
        logger.warning("to_json_list: expected a list, got %s", type(data).__name__)
        return []
    return data


def clamp(value: float, lo: float, hi: float) -> float:
    """Return ``value`` limited to ``[lo, hi]``."""
    return lo if value < lo else hi if value > hi else value
