"""
domain.py — XP sample points.

The domain is an immutable ``range`` so every formula in a request can share it
without being able to change it.
"""

from typing import Any, Optional

from .errors import RequestLimitError

DEFAULT_XP_MAX = 2000
XP_MAX_POLICIES = {"reject", "clamp"}


def build_domain(xp_max: int) -> range:
    """Return the sample points 0, 1, ..., xp_max - 1 (empty for 0)."""
    if xp_max < 0:
        raise ValueError("xp_max must be >= 0")
    return range(xp_max)


def _coerce_int(raw: Any) -> Optional[int]:
    """Best-effort int parsing; None when the value is not a whole number."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return None
        try:
            return int(s)
        except ValueError:
            pass
        try:
            f = float(s)
        except ValueError:
            return None
        return int(f) if f.is_integer() else None
    return None


def resolve_xp_max(
    raw: Any,
    default: int = DEFAULT_XP_MAX,
    ceiling: int = 0,
    policy: str = "reject",
) -> int:
    """
    Turn the caller's xpMax into a domain size.

    Absent or invalid values (non-integers, booleans, negatives) fall back to
    ``default``. Zero is valid and yields an empty domain. Above ``ceiling``
    the value is either rejected or clamped, depending on ``policy``;
    a ceiling of 0 means no ceiling.
    """
    if policy not in XP_MAX_POLICIES:
        raise ValueError(f"Unknown xpMax policy: {policy!r}")

    value = _coerce_int(raw)
    if value is None or value < 0:
        value = default

    if ceiling and value > ceiling:
        if policy == "clamp":
            return ceiling
        raise RequestLimitError(f"xpMax {value} exceeds the limit of {ceiling}")
    return value
