"""
sampler.py — Point sampler and series aggregator.

Sampling a formula at one point yields a ``Sample``: either a finite number or
``UNDEFINED``. Nothing a formula does at a single point (raise, return a
string, return NaN) escapes ``sample()``; it becomes a gap in the series.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .domain import build_domain
from .sandbox import compile_formula
from .utils import setup_logger

logger = setup_logger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class Sample:
    """One sampled level. ``value`` is None for the undefined case."""

    value: Optional[Number] = None

    @property
    def is_defined(self) -> bool:
        return self.value is not None


UNDEFINED = Sample()


@dataclass
class Series:
    name: str
    levels: List[Sample] = field(default_factory=list)

    @property
    def values(self) -> List[Optional[Number]]:
        """Levels as plain numbers, None for gaps (JSON null)."""
        return [s.value for s in self.levels]

    @property
    def undefined_count(self) -> int:
        return sum(1 for s in self.levels if not s.is_defined)

    def to_dict(self) -> dict:
        return {"name": self.name, "levels": self.values}


@dataclass
class BatchResult:
    domain: range
    series: List[Series] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "domain": list(self.domain),
            "series": [s.to_dict() for s in self.series],
        }


# ---------- point sampler ----------

def classify(value: Any) -> Sample:
    """
    Validate a formula's return value.
    ints and floats pass through unchanged; other real types become float.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return UNDEFINED
    try:
        as_float = float(value)
    except (OverflowError, TypeError, ValueError):
        # e.g. 10 ** 400 has no float representation
        return UNDEFINED
    if not math.isfinite(as_float):
        return UNDEFINED
    if type(value) is int or type(value) is float:
        return Sample(value)
    if isinstance(value, numbers.Integral):
        return Sample(int(value))
    return Sample(as_float)


def sample(fn: Callable[[int], Any], x: int) -> Sample:
    """Call ``fn(x)``; any failure or invalid result is UNDEFINED."""
    try:
        value = fn(x)
    except Exception:
        return UNDEFINED
    try:
        return classify(value)
    except Exception:
        return UNDEFINED


# ---------- aggregation ----------

def sample_domain(fn: Callable[[int], Any], domain: Iterable[int]) -> List[Sample]:
    return [sample(fn, x) for x in domain]


def build_series(
    name: str,
    source: str,
    domain: Sequence[int],
    index: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Series:
    """
    Compile ``source`` once and sample it at every domain point, in order.
    Raises FormulaCompileError if the formula cannot be compiled.
    """
    fn = compile_formula(source, index=index, name=name, max_length=max_length)
    series = Series(name=name, levels=sample_domain(fn, domain))
    gaps = series.undefined_count
    if gaps:
        logger.debug("Series %r: %d of %d point(s) undefined", name, gaps, len(domain))
    return series


def build_batch(
    formulas: Sequence[Tuple[str, str]],
    xp_max: int,
    max_length: Optional[int] = None,
) -> BatchResult:
    """
    Sample every ``(name, source)`` pair over one shared domain.
    The first formula that fails to compile aborts the whole batch.
    """
    domain = build_domain(xp_max)
    result = BatchResult(domain=domain)
    for idx, (name, source) in enumerate(formulas):
        result.series.append(build_series(name, source, domain, index=idx, max_length=max_length))
    return result
