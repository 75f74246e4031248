"""
sandbox.py — Compile caller-supplied formula text into a callable.

A formula is a Python expression that evaluates to a one-argument callable:

    lambda x: x * 2
    x => floor(sqrt(x) / 2)          (arrow shorthand, rewritten to a lambda)
    lambda xp: Math.floor(xp ** 0.5)

Each compilation gets a brand-new namespace: a fresh restricted ``__builtins__``
dict and a fresh ``math``/``Math`` object. Nothing from this module's globals,
the server, or a previous formula is reachable from the compiled code.

The syntax tree is checked before evaluation:
- no names starting with ``__`` and no attributes starting with ``_``
  (closes the usual ``().__class__.__base__`` walk to host objects)
- no ``.format`` / ``.format_map`` (format strings can read attributes too)

This is a namespacing boundary, not a hardened jail; the evaluator runs it in
a child process with time and memory ceilings.
"""

from __future__ import annotations

import ast
import builtins
import math
import re
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any, Callable, Dict, Optional

from .errors import FormulaCompileError, RequestLimitError

# ``x => expr`` or ``(x) => expr`` with an expression body
_ARROW_RE = re.compile(r"^\s*(?:\(\s*([A-Za-z_]\w*)\s*\)|([A-Za-z_]\w*))\s*=>\s*(.+?)\s*$", re.DOTALL)

_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "divmod", "enumerate", "filter", "float",
    "int", "len", "list", "map", "max", "min", "pow", "range", "reversed",
    "round", "sorted", "sum", "tuple", "zip",
)

_MATH_NAMES = (
    "acos", "acosh", "asin", "asinh", "atan", "atan2", "atanh", "ceil",
    "comb", "copysign", "cos", "cosh", "degrees", "e", "erf", "exp", "expm1",
    "fabs", "factorial", "floor", "fmod", "gamma", "gcd", "hypot", "inf",
    "isclose", "isfinite", "isinf", "isnan", "lgamma", "log", "log10",
    "log1p", "log2", "nan", "perm", "pi", "radians", "sin", "sinh", "sqrt",
    "tan", "tanh", "tau", "trunc",
)

_BLOCKED_ATTRIBUTES = {"format", "format_map"}
# frame / code / traceback introspection on generators and coroutines
_BLOCKED_ATTRIBUTE_PREFIXES = ("_", "gi_", "cr_", "ag_", "f_", "tb_", "co_")


@dataclass
class CompiledFormula:
    """A formula bound to its own namespace. Call it with one integer."""

    func: Callable[[Any], Any]
    source: str
    index: Optional[int] = None
    name: Optional[str] = None

    def __call__(self, x: int) -> Any:
        return self.func(x)


# ---------- source normalisation ----------

def normalize_source(source: str) -> str:
    """Flatten newlines and rewrite arrow shorthand into a lambda."""
    text = source.replace("\r\n", " ").replace("\r", " ").replace("\n", " ").strip()
    m = _ARROW_RE.match(text)
    if m:
        param = m.group(1) or m.group(2)
        body = m.group(3)
        text = f"lambda {param}: ({body})"
    return text


# ---------- namespace ----------

def _js_round(v):
    return math.floor(v + 0.5)


def _sign(v):
    if v > 0:
        return 1
    if v < 0:
        return -1
    return 0


def _make_math_namespace() -> SimpleNamespace:
    """Fresh math object per formula; JS-style aliases help ported formulas."""
    ns = SimpleNamespace(**{n: getattr(math, n) for n in _MATH_NAMES})
    ns.PI = math.pi
    ns.E = math.e
    ns.abs = abs
    ns.max = max
    ns.min = min
    ns.pow = pow
    ns.round = _js_round
    ns.sign = _sign
    return ns


def make_namespace() -> Dict[str, Any]:
    """Globals for one compiled formula. Built from scratch on every call."""
    safe_builtins = {n: getattr(builtins, n) for n in _SAFE_BUILTIN_NAMES}
    namespace: Dict[str, Any] = {"__builtins__": safe_builtins}
    namespace.update({n: getattr(math, n) for n in _MATH_NAMES})
    math_ns = _make_math_namespace()
    namespace["math"] = math_ns
    namespace["Math"] = math_ns
    return namespace


# ---------- validation ----------

class _FormulaValidator(ast.NodeVisitor):
    """Reject syntax that could reach host objects."""

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            raise ValueError(f"name '{node.id}' is not allowed")
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith(_BLOCKED_ATTRIBUTE_PREFIXES) or node.attr in _BLOCKED_ATTRIBUTES:
            raise ValueError(f"attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_arg(self, node: ast.arg) -> None:
        if node.arg.startswith("__"):
            raise ValueError(f"parameter '{node.arg}' is not allowed")
        self.generic_visit(node)


def validate_tree(tree: ast.AST) -> None:
    _FormulaValidator().visit(tree)


# ---------- compile ----------

def _label(index: Optional[int], name: Optional[str]) -> str:
    if index is None and name is None:
        return "Invalid function"
    if name is None:
        return f"Invalid function at index {index}"
    if index is None:
        return f"Invalid function {name!r}"
    return f"Invalid function at index {index} ({name!r})"


def compile_formula(
    source: str,
    index: Optional[int] = None,
    name: Optional[str] = None,
    max_length: Optional[int] = None,
) -> CompiledFormula:
    """
    Parse, validate and bind ``source`` in a fresh namespace.

    Raises FormulaCompileError when the text does not parse, uses blocked
    syntax, raises while being evaluated, or does not produce a callable.
    The message names the formula by index and name.
    """
    label = _label(index, name)

    if not isinstance(source, str):
        raise FormulaCompileError(f"{label}: source must be a string", index=index, name=name)
    if max_length and len(source) > max_length:
        raise RequestLimitError(f"{label}: source is longer than {max_length} characters")

    wrapped = f"({normalize_source(source)})"
    try:
        tree = ast.parse(wrapped, mode="eval")
        validate_tree(tree)
        code = compile(tree, "<formula>", "eval")
    except SyntaxError as e:
        raise FormulaCompileError(f"{label}: syntax error: {e.msg}", index=index, name=name) from None
    except (ValueError, RecursionError, MemoryError) as e:
        raise FormulaCompileError(f"{label}: {e}", index=index, name=name) from None

    try:
        func = eval(code, make_namespace())
    except Exception as e:
        raise FormulaCompileError(
            f"{label}: {type(e).__name__}: {e}", index=index, name=name
        ) from None

    if not callable(func):
        raise FormulaCompileError(f"{label}: result is not callable", index=index, name=name)

    return CompiledFormula(func=func, source=source, index=index, name=name)
