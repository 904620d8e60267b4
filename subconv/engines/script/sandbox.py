"""
RestrictedPython sandbox for filter scripts.

Allowed: safe builtins (dict, list, str, int, bool, len, any, all, ...),
json, re, and context objects (log).

Blocked: open, exec, eval, __import__, compile, os, subprocess, etc.
"""

import builtins
import json
import operator
import re
from typing import Any

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)
from RestrictedPython.PrintCollector import PrintCollector

# Exposed as top-level names even when safe_builtins lacks them
_COMMON_BUILTINS = (
    "list",
    "dict",
    "set",
    "tuple",
    "len",
    "range",
    "min",
    "max",
    "sum",
    "abs",
    "sorted",
    "any",
    "all",
    "enumerate",
)

# `x op= y` rebinds x to `x op y`; in-place variants would mutate shared objects
_INPLACE_OPERATORS = {
    "+=": operator.add,
    "-=": operator.sub,
    "*=": operator.mul,
    "/=": operator.truediv,
    "//=": operator.floordiv,
    "%=": operator.mod,
    "**=": operator.pow,
    "<<=": operator.lshift,
    ">>=": operator.rshift,
    "&=": operator.and_,
    "|=": operator.or_,
    "^=": operator.xor,
}


def _inplacevar(op: str, target: Any, value: Any) -> Any:
    """`x op= y` on a name. Rebinds with the plain operator; never mutates target in place."""
    fn = _INPLACE_OPERATORS.get(op)
    if fn is None:
        raise ValueError(f"Operator {op!r} is not allowed in filter scripts")
    return fn(target, value)


def _apply(fn: Any, *args: Any, **kwargs: Any) -> Any:
    """Calls with *args/**kwargs."""
    return fn(*args, **kwargs)


def _make_guard_globals() -> dict[str, Any]:
    """Guards and helpers required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplacevar,
        "_apply_": _apply,
        # print() output is collected per function and discarded unless `printed` is read
        "_print_": PrintCollector,
    }


def _make_extra_globals() -> dict[str, Any]:
    """Extra safe symbols: json, re (for matching remarks/hostnames)."""
    return {
        "json": json,
        "re": re,
    }


def compile_script(script: str, filename: str = "<filter>") -> Any:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    Returns a code object suitable for exec(bytecode, globals).
    """
    code = compile_restricted(script, filename, "exec")
    if code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    return code


def build_restricted_globals(context_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Build the globals dict for exec(compiled, globals): safe builtins, guards,
    extra (json, re), and context (log, extra modules).
    """
    safe = dict(safe_builtins)
    g: dict[str, Any] = {
        "__builtins__": safe,
        "__name__": "filter_script",
    }
    g.update(_make_guard_globals())
    g.update(_make_extra_globals())
    for name in _COMMON_BUILTINS:
        obj = safe.get(name, getattr(builtins, name, None))
        if obj is not None:
            g[name] = obj
    g.update(context_dict)
    return g
