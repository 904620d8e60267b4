"""
Filter script engine (Python, RestrictedPython).

Exports: ScriptRuntime, ScriptContext, compile_script, build_restricted_globals.
"""

from .runtime import ScriptContext, ScriptRuntime
from .sandbox import build_restricted_globals, compile_script

__all__ = [
    "ScriptContext",
    "ScriptRuntime",
    "compile_script",
    "build_restricted_globals",
]
