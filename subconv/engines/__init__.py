"""
Engines: Script (Python, RestrictedPython) for node filters.
"""

from subconv.engines.script import ScriptContext, ScriptRuntime

__all__ = [
    "ScriptContext",
    "ScriptRuntime",
]
