"""
Modules injected into the filter script namespace.
"""

from subconv.engines.script.modules.log import ScriptLog, make_log_module

__all__ = [
    "ScriptLog",
    "make_log_module",
]
