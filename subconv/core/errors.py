"""
Errors raised while evaluating a node filter script.

Stage-level errors (engine init, script evaluation, missing `filter`) abort the
whole filter and leave the node list untouched. FilterCallError is per node:
it is logged and the node is dropped, it never reaches the caller.
"""


class FilterError(ValueError):
    """Base class for node filter failures."""

    pass


class ScriptEngineInitError(FilterError):
    """Raised when the script runtime or context cannot be constructed."""

    pass


class ScriptThrownError(FilterError):
    """Raised when the filter script raises during top-level evaluation."""

    pass


class ScriptEvalError(FilterError):
    """Raised when the filter script cannot be compiled."""

    pass


class MissingFilterFunctionError(FilterError):
    """Raised when the evaluated script binds no callable `filter`."""

    pass


class FilterCallError(FilterError):
    """Raised when calling `filter` for a single node fails."""

    pass
