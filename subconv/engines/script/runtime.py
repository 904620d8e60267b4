"""
ScriptRuntime / ScriptContext: the engine boundary used by the node filter.

ScriptRuntime holds what is shared by every namespace it creates (the extra
modules from SCRIPT_EXTRA_MODULES, the log module). ScriptContext is one
isolated, persistent global namespace: eval(source) runs a program in it,
get_global_callable(name) reads a binding back, call(fn, *args) invokes it.
"""

import importlib
import logging
import re
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Callable

from subconv.core.config import settings
from subconv.core.errors import ScriptEvalError, ScriptThrownError

from .modules import make_log_module
from .sandbox import build_restricted_globals, compile_script

_LOG = logging.getLogger(__name__)

# Only allow top-level module names (e.g. math, ipaddress), no submodules
_SAFE_MODULE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_SCRIPT_LOGGER = logging.getLogger("subconv.script")


def _load_extra_modules() -> dict[str, Any]:
    """Import whitelisted extra modules named in SCRIPT_EXTRA_MODULES. Scripts cannot import; only these names are available."""
    modules: dict[str, Any] = {}
    raw = (settings.SCRIPT_EXTRA_MODULES or "").strip()
    if not raw:
        return modules
    for name in (s.strip() for s in raw.split(",") if s.strip()):
        if not _SAFE_MODULE_NAME_RE.match(name):
            _LOG.debug("Skipping invalid extra module name %r", name)
            continue
        try:
            modules[name] = importlib.import_module(name)
        except ImportError as e:
            _LOG.debug("Skipping extra module %r: %s", name, e)
    return modules


class ScriptRuntime:
    """
    Factory for isolated script namespaces.
    Extra modules are resolved once, when the runtime is created.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._extra_modules = _load_extra_modules()
        self.log = make_log_module(logger_instance=logger or _SCRIPT_LOGGER)

    def new_context(self) -> "ScriptContext":
        namespace = {"log": self.log, **self._extra_modules}
        return ScriptContext(self, build_restricted_globals(namespace))


class ScriptContext:
    """One global environment; bindings survive across eval() calls."""

    def __init__(self, runtime: ScriptRuntime, globals_: dict[str, Any]) -> None:
        self.runtime = runtime
        self._globals = globals_

    @contextmanager
    def enter(self) -> Iterator["ScriptContext"]:
        """
        Marks one evaluation scope (compile, lookup, per-node calls) and does nothing else.
        Not safe for concurrent entry; each ExtraSettings owns its own context.
        """
        yield self

    def eval(self, source: str, filename: str = "<filter>") -> None:
        """
        Compile and run source as a top-level program.
        Raises ScriptEvalError if it does not compile, ScriptThrownError if it raises.
        """
        try:
            code = compile_script(source, filename=filename)
        except SyntaxError as e:
            raise ScriptEvalError(str(e)) from e
        try:
            exec(code, self._globals)  # noqa: S102 - RestrictedPython compiled code
        except Exception as e:
            raise ScriptThrownError(f"{type(e).__name__}: {e}") from e

    def get_global_callable(self, name: str) -> Callable[..., Any] | None:
        fn = self._globals.get(name)
        return fn if callable(fn) else None

    def drop_global(self, name: str) -> None:
        self._globals.pop(name, None)

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        return fn(*args)

    def log_node(self, remark: str) -> AbstractContextManager[None]:
        """Tag script `log` records with the node being filtered."""
        return self.runtime.log.for_node(remark)
