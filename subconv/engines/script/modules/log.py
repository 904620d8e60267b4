"""
`log` object for filter scripts.

Records go to a host logger. While the evaluator is calling `filter` for a
node, every record also carries `node` (the node's remark) so script output
can be matched to the node that produced it.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)


class ScriptLog:
    """info, warn, error, debug with %-style args, as in logging."""

    def __init__(self, target: logging.Logger, extra: dict[str, Any] | None = None) -> None:
        self._target = target
        self._extra = dict(extra or {})
        self._node: str | None = None

    @contextmanager
    def for_node(self, remark: str) -> Iterator[None]:
        previous = self._node
        self._node = remark
        try:
            yield
        finally:
            self._node = previous

    def _emit(self, level: int, msg: str, args: tuple[Any, ...]) -> None:
        extra = dict(self._extra)
        if self._node is not None:
            extra["node"] = self._node
        self._target.log(level, msg, *args, extra=extra or None)

    def info(self, msg: str, *args: Any) -> None:
        self._emit(logging.INFO, msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        self._emit(logging.WARNING, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        self._emit(logging.ERROR, msg, args)

    def debug(self, msg: str, *args: Any) -> None:
        self._emit(logging.DEBUG, msg, args)


def make_log_module(
    *,
    logger_instance: logging.Logger | None = None,
    extra: dict[str, Any] | None = None,
) -> ScriptLog:
    """Build the `log` object. extra is attached to every record."""
    return ScriptLog(logger_instance or logger, extra)
