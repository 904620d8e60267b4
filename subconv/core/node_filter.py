"""
Node filter runner.

Evaluates a user filter script in a ScriptContext and keeps the nodes for
which it returns True. The script is expected to define:

    def filter(node):
        return node.port > 0

Nodes are passed as attribute views (see Proxy.to_script_value). A node whose
call fails, or whose result is not a bool, is dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from subconv.core.errors import (
    FilterCallError,
    MissingFilterFunctionError,
    ScriptEvalError,
    ScriptThrownError,
)
from subconv.engines.script.runtime import ScriptContext
from subconv.models import Proxy

_LOG = logging.getLogger(__name__)

FILTER_FUNCTION_NAME = "filter"


def _call_filter(context: ScriptContext, fn: Callable[..., Any], node: Proxy) -> bool:
    try:
        value = node.to_script_value()
        with context.log_node(node.remark):
            ret = context.call(fn, value)
    except Exception as e:
        raise FilterCallError(f"{type(e).__name__}: {e}") from e
    if not isinstance(ret, bool):
        raise FilterCallError(f"filter must return bool, got {type(ret).__name__}")
    return ret


def run_node_filter(context: ScriptContext, nodes: list[Proxy], script: str) -> None:
    """
    Filter nodes in place with the script's `filter` function.

    - Script is not a str, fails to compile, or raises at top level: ScriptEvalError / ScriptThrownError, nodes unchanged.
    - No callable `filter` after evaluation (including an empty script): MissingFilterFunctionError, nodes unchanged.
    - Per-node call failures are logged and the node is dropped; the rest are still evaluated.
    """
    if not isinstance(script, str):
        _LOG.error("Script eval error: expected str source, got %s", type(script).__name__)
        raise ScriptEvalError(f"Filter script must be str, got {type(script).__name__}")

    with context.enter() as ctx:
        # A `filter` left over from a previous script must not satisfy this one
        ctx.drop_global(FILTER_FUNCTION_NAME)
        try:
            ctx.eval(script)
        except ScriptThrownError as e:
            _LOG.error("Script eval threw exception: %s", e)
            raise
        except ScriptEvalError as e:
            _LOG.error("Script eval error: %s", e)
            raise

        fn = ctx.get_global_callable(FILTER_FUNCTION_NAME)
        if fn is None:
            _LOG.error("Script eval get function error: no callable '%s' defined", FILTER_FUNCTION_NAME)
            raise MissingFilterFunctionError(
                f"Filter script must define function {FILTER_FUNCTION_NAME}(node)"
            )

        kept: list[Proxy] = []
        for node in nodes:
            try:
                ok = _call_filter(ctx, fn, node)
            except FilterCallError as e:
                _LOG.error("Script eval call function error for node %r: %s", node.remark, e)
                ok = False
            if ok:
                kept.append(node)

    total = len(nodes)
    nodes[:] = kept
    _LOG.info("Filter function evaluated successfully: kept %d of %d nodes", len(kept), total)
