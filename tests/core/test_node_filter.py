"""Unit tests for core.node_filter.run_node_filter."""

import logging
from unittest.mock import patch

import pytest

from subconv.core.errors import (
    MissingFilterFunctionError,
    ScriptEvalError,
    ScriptThrownError,
)
from subconv.core.node_filter import run_node_filter
from subconv.engines.script import ScriptContext, ScriptRuntime
from subconv.models import Proxy
from tests.utils.proxy import make_proxy, remarks

PORT_FILTER = "filter = lambda n: n.port > 0"


def _context() -> ScriptContext:
    return ScriptRuntime().new_context()


def _nodes() -> list[Proxy]:
    return [
        make_proxy("A", port=80),
        make_proxy("B", port=0),
        make_proxy("C", port=443),
    ]


class TestRunNodeFilterKeepDrop:
    def test_port_example(self) -> None:
        nodes = _nodes()
        run_node_filter(_context(), nodes, PORT_FILTER)
        assert remarks(nodes) == ["A", "C"]

    def test_filters_in_place(self) -> None:
        nodes = _nodes()
        original = nodes
        run_node_filter(_context(), nodes, PORT_FILTER)
        assert nodes is original

    def test_always_true_keeps_everything_in_order(self) -> None:
        nodes = _nodes()
        before = list(nodes)
        run_node_filter(_context(), nodes, "def filter(node):\n    return True\n")
        assert nodes == before
        assert all(a is b for a, b in zip(nodes, before))

    def test_always_false_empties(self) -> None:
        nodes = _nodes()
        run_node_filter(_context(), nodes, "def filter(node):\n    return False\n")
        assert nodes == []

    def test_deterministic(self) -> None:
        script = "def filter(node):\n    return re.search('^[AC]', node.remark) is not None\n"
        ctx = _context()
        first = _nodes()
        second = list(first)
        run_node_filter(ctx, first, script)
        run_node_filter(ctx, second, script)
        assert remarks(first) == remarks(second) == ["A", "C"]

    def test_script_sees_node_fields(self) -> None:
        nodes = [
            make_proxy("HK-01", udp=True),
            make_proxy("HK-02", udp=None),
            make_proxy("US-01", udp=True),
        ]
        script = (
            "def filter(node):\n"
            "    return node.remark.startswith('HK') and node.udp is True and node.type == 'ss'\n"
        )
        run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["HK-01"]

    def test_empty_node_list(self) -> None:
        nodes: list[Proxy] = []
        run_node_filter(_context(), nodes, PORT_FILTER)
        assert nodes == []

    def test_attribute_write_fails_and_drops(self) -> None:
        """Writes to the node view are blocked by the sandbox; the host nodes keep their values."""
        nodes = _nodes()
        before = list(nodes)
        script = "def filter(node):\n    node.port = 1\n    return True\n"
        run_node_filter(_context(), nodes, script)
        assert nodes == []
        assert [n.port for n in before] == [80, 0, 443]


class TestRunNodeFilterStageErrors:
    def test_top_level_raise_leaves_nodes_unchanged(self, caplog: pytest.LogCaptureFixture) -> None:
        nodes = _nodes()
        script = "raise ValueError('bad config')\ndef filter(node):\n    return False\n"
        with caplog.at_level(logging.ERROR, logger="subconv.core.node_filter"):
            with pytest.raises(ScriptThrownError, match="bad config"):
                run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["A", "B", "C"]
        assert "Script eval threw exception" in caplog.text

    def test_syntax_error_leaves_nodes_unchanged(self, caplog: pytest.LogCaptureFixture) -> None:
        nodes = _nodes()
        with caplog.at_level(logging.ERROR, logger="subconv.core.node_filter"):
            with pytest.raises(ScriptEvalError):
                run_node_filter(_context(), nodes, "def filter(node) return False")
        assert remarks(nodes) == ["A", "B", "C"]
        assert "Script eval error" in caplog.text

    def test_missing_filter_function(self, caplog: pytest.LogCaptureFixture) -> None:
        nodes = _nodes()
        with caplog.at_level(logging.ERROR, logger="subconv.core.node_filter"):
            with pytest.raises(MissingFilterFunctionError):
                run_node_filter(_context(), nodes, "def keep(node):\n    return False\n")
        assert remarks(nodes) == ["A", "B", "C"]
        assert "get function error" in caplog.text

    def test_filter_not_callable(self) -> None:
        nodes = _nodes()
        with pytest.raises(MissingFilterFunctionError):
            run_node_filter(_context(), nodes, "filter = False")
        assert remarks(nodes) == ["A", "B", "C"]

    def test_empty_script_has_no_filter(self, caplog: pytest.LogCaptureFixture) -> None:
        for script in ("", "   \n"):
            nodes = _nodes()
            caplog.clear()
            with caplog.at_level(logging.ERROR, logger="subconv.core.node_filter"):
                with pytest.raises(MissingFilterFunctionError):
                    run_node_filter(_context(), nodes, script)
            assert remarks(nodes) == ["A", "B", "C"]
            assert "get function error" in caplog.text

    def test_non_str_script_rejected(self) -> None:
        nodes = _nodes()
        with pytest.raises(ScriptEvalError, match="must be str"):
            run_node_filter(_context(), nodes, None)  # type: ignore[arg-type]
        assert remarks(nodes) == ["A", "B", "C"]

    def test_previous_filter_not_reused(self) -> None:
        ctx = _context()
        nodes = _nodes()
        run_node_filter(ctx, nodes, PORT_FILTER)
        with pytest.raises(MissingFilterFunctionError):
            run_node_filter(ctx, nodes, "x = 1")
        assert remarks(nodes) == ["A", "C"]


class TestRunNodeFilterPerCallFailures:
    def test_raise_for_one_node_drops_only_that_node(self, caplog: pytest.LogCaptureFixture) -> None:
        nodes = _nodes()
        script = (
            "def filter(node):\n"
            "    if node.port == 0:\n"
            "        raise ValueError('port zero')\n"
            "    return node.remark != 'C'\n"
        )
        with caplog.at_level(logging.ERROR, logger="subconv.core.node_filter"):
            run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["A"]
        assert "call function error" in caplog.text
        assert "port zero" in caplog.text
        assert "'B'" in caplog.text

    def test_non_bool_result_drops_node(self) -> None:
        nodes = _nodes()
        script = (
            "def filter(node):\n"
            "    if node.remark == 'A':\n"
            "        return 1\n"
            "    if node.remark == 'B':\n"
            "        return None\n"
            "    return True\n"
        )
        run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["C"]

    def test_wrong_arity_drops_all(self) -> None:
        nodes = _nodes()
        run_node_filter(_context(), nodes, "def filter(node, extra):\n    return True\n")
        assert nodes == []

    def test_marshal_failure_drops_node(self) -> None:
        nodes = _nodes()
        with patch.object(Proxy, "to_script_value", side_effect=TypeError("cannot marshal")):
            run_node_filter(_context(), nodes, PORT_FILTER)
        assert nodes == []

    def test_success_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        nodes = _nodes()
        with caplog.at_level(logging.INFO, logger="subconv.core.node_filter"):
            run_node_filter(_context(), nodes, PORT_FILTER)
        assert "Filter function evaluated successfully" in caplog.text
        assert "kept 2 of 3" in caplog.text


class TestRunNodeFilterScriptSyntax:
    def test_augmented_assignment(self) -> None:
        nodes = [
            make_proxy("A", udp=True),
            make_proxy("B", udp=True),
            make_proxy("C", udp=None),
        ]
        script = (
            "def filter(node):\n"
            "    score = 0\n"
            "    if node.udp:\n"
            "        score += 1\n"
            "    score *= 10\n"
            "    return score > 0\n"
        )
        run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["A", "B"]

    def test_augmented_assignment_on_list(self) -> None:
        nodes = _nodes()
        script = (
            "def filter(node):\n"
            "    tags = ['x']\n"
            "    tags += [node.remark]\n"
            "    return tags == ['x', node.remark]\n"
        )
        run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["A", "B", "C"]

    def test_print_in_filter(self) -> None:
        nodes = _nodes()
        script = "def filter(node):\n    print(node.remark)\n    return node.port != 0\n"
        run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["A", "C"]

    def test_star_args_and_unpacking(self) -> None:
        nodes = _nodes()
        script = (
            "def between(value, lo, hi):\n"
            "    return lo <= value <= hi\n"
            "def filter(node):\n"
            "    lo, hi = 1, 100\n"
            "    bounds = [lo, hi]\n"
            "    return between(node.port, *bounds)\n"
        )
        run_node_filter(_context(), nodes, script)
        assert remarks(nodes) == ["A"]

    def test_script_log_tagged_with_node(self, caplog: pytest.LogCaptureFixture) -> None:
        nodes = _nodes()
        script = "def filter(node):\n    log.info('port %s', node.port)\n    return True\n"
        with caplog.at_level(logging.INFO, logger="subconv.script"):
            run_node_filter(_context(), nodes, script)
        records = [r for r in caplog.records if r.name == "subconv.script"]
        assert [(r.node, r.getMessage()) for r in records] == [
            ("A", "port 80"),
            ("B", "port 0"),
            ("C", "port 443"),
        ]
