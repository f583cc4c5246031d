"""Tests for the function-call dispatcher."""

from __future__ import annotations

import pytest

from gentask.exceptions import FunctionError
from gentask.generate.dispatcher import dispatch_function_calls
from gentask.memory import Memory
from gentask.models.messages import FunctionCall
from gentask.toolkit.executor import FunctionProcessor
from gentask.toolkit.models import FunctionDefinition
from tests.conftest import run


class CallLog:
    """Function handlers that record the order they ran in."""

    def __init__(self) -> None:
        self.order: list[str] = []

    def processor(self, *names: str) -> FunctionProcessor:
        defs = []
        for name in names:
            def handler(_name=name, **kwargs):
                self.order.append(_name)
                return f"{_name} output"
            defs.append(FunctionDefinition(name=name, description=name, handler=handler))
        return FunctionProcessor(defs)


class TestTerminalTurns:
    def test_absent_functions_returned_unchanged(self, memory):
        retval = {"answer": "x"}
        assert run(dispatch_function_calls(retval, None, memory)) is retval

    def test_empty_functions_stripped(self, memory):
        out = run(dispatch_function_calls({"answer": "x", "functions": []}, None, memory))
        assert out == {"answer": "x"}

    def test_terminal_call_stops_dispatch(self, memory):
        log = CallLog()
        retval = {
            "answer": "x",
            "functions": [
                FunctionCall(name="search", id="c1"),
                FunctionCall(name="task_done", id="c2"),
                FunctionCall(name="fetch", id="c3"),
            ],
        }
        out = run(dispatch_function_calls(retval, log.processor("search", "fetch"), memory))

        assert out == {"answer": "x"}
        assert log.order == ["search"]
        assert [m.function_id for m in memory.history()] == ["c1"]

    def test_terminal_token_matched_as_substring(self, memory):
        retval = {"functions": [FunctionCall(name="mark_task_done_now")]}
        assert run(dispatch_function_calls(retval, None, memory)) == {}


class TestNonTerminalTurns:
    def test_executes_in_order_and_records_history(self, memory):
        log = CallLog()
        retval = {
            "functions": [
                FunctionCall(name="search", arguments='{"q": "a"}', id="c1"),
                FunctionCall(name="fetch", arguments={"url": "u"}, id="c2"),
            ],
        }
        out = run(dispatch_function_calls(
            retval, log.processor("search", "fetch"), memory, session_id="s1",
        ))

        assert out is None
        assert log.order == ["search", "fetch"]
        history = memory.history("s1")
        assert [(m.role, m.function_id, m.content) for m in history] == [
            ("function", "c1", "search output"),
            ("function", "c2", "fetch output"),
        ]
        assert history[0].name == "search"

    def test_simulated_call_gets_generated_id(self, memory):
        log = CallLog()
        retval = {"functions": [FunctionCall(name="search")]}
        run(dispatch_function_calls(retval, log.processor("search"), memory))
        (msg,) = memory.history()
        assert msg.function_id.startswith("call_")

    def test_no_processor_skips_calls(self, memory):
        retval = {"functions": [FunctionCall(name="search", id="c1")]}
        assert run(dispatch_function_calls(retval, None, memory)) is None
        assert memory.history() == []

    def test_function_error_propagates(self, memory):
        retval = {"functions": [FunctionCall(name="unknown", id="c1")]}
        with pytest.raises(FunctionError, match="unknown function"):
            run(dispatch_function_calls(retval, CallLog().processor("search"), memory))

    def test_custom_terminal_token(self):
        memory = Memory()
        retval = {"functions": [FunctionCall(name="finish")]}
        out = run(dispatch_function_calls(retval, None, memory, terminal="finish"))
        assert out == {}
