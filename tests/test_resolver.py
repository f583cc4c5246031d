"""Tests for the output resolver, assertions, and function-call strategies."""

from __future__ import annotations

import pytest

from gentask.exceptions import AssertionFailure, ValidationFailure
from gentask.generate.resolver import (
    FUNCTION_ARGUMENTS_FIELD,
    FUNCTION_NAME_FIELD,
    Assertion,
    NativeFunctionCalls,
    OutputResolver,
    SimulatedFunctionCalls,
)
from gentask.models.messages import FunctionCall
from gentask.models.signature import Signature
from tests.conftest import result


def _resolver(asserts=None, strategy=None, sig=None) -> OutputResolver:
    return OutputResolver(
        sig or Signature.parse("q -> answer"),
        asserts if asserts is not None else [],
        strategy or NativeFunctionCalls(),
    )


class TestResolve:
    def test_values_and_empty_functions(self):
        out = _resolver().resolve(result("Answer: yes"))
        assert out == {"answer": "yes", "functions": []}

    def test_no_content_gives_empty_retval(self):
        calls = []
        resolver = _resolver([Assertion(lambda v: calls.append(v) or False, "never")])
        out = resolver.resolve(result(None))
        assert out == {"functions": []}
        assert calls == []

    def test_validation_failure_propagates(self):
        resolver = _resolver(sig=Signature.parse("q -> answer, reason"))
        with pytest.raises(ValidationFailure):
            resolver.resolve(result("Answer: yes"))


class TestAssertions:
    def test_failing_assertion_carries_retval(self):
        resolver = _resolver([Assertion(lambda v: v["answer"] == "no", "Say no", optional=True)])
        with pytest.raises(AssertionFailure) as exc_info:
            resolver.resolve(result("Answer: yes"))
        err = exc_info.value
        assert err.value == {"answer": "yes"}
        assert err.message == "Say no"
        assert err.optional is True

    def test_raising_predicate_normalized(self):
        def boom(values):
            raise ValueError("predicate exploded")

        resolver = _resolver([Assertion(boom, "unused")])
        with pytest.raises(AssertionFailure) as exc_info:
            resolver.resolve(result("Answer: yes"))
        assert exc_info.value.message == "predicate exploded"
        assert exc_info.value.value == {"answer": "yes"}
        assert exc_info.value.optional is False

    def test_falsy_without_message_ignored(self):
        resolver = _resolver([Assertion(lambda v: False)])
        assert resolver.resolve(result("Answer: yes"))["answer"] == "yes"

    def test_first_failure_wins(self):
        seen = []

        def second(values):
            seen.append("second")
            return False

        resolver = _resolver([
            Assertion(lambda v: False, "first"),
            Assertion(second, "second"),
        ])
        with pytest.raises(AssertionFailure, match="first"):
            resolver.resolve(result("Answer: yes"))
        assert seen == []

    def test_assertions_see_live_registration(self):
        asserts: list[Assertion] = []
        resolver = _resolver(asserts)
        asserts.append(Assertion(lambda v: False, "added later"))
        with pytest.raises(AssertionFailure, match="added later"):
            resolver.resolve(result("Answer: yes"))


class TestNativeStrategy:
    def test_reads_calls_from_result(self):
        call = FunctionCall(name="search", arguments='{"q": "x"}', id="c1")
        out = _resolver().resolve(result(None, calls=[call]))
        assert out["functions"] == [call]

    def test_prepare_leaves_signature_alone(self):
        sig = Signature.parse("q -> answer")
        NativeFunctionCalls().prepare(sig)
        assert [f.name for f in sig.output_fields] == ["answer"]


class TestSimulatedStrategy:
    def test_prepare_adds_optional_fields_once(self):
        sig = Signature.parse("q -> answer")
        strategy = SimulatedFunctionCalls()
        strategy.prepare(sig)
        strategy.prepare(sig)
        names = [f.name for f in sig.output_fields]
        assert names == ["answer", FUNCTION_NAME_FIELD, FUNCTION_ARGUMENTS_FIELD]
        assert all(f.is_optional for f in sig.output_fields[1:])

    def test_synthesizes_call_and_strips_fields(self):
        sig = Signature.parse("q -> answer?")
        strategy = SimulatedFunctionCalls()
        strategy.prepare(sig)
        resolver = _resolver(strategy=strategy, sig=sig)

        out = resolver.resolve(result(
            'Function Name: search\nFunction Arguments: {"q": "x"}'
        ))
        assert out == {
            "functions": [FunctionCall(name="search", arguments='{"q": "x"}')],
        }

    def test_no_function_name_no_call(self):
        sig = Signature.parse("q -> answer")
        strategy = SimulatedFunctionCalls()
        strategy.prepare(sig)
        out = _resolver(strategy=strategy, sig=sig).resolve(result("Answer: done"))
        assert out == {"answer": "done", "functions": []}

    def test_arguments_without_name_stripped(self):
        sig = Signature.parse("q -> answer")
        strategy = SimulatedFunctionCalls()
        strategy.prepare(sig)
        out = _resolver(strategy=strategy, sig=sig).resolve(
            result('Answer: x\nFunction Arguments: {"q": 1}')
        )
        assert out == {"answer": "x", "functions": []}
