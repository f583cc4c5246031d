"""Tests for the completion assembler.

Includes a property-based test of truncated-output concatenation via
Hypothesis.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gentask.exceptions import GenerationError, NoResultError
from gentask.generate.assembler import (
    assemble_completion,
    effective_model_config,
    wants_json,
)
from gentask.models.config import ModelConfig
from gentask.models.messages import ChatMessage
from gentask.models.signature import Signature
from tests.conftest import ScriptedService, result, run

HISTORY = [ChatMessage(role="user", content="Question: hi")]


class TestAssemble:
    def test_single_call(self):
        service = ScriptedService([result("Answer: a")])
        res = run(assemble_completion(service, HISTORY))
        assert res.content == "Answer: a"
        assert service.calls == 1

    def test_continues_while_truncated(self):
        service = ScriptedService([
            result("Answer: par", "length"),
            result("tial ans", "length"),
            result("wer", "stop"),
        ])
        res = run(assemble_completion(service, HISTORY))
        assert res.content == "Answer: partial answer"
        assert res.finish_reason == "stop"
        assert service.calls == 3

    def test_continuation_sees_partial_answer(self):
        service = ScriptedService([result("Answer: a", "length"), result("b")])
        run(assemble_completion(service, HISTORY))
        second = service.requests[1].messages
        assert second[-1].role == "assistant"
        assert second[-1].content == "Answer: a"
        assert len(service.requests[0].messages) == 1

    def test_ceiling_returns_accumulated(self):
        service = ScriptedService([result("x", "length")])
        res = run(assemble_completion(service, HISTORY, max_completions=4))
        assert res.content == "xxxx"
        assert res.finish_reason == "length"
        assert service.calls == 4

    def test_no_result(self):
        service = ScriptedService([None])
        with pytest.raises(NoResultError, match="No result found"):
            run(assemble_completion(service, HISTORY))

    def test_empty_history(self):
        service = ScriptedService([result()])
        with pytest.raises(GenerationError, match="No chat prompt found"):
            run(assemble_completion(service, []))
        assert service.calls == 0

    def test_forwards_ids_and_history_untouched(self):
        service = ScriptedService([result()])
        history = list(HISTORY)
        run(assemble_completion(service, history, session_id="s", trace_id="t"))
        assert service.ids == [("s", "t")]
        assert history == HISTORY

    @settings(max_examples=50, deadline=None)
    @given(
        chunks=st.lists(st.text(min_size=1, max_size=20), min_size=1, max_size=9),
    )
    def test_concatenation_property(self, chunks):
        script = [result(c, "length") for c in chunks[:-1]] + [result(chunks[-1], "stop")]
        service = ScriptedService(script)
        res = run(assemble_completion(service, HISTORY, max_completions=10))
        assert res.content == "".join(chunks)
        assert service.calls == len(chunks)


class TestJsonHint:
    def test_plain_fields_no_hint(self):
        sig = Signature.parse("q -> answer")
        assert not wants_json(sig)
        assert effective_model_config(sig, None) is None

    def test_array_field_hints(self):
        sig = Signature.parse("q -> tags:string[]")
        cfg = effective_model_config(sig, None)
        assert cfg.response_format == "json_object"

    def test_hint_merged_into_caller_config(self):
        sig = Signature.parse("q -> data:json")
        cfg = effective_model_config(sig, ModelConfig(temperature=0.1))
        assert cfg.temperature == 0.1
        assert cfg.response_format == "json_object"
