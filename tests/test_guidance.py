"""Tests for retry guidance fields."""

from __future__ import annotations

import json

from hypothesis import given, settings
from hypothesis import strategies as st

from gentask.exceptions import AssertionFailure, ValidationFailure
from gentask.generate.guidance import assertion_guidance, guidance_for, validation_guidance
from gentask.models.signature import Signature


def _sig() -> Signature:
    return Signature.parse("q -> answer, score:number")


class TestValidationGuidance:
    def test_past_field_and_instructions(self):
        field = _sig().output_fields[1]
        fields = validation_guidance(ValidationFailure(field, "lots", "Invalid number"))

        assert [f.name for f in fields] == ["past_score", "instructions"]
        assert fields[0].title == "Past Score"
        assert fields[0].description == "lots"
        assert fields[1].title == "Instructions"
        assert fields[1].description == "Invalid number"


class TestAssertionGuidance:
    def test_one_past_field_per_output(self):
        failure = AssertionFailure({"answer": "no", "score": 3}, "Score too low")
        fields = assertion_guidance(failure, _sig())

        assert [f.name for f in fields] == ["past_answer", "past_score", "instructions"]
        assert fields[0].description == json.dumps("no")
        assert fields[1].description == "3"
        assert fields[2].description == "Score too low"

    def test_missing_value_serialized_as_null(self):
        failure = AssertionFailure({"answer": "no"}, "bad")
        fields = assertion_guidance(failure, _sig())
        assert fields[1].description == "null"


class TestGuidanceFor:
    def test_dispatches_on_failure_type(self):
        sig = _sig()
        v = guidance_for(ValidationFailure(sig.output_fields[0], "", "missing"), sig)
        a = guidance_for(AssertionFailure({}, "bad"), sig)
        assert len(v) == 2
        assert len(a) == len(sig.output_fields) + 1


class TestGuidanceFreshness:
    @settings(max_examples=50)
    @given(
        messages=st.lists(st.text(min_size=1, max_size=30), min_size=1, max_size=6, unique=True),
        answers=st.lists(st.text(max_size=10), min_size=6, max_size=6),
    )
    def test_built_from_latest_failure_only(self, messages, answers):
        sig = _sig()
        failures = [
            AssertionFailure({"answer": answers[i], "score": i}, msg)
            for i, msg in enumerate(messages)
        ]
        fields = []
        for failure in failures:
            fields = guidance_for(failure, sig)

        last = len(messages) - 1
        assert len(fields) == len(sig.output_fields) + 1
        assert fields[-1].description == messages[-1]
        assert fields[0].description == json.dumps(answers[last])
        assert fields[1].description == str(last)
