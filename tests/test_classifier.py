"""Tests for EventClassifier frame classification."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import pytest

from vaultchat.session.ids import counter_ids
from vaultchat.session.models import (
    AssistantEvent,
    OtherBlock,
    ResultEvent,
    SystemEvent,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserEvent,
)
from vaultchat.stream.classifier import EventClassifier, FrameParseError

FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)


@pytest.fixture()
def classifier() -> EventClassifier:
    return EventClassifier(id_factory=counter_ids(), clock=lambda: FIXED_NOW)


def _frame(**fields: Any) -> str:
    return json.dumps(fields)


class TestSystemFrames:
    def test_init_carries_session(self, classifier: EventClassifier) -> None:
        event = classifier.classify(
            '{"type":"system","subtype":"init","session_id":"s1"}'
        )
        assert isinstance(event, SystemEvent)
        assert event.subtype == "init"
        assert event.session_id == "s1"
        assert event.has_wire_session is True
        assert event.uuid == "system-1"
        assert event.timestamp == FIXED_NOW

    def test_init_without_session_gets_placeholder(
        self, classifier: EventClassifier
    ) -> None:
        event = classifier.classify(_frame(type="system", subtype="init"))
        assert isinstance(event, SystemEvent)
        assert event.session_id.startswith("session-")
        assert event.has_wire_session is False

    def test_other_system_subtypes_ignored(self, classifier: EventClassifier) -> None:
        assert classifier.classify(_frame(type="system", subtype="compact")) is None


class TestMessageFrames:
    def test_assistant_text_and_tool_use(self, classifier: EventClassifier) -> None:
        frame = _frame(
            type="assistant",
            session_id="s1",
            message={
                "id": "msg_1",
                "model": "claude-sonnet",
                "content": [
                    {"type": "text", "text": "Reading it now."},
                    {"type": "tool_use", "id": "tu_1", "name": "Read",
                     "input": {"file_path": "notes.md"}},
                ],
                "usage": {"input_tokens": 10, "output_tokens": 5},
            },
        )
        event = classifier.classify(frame)

        assert isinstance(event, AssistantEvent)
        assert event.session_id == "s1"
        assert event.uuid.startswith("assistant-")
        assert event.message.role == "assistant"
        assert event.message.usage is not None
        assert event.message.usage.output_tokens == 5
        text, tool = event.message.content
        assert isinstance(text, TextBlock)
        assert text.text == "Reading it now."
        assert isinstance(tool, ToolUseBlock)
        assert tool.name == "Read"
        assert tool.input == {"file_path": "notes.md"}

    def test_user_tool_result(self, classifier: EventClassifier) -> None:
        frame = _frame(
            type="user",
            session_id="s1",
            message={
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "tu_1",
                     "content": "# Notes", "is_error": False},
                ],
            },
        )
        event = classifier.classify(frame)

        assert isinstance(event, UserEvent)
        assert event.is_user_input is False
        assert event.uuid.startswith("tool-result-")
        (block,) = event.message.content
        assert isinstance(block, ToolResultBlock)
        assert block.tool_use_id == "tu_1"
        assert block.content == "# Notes"

    def test_unknown_block_type_kept(self, classifier: EventClassifier) -> None:
        frame = _frame(
            type="assistant",
            message={"content": [{"type": "thinking", "thinking": "hmm"}]},
        )
        event = classifier.classify(frame)

        assert isinstance(event, AssistantEvent)
        (block,) = event.message.content
        assert isinstance(block, OtherBlock)
        assert block.type == "thinking"

    def test_message_missing_is_ignored(self, classifier: EventClassifier) -> None:
        assert classifier.classify(_frame(type="assistant")) is None

    def test_message_not_an_object(self, classifier: EventClassifier) -> None:
        with pytest.raises(FrameParseError, match="'message' must be an object"):
            classifier.classify(_frame(type="assistant", message="hello"))

    def test_invalid_role_rejected(self, classifier: EventClassifier) -> None:
        frame = _frame(type="assistant", message={"role": "system", "content": []})
        with pytest.raises(FrameParseError, match="invalid 'assistant' event"):
            classifier.classify(frame)

    def test_string_content_becomes_text_block(
        self, classifier: EventClassifier
    ) -> None:
        event = classifier.classify(
            _frame(type="user", message={"role": "user", "content": "plain reply"})
        )
        assert isinstance(event, UserEvent)
        assert event.message.content == [TextBlock(text="plain reply")]

    def test_null_content_is_empty(self, classifier: EventClassifier) -> None:
        event = classifier.classify(_frame(type="assistant", message={"content": None}))
        assert isinstance(event, AssistantEvent)
        assert event.message.content == []

    @pytest.mark.parametrize(
        "block",
        [
            {"type": "tool_use", "name": "Read"},
            {"type": "tool_use", "id": "tu_1"},
            {"type": "tool_use", "id": "tu_1", "name": "Bash", "input": "ls -la"},
            {"type": "tool_use", "id": "tu_1", "name": "Edit", "input": [1, 2]},
        ],
    )
    def test_partial_tool_use_kept(
        self, classifier: EventClassifier, block: dict[str, Any]
    ) -> None:
        frame = _frame(
            type="assistant",
            message={"content": [{"type": "text", "text": "Running."}, block]},
        )
        event = classifier.classify(frame)

        assert isinstance(event, AssistantEvent)
        text, tool = event.message.content
        assert isinstance(text, TextBlock)
        assert isinstance(tool, ToolUseBlock)
        assert tool.id == block.get("id", "")
        assert tool.name == block.get("name", "")
        if "input" in block:
            assert tool.input == block["input"]

    def test_untyped_block_kept_as_other(self, classifier: EventClassifier) -> None:
        event = classifier.classify(
            _frame(type="assistant", message={"content": [{"data": 1}]})
        )
        assert isinstance(event, AssistantEvent)
        (block,) = event.message.content
        assert isinstance(block, OtherBlock)
        assert block.type == "unknown"


class TestResultFrames:
    def test_defaults(self, classifier: EventClassifier) -> None:
        event = classifier.classify(
            '{"type":"result","result":"Done","session_id":"s1"}'
        )
        assert isinstance(event, ResultEvent)
        assert event.result == "Done"
        assert event.session_id == "s1"
        assert event.subtype == "success"
        assert event.duration_ms == 0
        assert event.duration_api_ms == 0
        assert event.is_error is False
        assert event.num_turns == 1
        assert event.total_cost_usd is None

    def test_explicit_fields(self, classifier: EventClassifier) -> None:
        event = classifier.classify(
            _frame(
                type="result",
                subtype="error_max_turns",
                duration_ms=1500,
                duration_api_ms=1200,
                is_error=True,
                num_turns=4,
                total_cost_usd=0.0123,
            )
        )
        assert isinstance(event, ResultEvent)
        assert event.subtype == "error_max_turns"
        assert event.duration_ms == 1500
        assert event.duration_api_ms == 1200
        assert event.is_error is True
        assert event.num_turns == 4
        assert event.total_cost_usd == pytest.approx(0.0123)

    def test_null_fields_use_defaults(self, classifier: EventClassifier) -> None:
        event = classifier.classify(
            _frame(type="result", duration_ms=None, num_turns=None)
        )
        assert isinstance(event, ResultEvent)
        assert event.duration_ms == 0
        assert event.num_turns == 1

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(1234.6, 1235), (-5, 0), ("12", 0), (True, 0), (float("inf"), 0)],
    )
    def test_bad_duration_falls_back_per_field(
        self, classifier: EventClassifier, raw: Any, expected: int
    ) -> None:
        frame = json.dumps(
            {"type": "result", "duration_ms": raw, "num_turns": 3, "result": "Done"}
        )
        event = classifier.classify(frame)
        assert isinstance(event, ResultEvent)
        assert event.duration_ms == expected
        assert event.num_turns == 3
        assert event.result == "Done"

    def test_wrong_typed_fields_use_defaults(self, classifier: EventClassifier) -> None:
        event = classifier.classify(
            _frame(
                type="result",
                subtype=7,
                is_error="yes",
                num_turns=None,
                result={"text": "odd"},
                total_cost_usd="free",
                duration_api_ms=250,
            )
        )
        assert isinstance(event, ResultEvent)
        assert event.subtype == "success"
        assert event.is_error is False
        assert event.num_turns == 1
        assert event.result is None
        assert event.total_cost_usd is None
        assert event.duration_api_ms == 250


class TestParseErrors:
    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            '{"type":"assistant"',
            "[1, 2, 3]",
            '"just a string"',
            '{"subtype":"init"}',
            '{"type":""}',
            '{"type":42}',
        ],
    )
    def test_malformed_frames_raise(
        self, classifier: EventClassifier, frame: str
    ) -> None:
        with pytest.raises(FrameParseError) as exc_info:
            classifier.classify(frame)
        assert exc_info.value.frame == frame

    def test_invalid_json_chains_cause(self, classifier: EventClassifier) -> None:
        with pytest.raises(FrameParseError) as exc_info:
            classifier.classify("{oops")
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_preview_is_truncated(self) -> None:
        err = FrameParseError("x" * 500, "bad")
        assert len(err.preview) == 200

    def test_unknown_type_ignored(self, classifier: EventClassifier) -> None:
        assert classifier.classify(_frame(type="stream_event")) is None

    def test_interspersed_malformed_lines_keep_order(
        self, classifier: EventClassifier
    ) -> None:
        frames = [
            '{"type":"system","subtype":"init","session_id":"s1"}',
            "garbage",
            _frame(type="assistant", message={"content": [{"type": "text", "text": "hi"}]}),
            "[]",
            '{"no_type":true}',
            '{"type":"result","result":"Done"}',
        ]
        outcomes: list[str] = []
        for frame in frames:
            try:
                event = classifier.classify(frame)
            except FrameParseError:
                outcomes.append("parse_error")
            else:
                assert event is not None
                outcomes.append(event.type)

        assert outcomes == [
            "system",
            "parse_error",
            "assistant",
            "parse_error",
            "parse_error",
            "result",
        ]


class TestDeterministicIds:
    def test_counter_ids_are_sequential(self) -> None:
        classifier = EventClassifier(id_factory=counter_ids(), clock=lambda: FIXED_NOW)
        first = classifier.classify('{"type":"system","subtype":"init","session_id":"s"}')
        second = classifier.classify('{"type":"result","session_id":"s"}')
        assert first is not None and second is not None
        assert (first.uuid, second.uuid) == ("system-1", "result-2")


class TestDeepNesting:
    def test_deeply_nested_json_is_a_parse_error(
        self, classifier: EventClassifier
    ) -> None:
        frame = '{"type":"x","v":' + "[" * 100_000 + "]" * 100_000 + "}"
        with pytest.raises(FrameParseError) as exc_info:
            classifier.classify(frame)
        assert isinstance(exc_info.value.__cause__, RecursionError)
