"""Classify decoded stream frames into typed conversation events."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from pydantic import ValidationError

from vaultchat.session.ids import Clock, IdFactory, new_id, utc_now
from vaultchat.session.models import (
    AssistantEvent,
    ConversationEvent,
    Message,
    ResultEvent,
    SystemEvent,
    UserEvent,
)

logger = logging.getLogger(__name__)

#: Longest excerpt of an offending frame kept in error messages.
_FRAME_PREVIEW_CHARS = 200


class FrameParseError(Exception):
    """A frame was not a JSON object with a ``type`` field.

    Recoverable: the offending frame is kept on ``frame`` and the
    underlying exception, if any, is chained as ``__cause__``.
    """

    def __init__(self, frame: str, reason: str) -> None:
        super().__init__(reason)
        self.frame = frame
        self.reason = reason

    @property
    def preview(self) -> str:
        return self.frame[:_FRAME_PREVIEW_CHARS]


class EventClassifier:
    """Maps one frame of ``--output-format stream-json`` to an event.

    The assistant CLI emits these top-level event types:

    * ``system``    — ``subtype: init`` carries the ``session_id``.
    * ``assistant`` — wraps an API message in ``message``.
    * ``user``      — tool results fed back to the model, also in ``message``.
    * ``result``    — per-turn summary with durations, cost and final text.

    Anything else (other ``system`` subtypes, future event kinds,
    ``assistant``/``user`` frames without a ``message``) is ignored and
    :meth:`classify` returns ``None``.
    """

    def __init__(
        self,
        id_factory: IdFactory = new_id,
        clock: Clock = utc_now,
    ) -> None:
        self._new_id = id_factory
        self._clock = clock

    def classify(self, frame: str) -> ConversationEvent | None:
        """Return the event for *frame*, or ``None`` if it is ignorable.

        Raises:
            FrameParseError: On invalid JSON, a non-object value, a missing
                ``type``, or fields of the wrong shape.
        """
        try:
            obj = json.loads(frame)
        except json.JSONDecodeError as exc:
            raise FrameParseError(frame, str(exc)) from exc
        except RecursionError as exc:
            raise FrameParseError(frame, "JSON nested too deeply") from exc

        if not isinstance(obj, dict):
            msg = f"expected a JSON object, got {type(obj).__name__}"
            raise FrameParseError(frame, msg)

        event_type = obj.get("type")
        if not isinstance(event_type, str) or not event_type:
            raise FrameParseError(frame, "missing 'type' field")

        try:
            match event_type:
                case "system" if obj.get("subtype") == "init":
                    return self._system_init(obj)
                case "assistant" | "user" if obj.get("message") is not None:
                    return self._message_event(event_type, obj)
                case "result":
                    return self._result(obj)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(s) for s in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            msg = f"invalid '{event_type}' event: {details}"
            raise FrameParseError(frame, msg) from exc
        except (ValueError, RecursionError) as exc:
            raise FrameParseError(frame, str(exc) or type(exc).__name__) from exc

        logger.debug("ignoring %s frame (subtype=%s)", event_type, obj.get("subtype"))
        return None

    # ------------------------------------------------------------------ #
    # Per-type builders
    # ------------------------------------------------------------------ #

    def _system_init(self, obj: dict[str, Any]) -> SystemEvent:
        session_id, from_wire = self._session(obj)
        return SystemEvent(
            subtype="init",
            session_id=session_id,
            has_wire_session=from_wire,
            uuid=self._new_id("system"),
            timestamp=self._clock(),
        )

    def _message_event(
        self, event_type: str, obj: dict[str, Any]
    ) -> AssistantEvent | UserEvent:
        raw = obj["message"]
        if not isinstance(raw, dict):
            raise ValueError(f"'message' must be an object, got {type(raw).__name__}")
        # Keep the message verbatim; only fill the role when it is missing.
        message = Message.model_validate({"role": event_type, **raw})
        session_id, from_wire = self._session(obj)
        if event_type == "assistant":
            return AssistantEvent(
                message=message,
                session_id=session_id,
                has_wire_session=from_wire,
                uuid=self._new_id("assistant"),
                timestamp=self._clock(),
            )
        return UserEvent(
            message=message,
            session_id=session_id,
            has_wire_session=from_wire,
            uuid=self._new_id("tool-result"),
            timestamp=self._clock(),
        )

    def _result(self, obj: dict[str, Any]) -> ResultEvent:
        session_id, from_wire = self._session(obj)
        # Each field falls back to its own default; a bad field never drops the event.
        return ResultEvent(
            subtype=_text(obj, "subtype") or "success",
            duration_ms=_count(obj, "duration_ms", 0),
            duration_api_ms=_count(obj, "duration_api_ms", 0),
            is_error=_flag(obj, "is_error", False),
            num_turns=_count(obj, "num_turns", 1),
            result=_text(obj, "result"),
            total_cost_usd=_cost(obj, "total_cost_usd"),
            session_id=session_id,
            has_wire_session=from_wire,
            uuid=self._new_id("result"),
            timestamp=self._clock(),
        )

    def _session(self, obj: dict[str, Any]) -> tuple[str, bool]:
        """Return the frame's session id, or a placeholder and ``False``."""
        session_id = obj.get("session_id")
        if isinstance(session_id, str) and session_id:
            return session_id, True
        return self._new_id("session"), False


def _number(obj: dict[str, Any], key: str) -> float | None:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        if value is not None:
            logger.debug("ignoring non-numeric %s=%r in result frame", key, value)
        return None
    if not math.isfinite(value) or value < 0:
        logger.debug("ignoring out-of-range %s=%r in result frame", key, value)
        return None
    return value


def _count(obj: dict[str, Any], key: str, default: int) -> int:
    value = _number(obj, key)
    return default if value is None else round(value)


def _cost(obj: dict[str, Any], key: str) -> float | None:
    value = _number(obj, key)
    return None if value is None else float(value)


def _flag(obj: dict[str, Any], key: str, default: bool) -> bool:
    value = obj.get(key)
    return value if isinstance(value, bool) else default


def _text(obj: dict[str, Any], key: str) -> str | None:
    value = obj.get(key)
    return value if isinstance(value, str) else None
