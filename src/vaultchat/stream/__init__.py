"""Framing and classification of the assistant's stream-json output."""

from vaultchat.stream.classifier import EventClassifier, FrameParseError
from vaultchat.stream.framing import FrameDecoder

__all__ = [
    "EventClassifier",
    "FrameDecoder",
    "FrameParseError",
]
