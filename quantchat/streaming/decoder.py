"""Decoding of framed stream records into typed events.

Wire format, one JSON object per line:

    {"type": "text", "content": "..."}
    {"type": "backtest", "content": "", "data": {...}}
    {"type": "visualization", "content": "", "url": "https://..."}

The event set is closed. A record whose ``type`` is well-formed but not one
of the kinds above is returned as an unsupported ``DecodeFailure`` rather
than being turned into a new message kind; callers log it apart from
malformed records and move on.
"""

import json
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from quantchat.models.schemas import ResultEvent, ResultKind, TextEvent


@dataclass(frozen=True)
class DecodeFailure:
    """A record that could not be decoded. Skipped, never raised.

    Attributes:
        raw: The record as received.
        reason: Human-readable cause.
        unsupported: The record is well-formed but names an unknown kind.
    """

    raw: str
    reason: str
    unsupported: bool = False


def decode(record: str) -> TextEvent | ResultEvent | DecodeFailure:
    """Parse one framed record.

    Args:
        record: A single line of the response body.

    Returns:
        The decoded event, or a DecodeFailure carrying the raw record.
    """
    try:
        obj = json.loads(record)
    except json.JSONDecodeError as e:
        return DecodeFailure(raw=record, reason=f"invalid JSON: {e.msg}")
    except (ValueError, RecursionError) as e:
        # Oversized integers and pathological nesting
        return DecodeFailure(raw=record, reason=f"unparseable JSON: {type(e).__name__}")

    if not isinstance(obj, dict):
        return DecodeFailure(raw=record, reason="record is not a JSON object")

    event_type = obj.get("type")
    if not isinstance(event_type, str):
        return DecodeFailure(raw=record, reason="missing 'type'")

    content = obj.get("content")
    if content is None:
        content = ""

    try:
        if event_type == "text":
            return TextEvent(content=content)
        return ResultEvent(
            kind=ResultKind(event_type),
            content=content,
            data=obj.get("data"),
            url=obj.get("url"),
        )
    except PydanticValidationError as e:
        return DecodeFailure(raw=record, reason=f"invalid fields: {e.error_count()} error(s)")
    except ValueError:
        return DecodeFailure(raw=record, reason=f"unknown event type {event_type!r}", unsupported=True)
