"""Streaming response pipeline.

transport bytes -> LineFramer -> decode() -> StreamAggregator -> ChatLogStore

Responsibilities:
    - Framing chunked bodies into newline-delimited records
    - Decoding records into typed text/result events
    - Aggregating events into create/update writes on the chat log
"""

from quantchat.streaming.aggregator import (
    AggregatorPhase,
    CancellationToken,
    StreamAggregator,
)
from quantchat.streaming.decoder import DecodeFailure, decode
from quantchat.streaming.framer import LineFramer

__all__ = [
    "AggregatorPhase",
    "CancellationToken",
    "DecodeFailure",
    "LineFramer",
    "StreamAggregator",
    "decode",
]
