"""quantchat - conversational front-end over a remote quant-analysis backend.

Streams newline-delimited JSON from the analysis service into an
append-only, multi-listener chat log.

Components:
    - streaming: line framing, event decoding and response aggregation
    - store: chat log persistence (in-memory and SQL)
    - client: HTTP transport to the analysis backend
    - session: turn orchestration, uploaded file index, app context
    - api: local HTTP surface for the presentation layer
    - models: message and event schemas
"""

__version__ = "0.1.0"
