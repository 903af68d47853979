"""Unit tests for individual components in isolation.

Coverage:
    - streaming/: line framing, record decoding, aggregation state machine
    - store/: in-memory and SQL chat log stores
    - session/: uploaded file index
    - config and backend client error mapping
"""
