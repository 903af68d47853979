"""Test package for quantchat.

Structure:
    - unit/: framing, decoding, aggregation, stores, file index, config
    - integration/: request sessions and the local API against a fake backend

The analysis backend is replaced by an ``httpx.MockTransport``; the local
API is exercised through ``httpx.ASGITransport``. Leverages pytest with
pytest-check for soft assertions.
"""
