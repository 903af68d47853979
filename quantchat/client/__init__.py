"""HTTP transport to the remote analysis backend.

Endpoints:
    - POST /api/analyze: chunked newline-delimited JSON response stream
    - POST /api/upload: multipart file upload
    - POST /api/patch: administrative patch submission
"""

from quantchat.client.backend import BackendClient

__all__ = ["BackendClient"]
