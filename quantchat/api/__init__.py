"""Local FastAPI surface for the presentation layer.

Endpoints:
    - GET /health: Service health status
    - GET /messages, /messages/stream: Chat log snapshot and live feed
    - GET /status: Current turn status
    - POST /chat: Run one turn
    - POST /upload, GET /files: Upload and list tabular files
    - POST /admin/patch: Administrative patch passthrough
"""

from quantchat.api.app import create_app

__all__ = ["create_app"]
