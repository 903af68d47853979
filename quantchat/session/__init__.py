"""Session layer: turn orchestration and per-instance state.

Responsibilities:
    - Validating and running chat turns (RequestSession)
    - Grouping uploaded files for display (UploadedFileIndex)
    - Building and tearing down shared resources (AppContext)
"""

from quantchat.session.context import AppContext, build_store
from quantchat.session.file_index import UNCLASSIFIED, UploadedFileIndex, classify
from quantchat.session.request_session import RequestSession

__all__ = [
    "UNCLASSIFIED",
    "AppContext",
    "RequestSession",
    "UploadedFileIndex",
    "build_store",
    "classify",
]
