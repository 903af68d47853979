"""Error taxonomy shared across the chat pipeline.

Every failure is either corrected locally (a malformed stream record is
skipped, see ``quantchat.streaming.decoder.DecodeFailure``) or surfaces as
one of these exceptions, which the API layer maps onto HTTP status codes.
"""


class QuantChatError(Exception):
    """Base class for user-visible chat errors.

    Attributes:
        message: Human-readable description.
        http_status: Status code used when the error crosses the local API.
    """

    http_status = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(QuantChatError):
    """Turn rejected before any network call (empty prompt, no files)."""

    http_status = 400


class TurnInProgressError(ValidationError):
    """A turn was submitted while another one is still analyzing."""

    http_status = 409


class TransportError(QuantChatError):
    """Network failure, non-2xx response or truncated response body.

    Attributes:
        status_code: Upstream HTTP status, if a response was received.
    """

    http_status = 502

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreError(QuantChatError):
    """Write rejected by the chat log store. Fatal to the current turn."""

    http_status = 500
