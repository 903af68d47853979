"""Turn orchestration: one user prompt through to stream completion or failure."""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing

from quantchat.client.backend import BackendClient
from quantchat.errors import StoreError, TransportError, TurnInProgressError, ValidationError
from quantchat.models.schemas import (
    AnalyzeRequest,
    Message,
    MessageKind,
    ResultEvent,
    TextEvent,
    TurnStatus,
    UploadedFile,
)
from quantchat.session.file_index import UploadedFileIndex
from quantchat.store.base import ChatLogStore
from quantchat.streaming.aggregator import CancellationToken, StreamAggregator
from quantchat.streaming.decoder import DecodeFailure, decode
from quantchat.streaming.framer import LineFramer

logger = logging.getLogger(__name__)

StatusListener = Callable[[TurnStatus], None]


class RequestSession:
    """Drives chat turns and uploads for one chat log.

    Turns are sequential: submitting while a turn is analyzing raises
    ``TurnInProgressError``. The presentation layer reads ``status`` and
    ``last_error`` or registers a listener with ``subscribe_status``.

    Args:
        store: Chat log the session writes to.
        backend: Transport to the analysis backend.
        file_index: Index of files uploaded so far.
    """

    def __init__(
        self,
        store: ChatLogStore,
        backend: BackendClient,
        file_index: UploadedFileIndex | None = None,
    ) -> None:
        self.store = store
        self.file_index = file_index or UploadedFileIndex()
        self._backend = backend
        self._aggregator = StreamAggregator(store)
        self._status_listeners: list[StatusListener] = []
        self.status = TurnStatus.IDLE
        self.last_error: str | None = None

    def subscribe_status(self, callback: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._status_listeners:
                self._status_listeners.remove(callback)

        return unsubscribe

    def validate(self, prompt: str) -> str:
        """Check turn preconditions without touching the network.

        Returns:
            The stripped prompt.

        Raises:
            TurnInProgressError: A turn is already analyzing.
            ValidationError: Empty prompt or no uploaded files.
        """
        if self.status is TurnStatus.ANALYZING:
            raise TurnInProgressError("A request is already being analyzed.")
        text = prompt.strip()
        if not text:
            raise ValidationError("Prompt must not be empty.")
        if not len(self.file_index):
            raise ValidationError("No files to analyze. Upload a file first.")
        return text

    async def send(self, prompt: str, cancel: CancellationToken | None = None) -> TurnStatus:
        """Run one full turn.

        Persists the user message, streams the analyze call into the chat
        log and records a failure message if the transport fails.

        Args:
            prompt: The user's request.
            cancel: Abandons the turn; writes already issued still complete.

        Returns:
            Status after the turn (idle, or error on transport failure).

        Raises:
            ValidationError: Preconditions failed; nothing was written.
            StoreError: The chat log rejected a write.
            Exception: Any other failure, re-raised after the failure
                message is recorded and the partial message closed.
        """
        text = self.validate(prompt)
        cancel = cancel or CancellationToken()
        if cancel.cancelled:
            logger.info("Turn cancelled before start")
            return self.status

        self._set_status(TurnStatus.ANALYZING)
        try:
            history = await self.store.list_messages()
            await self.store.create(Message(kind=MessageKind.USER, content=text))
            request = AnalyzeRequest(
                prompt=text,
                history=history,
                uploaded_files=self.file_index.files(),
            )

            self._aggregator.begin_turn(cancel)
            try:
                async with aclosing(self._events(request, cancel)) as events:
                    await self._aggregator.consume(events)
            except TransportError as e:
                logger.error(f"Analysis failed: {e.message}")
                await self._aggregator.fail(e.message)
                self._set_status(TurnStatus.ERROR, e.message)
                return self.status
            except StoreError:
                raise
            except Exception as e:
                logger.exception("Turn failed unexpectedly")
                error = str(e) or type(e).__name__
                await self._aggregator.fail(error)
                self._set_status(TurnStatus.ERROR, error)
                raise

            self._set_status(TurnStatus.IDLE)
            return self.status
        except StoreError as e:
            logger.error(f"Chat log write failed: {e.message}")
            self._set_status(TurnStatus.ERROR, e.message)
            raise
        finally:
            if self.status is TurnStatus.ANALYZING:
                self._set_status(TurnStatus.ERROR, "Turn aborted")

    async def upload(
        self, filename: str, content: bytes, content_type: str = "text/csv"
    ) -> UploadedFile:
        """Upload a file, index it and announce it in the chat log.

        Raises:
            TransportError: The backend rejected the upload.
        """
        try:
            descriptor = await self._backend.upload_file(filename, content, content_type)
        except TransportError as e:
            self.last_error = f"File upload failed: {e.message}"
            logger.error(self.last_error)
            raise

        keys = self.file_index.insert(descriptor)
        logger.info(f"Indexed {filename} under {'/'.join(keys)}")
        await self.store.create(
            Message(kind=MessageKind.SYSTEM, content=f"File '{filename}' uploaded successfully.")
        )
        return descriptor

    async def apply_patch(self, password: str, patch_code: str) -> str:
        message = await self._backend.apply_patch(password, patch_code)
        logger.info("Administrative patch applied")
        return message

    async def _events(
        self, request: AnalyzeRequest, cancel: CancellationToken
    ) -> AsyncIterator[TextEvent | ResultEvent]:
        framer = LineFramer()
        async with aclosing(self._backend.stream_analysis(request)) as chunks:
            async for chunk in chunks:
                for record in framer.feed(chunk):
                    event = decode(record)
                    if isinstance(event, DecodeFailure):
                        self._log_skipped(event)
                        continue
                    yield event
                if cancel.cancelled:
                    logger.info("Turn cancelled, dropping the rest of the stream")
                    return

        if framer.flush() is not None:
            raise TransportError("Response ended without a record terminator")

    @staticmethod
    def _log_skipped(failure: DecodeFailure) -> None:
        if failure.unsupported:
            logger.info(f"Ignoring unsupported record ({failure.reason})")
        else:
            logger.warning(f"Skipping malformed record ({failure.reason}): {failure.raw[:200]!r}")

    def _set_status(self, status: TurnStatus, error: str | None = None) -> None:
        self.status = status
        self.last_error = error
        for listener in list(self._status_listeners):
            listener(status)
