"""Newline framing for chunked transport bodies."""

import codecs


class LineFramer:
    """Turns arbitrary chunks into complete newline-terminated records.

    Bytes are decoded with an incremental UTF-8 decoder, so a multi-byte
    character split across two chunks is reassembled rather than mangled.
    The unterminated tail is buffered until the next chunk or ``flush``.
    Whitespace-only records are dropped.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[str]:
        """Add a chunk and return every record it completes.

        Args:
            chunk: Raw transport bytes (or already-decoded text).

        Returns:
            Complete records, without their terminators, in stream order.
        """
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        if not text:
            return []

        self._buffer += text
        *records, self._buffer = self._buffer.split("\n")
        return [r for r in records if r.strip()]

    def flush(self) -> str | None:
        """Finish the stream and return the unterminated tail, if any."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        self._decoder.reset()
        return tail if tail.strip() else None

    @property
    def pending(self) -> str:
        return self._buffer
