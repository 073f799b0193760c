"""Splitting of drain request bodies into lines for framework adapters."""

import logging

logger = logging.getLogger(__name__)

# Same cap as bufio.Scanner's default token size.
MAX_LINE_BYTES = 64 * 1024


def _decode_line(raw: bytes) -> str:
    return raw.rstrip(b"\r").decode("utf-8", errors="replace")


class LineSplitter:
    """Turns body chunks into complete lines.

    Only the newly received chunk is split, so a body costs linear time
    however it is chunked. Lines longer than max_line_bytes are dropped
    with a warning, and buffering stops until the next newline.

    Args:
        max_line_bytes: Longest line kept, without its newline.
    """

    def __init__(self, max_line_bytes: int = MAX_LINE_BYTES) -> None:
        self.max_line_bytes = max_line_bytes
        self.dropped = 0
        self._pending = bytearray()
        self._overflowed = False

    def feed(self, chunk: bytes) -> list[str]:
        """Return the lines completed by chunk."""
        # @tra: Adapter.ASGI.Body.Lines
        *complete, rest = chunk.split(b"\n")
        lines: list[str] = []
        for part in complete:
            if not self._overflowed:
                self._pending += part
                if len(self._pending) > self.max_line_bytes:
                    self._drop()
                else:
                    lines.append(_decode_line(bytes(self._pending)))
            self._pending.clear()
            self._overflowed = False

        if not self._overflowed:
            self._pending += rest
            if len(self._pending) > self.max_line_bytes:
                self._drop()
                self._pending.clear()
                self._overflowed = True
        return lines

    def flush(self) -> list[str]:
        """Return the trailing line of a body that does not end in a newline."""
        if self._overflowed or not self._pending:
            return []
        line = _decode_line(bytes(self._pending))
        self._pending.clear()
        return [line]

    def _drop(self) -> None:
        # @tra: Adapter.ASGI.Body.LineLimit
        self.dropped += 1
        logger.warning(
            "Dropping drain line longer than %d bytes", self.max_line_bytes
        )
