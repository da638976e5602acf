"""
Incremental event-stream decoder.

Bytes (or text) arrive in chunks that are not aligned to lines, so the parser
keeps a line accumulator and an in-progress message across calls to
:meth:`SseParser.feed`.
"""

from __future__ import annotations

import codecs
import re

from pocketbase_client.realtime.message import SseMessage

FIELD_LINE = re.compile(r"^(\w+)[\s:]+(.*)?$")


class SseParser:
    """
    Turns a chunked event stream into :class:`SseMessage` instances.

    A blank line completes the current message. Lines that don't look like
    ``field: value`` (comments starting with ``:`` included) are ignored.
    Repeated ``data`` lines of one message are joined with ``"\\n"``.

    Example:
        >>> parser = SseParser()
        >>> parser.feed(b"id: 1\\nevent: foo\\nda")
        []
        >>> parser.feed(b"ta: bar\\n\\n")
        [SseMessage(id='1', event='foo', data='bar', retry=0)]
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._line = ""
        self._message = SseMessage()
        self._data_lines: list[str] = []

    def feed(self, chunk: bytes | str) -> list[SseMessage]:
        """Consume a chunk and return the messages it completed."""
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk

        completed: list[SseMessage] = []
        *lines, self._line = (self._line + text).split("\n")
        for line in lines:
            message = self._process_line(line)
            if message is not None:
                completed.append(message)
        return completed

    def close(self) -> list[SseMessage]:
        """Flush the trailing unterminated line once the stream has ended."""
        completed = self.feed(self._decoder.decode(b"", final=True))
        if self._line:
            line, self._line = self._line, ""
            message = self._process_line(line)
            if message is not None:
                completed.append(message)
        return completed

    def _process_line(self, line: str) -> SseMessage | None:
        line = line.rstrip("\r")

        if not line:
            message = self._message
            if self._data_lines:
                message.data = "\n".join(self._data_lines)
            self._message = SseMessage()
            self._data_lines = []
            return message

        match = FIELD_LINE.match(line)
        if match is None:
            return None

        field, value = match.group(1), match.group(2) or ""
        if field == "id":
            self._message.id = value
        elif field == "event":
            self._message.event = value
        elif field == "retry":
            try:
                self._message.retry = int(value.strip())
            except ValueError:
                self._message.retry = 0
        elif field == "data":
            self._data_lines.append(value)

        return None
