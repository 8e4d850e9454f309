"""
Stream consumer for the relay endpoints.

Reads the SSE body in arbitrary byte chunks, splits it into ``data:`` lines
and drives a small state machine:

    IDLE --begin()--> SENDING --attach()--> STREAMING --[DONE]--> IDLE
                                                     --fail()---> IDLE

Only a [DONE] reached without an error event commits the accumulated text
as an assistant message.
"""

import codecs
from enum import Enum
from typing import Callable, List, Optional

from playground.core.logging import get_logger
from playground.models.events import (
    SSE_DATA_PREFIX,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    SearchResultEvent,
    parse_event,
)
from playground.models.request import ChatMessage, ChatMessageRole
from playground.models.response import SearchResult

logger = get_logger(__name__)


class SSELineDecoder:
    """Incremental bytes-to-lines decoder.

    Multi-byte characters and lines may both be split across chunks; partial
    data is held until the rest arrives.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        """Decode a chunk and return the lines it completed."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Return whatever is left once the body has ended."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [tail.rstrip("\r")] if tail else []


class ConsumerState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"


class StreamConsumer:
    """Client-side state for one chat turn at a time."""

    def __init__(
        self,
        on_content: Optional[Callable[[str], None]] = None,
        on_search_result: Optional[Callable[[SearchResult], None]] = None,
    ):
        self.on_content = on_content
        self.on_search_result = on_search_result
        self.state = ConsumerState.IDLE
        self._reset()

    def _reset(self):
        self._decoder = SSELineDecoder()
        self.partial = ""
        self.search_result: Optional[SearchResult] = None
        self.error: Optional[str] = None
        self.message: Optional[ChatMessage] = None

    @property
    def busy(self) -> bool:
        return self.state is not ConsumerState.IDLE

    def begin(self):
        """idle -> sending. Refuses a second send while one is in flight."""
        if self.busy:
            raise RuntimeError(f"Cannot send while {self.state.value}")
        self._reset()
        self.state = ConsumerState.SENDING

    def attach(self):
        """sending -> streaming, once the relay answered with a body."""
        if self.state is not ConsumerState.SENDING:
            raise RuntimeError(f"Cannot start streaming while {self.state.value}")
        self.state = ConsumerState.STREAMING

    def feed(self, chunk: bytes) -> Optional[ChatMessage]:
        """
        Consume a chunk of the response body.

        Returns:
            The committed assistant message once [DONE] has been read,
            otherwise None. Bytes after [DONE] are ignored.
        """
        if self.state is not ConsumerState.STREAMING:
            return None
        for line in self._decoder.feed(chunk):
            self._handle_line(line)
            if self.state is ConsumerState.IDLE:
                return self.message
        return None

    def finish(self) -> Optional[ChatMessage]:
        """The body ended. Without [DONE] the turn is incomplete."""
        if self.state is not ConsumerState.STREAMING:
            return self.message
        for line in self._decoder.flush():
            self._handle_line(line)
        if self.state is ConsumerState.STREAMING:
            logger.warning("Stream ended without terminator; turn discarded")
            self.state = ConsumerState.IDLE
            self.partial = ""
        return self.message

    def fail(self, exc: BaseException):
        """Transport error: log, drop the uncommitted text, go idle."""
        logger.error(f"Stream failed: {exc}")
        self.state = ConsumerState.IDLE
        self.partial = ""

    def _handle_line(self, line: str):
        if not line.startswith(SSE_DATA_PREFIX):
            return
        event = parse_event(line[len(SSE_DATA_PREFIX):])

        if event is None:
            logger.debug(f"Ignoring malformed stream line: {line[:80]}")
        elif isinstance(event, DoneEvent):
            self._finalize()
        elif isinstance(event, SearchResultEvent):
            self.search_result = event.data
            if self.on_search_result:
                self.on_search_result(event.data)
        elif isinstance(event, ContentEvent):
            if event.content:
                self.partial += event.content
                if self.on_content:
                    self.on_content(self.partial)
        elif isinstance(event, ErrorEvent):
            logger.error(f"Relay reported an error: {event.error}")
            self.error = event.error
        else:
            raise TypeError(f"Unhandled stream event: {event!r}")

    def _finalize(self):
        if self.error is None:
            self.message = ChatMessage(role=ChatMessageRole.ASSISTANT, content=self.partial)
        self.partial = ""
        self.state = ConsumerState.IDLE
