import logging
from typing import Iterator, Optional, Union

from playground.core.logging import RelayLogAdapter, get_logger
from playground.models.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    SearchResultEvent,
    encode_event,
)
from playground.models.response import SearchResult

logger = get_logger(__name__)

RelayLog = Union[logging.Logger, RelayLogAdapter]


def _relay(
    deltas: Iterator[str],
    tagged: bool,
    search_result: Optional[SearchResult] = None,
    log: Optional[RelayLog] = None,
) -> Iterator[str]:
    """
    Re-frame upstream text deltas as SSE messages.

    Frames go out one per delta in arrival order. The [DONE] terminator is
    always the last frame; an upstream failure mid-stream is reported as a
    single error event just before it. The upstream iterator is closed on
    every exit path, including the consumer going away.
    """
    if log is None:
        log = logger
    sent = 0
    finished = False
    try:
        if search_result is not None:
            yield encode_event(SearchResultEvent(data=search_result))

        try:
            for delta in deltas:
                if not delta:
                    continue
                sent += 1
                yield encode_event(ContentEvent(content=delta), tagged=tagged)
        except Exception as e:
            log.error(f"Streaming error after {sent} chunks: {e}")
            yield encode_event(ErrorEvent(error=str(e)))

        yield encode_event(DoneEvent())
        finished = True
        log.debug(f"Relayed {sent} chunks")
    finally:
        if not finished:
            log.info(f"Client went away after {sent} chunks")
        close = getattr(deltas, "close", None)
        if close is not None:
            close()


def relay_chat_stream(deltas: Iterator[str], log: Optional[RelayLog] = None) -> Iterator[str]:
    """Chat relay framing: ``{"content": ...}`` per delta, then [DONE]."""
    return _relay(deltas, tagged=False, log=log)


def relay_rag_stream(
    search_result: SearchResult,
    deltas: Iterator[str],
    log: Optional[RelayLog] = None,
) -> Iterator[str]:
    """RAG relay framing: one searchResult event, typed content events, then [DONE]."""
    return _relay(deltas, tagged=True, search_result=search_result, log=log)
