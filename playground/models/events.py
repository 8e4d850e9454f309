"""SSE event models for the chat and RAG relay streams.

Every frame on the wire is a single ``data: <payload>\\n\\n`` line. The payload
is either a JSON object tagged by ``type`` or the literal ``[DONE]``
terminator, which always closes the stream.
"""

import json
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from playground.models.response import SearchResult

SSE_DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class SearchResultEvent(BaseModel):
    """Retrieved passages, sent once before any content (RAG only)."""

    type: Literal["searchResult"] = "searchResult"
    data: SearchResult


class ContentEvent(BaseModel):
    """Text fragment exactly as received from the model."""

    type: Literal["content"] = "content"
    content: str


class ErrorEvent(BaseModel):
    """Upstream failure after the stream was opened."""

    type: Literal["error"] = "error"
    error: str


class DoneEvent(BaseModel):
    """End of stream. Encoded as the bare [DONE] sentinel, not JSON."""

    type: Literal["done"] = "done"


StreamEvent = Annotated[
    Union[SearchResultEvent, ContentEvent, ErrorEvent, DoneEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(StreamEvent)


def encode_event(event: BaseModel, tagged: bool = True) -> str:
    """Frame an event as one SSE message.

    The plain chat relay sends content untagged (``{"content": ...}``);
    pass ``tagged=False`` for that framing.
    """
    if isinstance(event, DoneEvent):
        return f"{SSE_DATA_PREFIX}{DONE_SENTINEL}\n\n"
    if isinstance(event, ContentEvent) and not tagged:
        body = {"content": event.content}
    else:
        body = event.model_dump(mode="json")
    return f"{SSE_DATA_PREFIX}{json.dumps(body, ensure_ascii=False)}\n\n"


def parse_event(data: str) -> Optional[StreamEvent]:
    """Parse the text after ``data: `` into an event.

    Returns None for anything that is not a recognisable event.
    """
    if data.strip() == DONE_SENTINEL:
        return DoneEvent()
    try:
        body = json.loads(data)
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    if "type" not in body and "content" in body:
        body = {**body, "type": "content"}
    try:
        return _event_adapter.validate_python(body)
    except ValidationError:
        return None
