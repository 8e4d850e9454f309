from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from playground.core.logging import get_logger, relay_logger
from playground.models.request import ChatRequest, RagChatRequest
from playground.models.response import ChatResponse, CollectionsResponse, ErrorResponse, RagChatResponse
from playground.services.chat_service import ChatService, InvalidRequestError, get_chat_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api")

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _event_stream(frames) -> StreamingResponse:
    return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/runChat", response_model=ChatResponse, responses=ERROR_RESPONSES)
def run_chat(request: ChatRequest, chat_service: ChatService = Depends(get_chat_service)):
    """Chat relay: plain conversation, JSON or server-sent events."""
    log = relay_logger(logger, "runChat")
    log.debug(f"{len(request.messages)} messages, stream={request.stream}")
    try:
        if request.stream:
            return _event_stream(chat_service.stream_chat(request.messages, log=log))
        return {"message": chat_service.complete_chat(request.messages)}
    except InvalidRequestError as ve:
        log.warning(f"Rejected: {ve}")
        raise HTTPException(status_code=400, detail=str(ve))
    except Exception as e:
        log.error(f"Chat error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/ragChat", response_model=RagChatResponse, responses=ERROR_RESPONSES)
def rag_chat(request: RagChatRequest, chat_service: ChatService = Depends(get_chat_service)):
    """RAG relay: retrieval-augmented answer, JSON or server-sent events."""
    log = relay_logger(logger, "ragChat")
    log.debug(f"index={request.searchIndex}, topK={request.topK}, stream={request.stream}")
    try:
        if request.stream:
            return _event_stream(
                chat_service.stream_rag(request.messages, request.searchIndex, request.topK, log=log)
            )
        return chat_service.complete_rag(request.messages, request.searchIndex, request.topK)
    except InvalidRequestError as ve:
        log.warning(f"Rejected: {ve}")
        raise HTTPException(status_code=400, detail=str(ve))
    except Exception as e:
        log.error(f"RAG chat error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/collections", response_model=CollectionsResponse, responses={500: {"model": ErrorResponse}})
def collections(chat_service: ChatService = Depends(get_chat_service)):
    """Vector collections that can be used as searchIndex."""
    try:
        return {"collections": chat_service.list_collections()}
    except Exception as e:
        logger.error(f"Collection listing error: {e}")
        raise HTTPException(status_code=500, detail=str(e))
