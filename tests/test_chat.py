from types import SimpleNamespace

import pytest

from playground.models.request import ChatMessage, ChatMessageRole
from playground.models.response import SearchPayload, SearchPoint, SearchResult
from playground.services.chat_service import ChatService


def _user(text):
    return ChatMessage(role=ChatMessageRole.USER, content=text)


def test_complete_chat_returns_assistant_message(service):
    message = service.complete_chat([_user("Hello world")])

    assert message.role is ChatMessageRole.ASSISTANT
    assert message.content == "2 + 2 = 4."


@pytest.mark.parametrize("messages", [[], [_user("")], [_user("ok"), _user("  ")]])
def test_validate_messages_rejects_blank_latest_message(service, messages):
    with pytest.raises(ValueError):
        service.validate_messages(messages)


def test_stream_chat_opens_upstream_before_returning(service, fake_llm):
    fake_llm.open_error = ConnectionError("refused")

    # Raised at call time, not on first iteration
    with pytest.raises(ConnectionError):
        service.stream_chat([_user("Hi")])


def test_prepare_rag_prompt_uses_passages_in_index_order():
    result = SearchResult(points=[
        SearchPoint(id=2, score=0.5, payload=SearchPayload(pageContent="second best")),
        SearchPoint(id=1, score=0.9, payload=SearchPayload(pageContent="best")),
    ])
    retriever = SimpleNamespace(retrieve=lambda question, collection, top_k: result)
    captured = {}

    def build_rag_prompt(passages, question):
        captured["passages"] = passages
        return f"PROMPT: {question}"

    svc = ChatService(
        llm_client=SimpleNamespace(model="fake"),
        retriever=retriever,
        prompt_builder=SimpleNamespace(build_rag_prompt=build_rag_prompt),
    )

    prompt, search_result = svc.prepare_rag_prompt("Why?", "docs", 2)

    assert prompt == "PROMPT: Why?"
    assert search_result is result
    assert captured["passages"] == ["second best", "best"]


def test_stream_rag_frames_start_with_search_result(service):
    frames = list(service.stream_rag([_user("What is RAG?")], "docs", 2))

    assert frames[0].startswith('data: {"type": "searchResult"')
    assert frames[-1] == "data: [DONE]\n\n"
    assert all('"type": "content"' in f for f in frames[1:-1])


def test_complete_rag_requires_search_index(service, fake_llm):
    with pytest.raises(ValueError):
        service.complete_rag([_user("What is RAG?")], "  ", 3)

    assert fake_llm.calls == []


def test_retrieval_failure_propagates(service, fake_embedding, fake_llm):
    def broken(text):
        raise RuntimeError("embedding quota exceeded")

    fake_embedding.embed_text = broken

    with pytest.raises(RuntimeError, match="quota"):
        service.complete_rag([_user("What is RAG?")], "docs", 3)

    assert fake_llm.calls == []
