from typing import Iterator, List, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

from playground.main import app
from playground.models.request import ChatMessage, ChatMessageRole
from playground.models.response import SearchPayload, SearchPoint, SearchResult
from playground.rag.prompt import PromptBuilder
from playground.rag.retriever import Retriever
from playground.services.chat_service import ChatService, get_chat_service


class FakeLLM:
    """Replays a fixed list of deltas; can fail on open or mid-stream."""

    model = "fake-model"

    def __init__(self, chunks: Optional[List[str]] = None):
        self.chunks = chunks if chunks is not None else ["2 + 2", " = ", "4."]
        self.fail_after: Optional[int] = None
        self.open_error: Optional[Exception] = None
        self.calls: List[List[ChatMessage]] = []
        self.closed = False

    def complete(self, messages):
        self.calls.append(list(messages))
        if self.open_error is not None:
            raise self.open_error
        return ChatMessage(role=ChatMessageRole.ASSISTANT, content="".join(self.chunks))

    def open_stream(self, messages) -> Iterator[str]:
        self.calls.append(list(messages))
        if self.open_error is not None:
            raise self.open_error
        return self._deltas()

    def _deltas(self):
        try:
            for i, chunk in enumerate(self.chunks):
                if self.fail_after is not None and i >= self.fail_after:
                    raise RuntimeError("upstream went away")
                yield chunk
        finally:
            self.closed = True


class FakeEmbeddingClient:
    model = "fake-embedding"

    def __init__(self):
        self.calls: List[str] = []

    def embed_text(self, text: str) -> np.ndarray:
        self.calls.append(text)
        return np.array([0.1, 0.2, 0.3], dtype=np.float32)


class FakeVectorSearch:
    def __init__(self, size: int = 5):
        self.points = [
            SearchPoint(
                id=i,
                score=1.0 - i / 10,
                payload=SearchPayload(pageContent=f"passage {i}"),
            )
            for i in range(size)
        ]
        self.calls = []

    def search(self, collection, embedding, top_k):
        self.calls.append((collection, top_k))
        return SearchResult(points=self.points[:top_k])

    def list_collections(self):
        return ["docs", "faq"]

    def health(self):
        return {"backend": "fake"}


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_embedding():
    return FakeEmbeddingClient()


@pytest.fixture
def fake_vector_search():
    return FakeVectorSearch()


@pytest.fixture
def service(fake_llm, fake_embedding, fake_vector_search):
    retriever = Retriever(
        vector_search_client=fake_vector_search,
        embedding_client=fake_embedding,
        top_k=10
    )
    return ChatService(llm_client=fake_llm, retriever=retriever, prompt_builder=PromptBuilder())


@pytest.fixture
def client(service):
    app.dependency_overrides[get_chat_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def sse_data(body: str) -> List[str]:
    """Payloads of every ``data:`` line in an SSE body, in order."""
    return [line[len("data: "):] for line in body.split("\n") if line.startswith("data: ")]


@pytest.fixture
def parse_sse():
    return sse_data
