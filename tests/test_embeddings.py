from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import requests

from playground.rag.embeddings import EmbeddingClient
from playground.utils.text import normalize_whitespace


def _ok(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def test_normalize_whitespace_keeps_word_boundaries():
    assert normalize_whitespace("  what  is\tRAG?\n\nreally ") == "what is RAG? really"


def test_embed_text_posts_normalized_input():
    client = EmbeddingClient(base_url="https://api.example/v1/", api_key="sk-test", model="emb-model")

    with patch("playground.rag.embeddings.requests.post") as post:
        post.return_value = _ok({"data": [{"embedding": [0.25, -0.5]}]})
        vector = client.embed_text("What is\n the\tanswer?")

    args, kwargs = post.call_args
    assert args[0] == "https://api.example/v1/embeddings"
    assert kwargs["json"] == {"model": "emb-model", "input": "What is the answer?"}
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert vector.dtype == np.float32
    assert vector.tolist() == [0.25, -0.5]


def test_empty_text_returns_empty_vector_without_calling_api():
    client = EmbeddingClient()

    with patch("playground.rag.embeddings.requests.post") as post:
        vector = client.embed_text(" \n\t ")

    assert vector.shape == (0,)
    post.assert_not_called()


def test_upstream_error_propagates_unchanged():
    client = EmbeddingClient()
    failure = requests.exceptions.HTTPError("429 Too Many Requests")

    with patch("playground.rag.embeddings.requests.post") as post:
        post.return_value.raise_for_status.side_effect = failure
        with pytest.raises(requests.exceptions.HTTPError) as exc:
            client.embed_text("hello")

    assert exc.value is failure


def test_missing_embedding_in_response_is_an_error():
    client = EmbeddingClient()

    with patch("playground.rag.embeddings.requests.post") as post:
        post.return_value = _ok({"data": []})
        with pytest.raises(ValueError):
            client.embed_text("hello")
