import json

import requests

from playground.models.request import MAX_MESSAGE_LENGTH
from playground.rag.vector_store import set_vector_search_client


def _question(text="What is 2+2?"):
    return [{"role": "user", "content": text}]


def test_chat_stream_is_event_stream_ending_with_done(client, parse_sse):
    response = client.post("/api/runChat", json={"messages": _question(), "stream": True})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"

    frames = parse_sse(response.text)
    assert frames[-1] == "[DONE]"
    contents = [json.loads(f) for f in frames[:-1]]
    assert all(set(c) == {"content"} for c in contents)
    assert "".join(c["content"] for c in contents) == "2 + 2 = 4."


def test_chat_stream_sends_whole_history(client, fake_llm):
    history = [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "What is 2+2?"},
    ]
    client.post("/api/runChat", json={"messages": history, "stream": True})

    sent = fake_llm.calls[0]
    assert [m.role.value for m in sent] == ["system", "user", "assistant", "user"]
    assert sent[-1].content == "What is 2+2?"


def test_chat_non_stream_returns_message(client):
    response = client.post("/api/runChat", json={"messages": _question()})

    assert response.status_code == 200
    assert response.json() == {"message": {"role": "assistant", "content": "2 + 2 = 4."}}


def test_streamed_content_matches_non_streamed_message(client, parse_sse):
    streamed = client.post("/api/runChat", json={"messages": _question(), "stream": True})
    whole = client.post("/api/runChat", json={"messages": _question(), "stream": False})

    fragments = [json.loads(f)["content"] for f in parse_sse(streamed.text)[:-1]]
    assert "".join(fragments) == whole.json()["message"]["content"]


def test_rag_stream_sends_one_search_result_before_content(client, parse_sse):
    response = client.post(
        "/api/ragChat",
        json={"messages": _question(), "searchIndex": "docs", "topK": 3, "stream": True},
    )

    assert response.status_code == 200
    frames = parse_sse(response.text)
    assert frames[-1] == "[DONE]"

    events = [json.loads(f) for f in frames[:-1]]
    types = [e["type"] for e in events]
    assert types.count("searchResult") == 1
    assert types[0] == "searchResult"
    assert set(types[1:]) == {"content"}

    points = events[0]["data"]["points"]
    assert len(points) <= 3
    assert all(isinstance(p["payload"]["pageContent"], str) for p in points)


def test_rag_stream_content_matches_non_stream(client, parse_sse):
    body = {"messages": _question(), "searchIndex": "docs", "topK": 3}
    streamed = client.post("/api/ragChat", json={**body, "stream": True})
    whole = client.post("/api/ragChat", json=body)

    events = [json.loads(f) for f in parse_sse(streamed.text)[:-1]]
    text = "".join(e["content"] for e in events if e["type"] == "content")
    assert text == whole.json()["message"]["content"]


def test_rag_non_stream_returns_prompt_and_search_result(client, fake_llm, fake_vector_search):
    response = client.post(
        "/api/ragChat",
        json={"messages": _question(), "searchIndex": "docs", "topK": 2},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"]["role"] == "assistant"
    assert "passage 0" in data["prompt"] and "What is 2+2?" in data["prompt"]
    assert [p["id"] for p in data["searchResult"]["points"]] == [0, 1]
    assert fake_vector_search.calls == [("docs", 2)]
    # The model sees one synthesized prompt, not the raw history
    assert len(fake_llm.calls[0]) == 1
    assert fake_llm.calls[0][0].content == data["prompt"]


def test_long_retrieval_still_reaches_the_model(client, fake_llm, fake_vector_search, parse_sse):
    for point in fake_vector_search.points:
        point.payload.pageContent = "x" * 6000
    fake_vector_search.points = fake_vector_search.points * 2
    body = {"messages": _question(), "searchIndex": "docs", "topK": 10}

    whole = client.post("/api/ragChat", json=body)
    streamed = client.post("/api/ragChat", json={**body, "stream": True})

    assert whole.status_code == 200
    assert len(whole.json()["prompt"]) > MAX_MESSAGE_LENGTH
    assert streamed.status_code == 200
    assert parse_sse(streamed.text)[-1] == "[DONE]"
    assert len(fake_llm.calls) == 2


def test_oversized_user_message_is_a_400(client, fake_llm):
    response = client.post(
        "/api/runChat",
        json={"messages": _question("y" * (MAX_MESSAGE_LENGTH + 1))},
    )

    assert response.status_code == 400
    assert "output" in response.json()
    assert fake_llm.calls == []


def test_empty_message_is_rejected_before_any_upstream_call(
    client, fake_llm, fake_embedding, fake_vector_search
):
    for content in ["", "   \n\t"]:
        for stream in (True, False):
            chat = client.post("/api/runChat", json={"messages": _question(content), "stream": stream})
            rag = client.post(
                "/api/ragChat",
                json={"messages": _question(content), "searchIndex": "docs", "stream": stream},
            )
            assert chat.status_code == 400
            assert rag.status_code == 400
            assert "output" in chat.json()

    assert fake_llm.calls == []
    assert fake_embedding.calls == []
    assert fake_vector_search.calls == []


def test_empty_message_list_is_rejected(client):
    response = client.post("/api/runChat", json={"messages": []})

    assert response.status_code == 400
    assert response.json() == {"output": "Message content cannot be empty"}


def test_rag_requires_search_index(client, fake_embedding):
    response = client.post("/api/ragChat", json={"messages": _question()})

    assert response.status_code == 400
    assert fake_embedding.calls == []


def test_malformed_body_is_a_400(client):
    missing = client.post("/api/runChat", json={"stream": True})
    bad_role = client.post("/api/runChat", json={"messages": [{"role": "robot", "content": "x"}]})
    not_json = client.post(
        "/api/runChat", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    for response in (missing, bad_role, not_json):
        assert response.status_code == 400
        assert "output" in response.json()


def test_upstream_error_surfaces_as_500(client, fake_llm):
    fake_llm.open_error = requests.exceptions.ConnectionError("provider unreachable")

    whole = client.post("/api/runChat", json={"messages": _question()})
    streamed = client.post("/api/runChat", json={"messages": _question(), "stream": True})

    for response in (whole, streamed):
        assert response.status_code == 500
        assert response.json() == {"output": "provider unreachable"}


def test_mid_stream_failure_sends_error_then_done(client, fake_llm, parse_sse):
    fake_llm.fail_after = 1

    response = client.post(
        "/api/ragChat",
        json={"messages": _question(), "searchIndex": "docs", "stream": True},
    )

    assert response.status_code == 200
    frames = parse_sse(response.text)
    assert frames[-1] == "[DONE]"
    events = [json.loads(f) for f in frames[:-1]]
    assert [e["type"] for e in events] == ["searchResult", "content", "error"]
    assert events[-1]["error"] == "upstream went away"
    assert fake_llm.closed


def test_collections_lists_vector_collections(client):
    response = client.get("/api/collections")

    assert response.status_code == 200
    assert response.json() == {"collections": ["docs", "faq"]}


def test_health_reports_vector_store(client, fake_vector_search):
    set_vector_search_client(fake_vector_search)
    try:
        response = client.get("/health")
    finally:
        set_vector_search_client(None)

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["vector_store"] == {"backend": "fake"}
