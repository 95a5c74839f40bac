"""
Tests for the news chat endpoint.

Tests POST /news-chat (and its /api alias) with a fake completions client.
"""

import json

import httpx
import openai
import pytest

from app.completions import UpstreamError

CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "POST, OPTIONS",
    "access-control-allow-headers": "Content-Type",
}


def _forwarded_articles(call):
    """Articles JSON embedded in the user prompt of a recorded call."""
    user = call["messages"][1]["content"]
    return json.loads(user.split("Articles context (array of objects):\n", 1)[1])


def _assert_cors(response):
    for name, value in CORS.items():
        assert response.headers[name] == value


class TestPreflightAndMethods:
    @pytest.mark.parametrize("path", ["/news-chat", "/api/news-chat"])
    def test_options_returns_empty_200(self, client, path):
        response = client.request("OPTIONS", path, content=b"not json at all")
        assert response.status_code == 200
        assert response.content == b""
        _assert_cors(response)

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    def test_other_methods_rejected(self, client, method):
        response = client.request(method, "/news-chat")
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
        _assert_cors(response)

    def test_missing_api_key(self, unconfigured_client):
        response = unconfigured_client.post(
            "/news-chat", json={"question": "Anything?", "articles": []}
        )
        assert response.status_code == 500
        assert response.json() == {"error": "OPENAI_API_KEY is not set"}
        _assert_cors(response)

    def test_missing_api_key_checked_before_body(self, unconfigured_client):
        response = unconfigured_client.post("/news-chat", json={})
        assert response.status_code == 500


class TestValidation:
    @pytest.mark.parametrize(
        "body",
        [
            {"articles": []},
            {"question": "", "articles": []},
            {"question": "What happened?"},
            {"question": "What happened?", "articles": "not a list"},
            {"question": "What happened?", "articles": {"title": "x"}},
            ["question", "articles"],
        ],
    )
    def test_invalid_body_returns_400(self, client, fake_completions, body):
        response = client.post("/news-chat", json=body)
        assert response.status_code == 400
        assert "question" in response.json()["error"]
        _assert_cors(response)
        assert fake_completions.calls == []

    def test_malformed_json_returns_400(self, client):
        response = client.post(
            "/news-chat", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_empty_article_list_is_allowed(self, client, fake_completions):
        fake_completions.content = "I only know about today's feed."
        response = client.post("/news-chat", json={"question": "Hi?", "articles": []})
        assert response.status_code == 200
        assert _forwarded_articles(fake_completions.calls[0]) == []


class TestAnswer:
    def test_returns_stripped_answer(self, client, fake_completions, articles):
        fake_completions.content = "  - Science had a good day.\n\n"
        response = client.post(
            "/news-chat", json={"question": "Highlights?", "articles": articles}
        )
        assert response.status_code == 200
        assert response.json() == {"answer": "- Science had a good day."}
        _assert_cors(response)

    def test_missing_content_gives_empty_answer(self, client, fake_completions, articles):
        fake_completions.content = None
        response = client.post("/news-chat", json={"question": "Q?", "articles": articles})
        assert response.status_code == 200
        assert response.json() == {"answer": ""}

    def test_only_first_15_articles_forwarded(self, client, fake_completions, make_articles):
        fake_completions.content = "ok"
        client.post("/news-chat", json={"question": "Q?", "articles": make_articles(20)})

        forwarded = _forwarded_articles(fake_completions.calls[0])
        assert len(forwarded) == 15
        assert [a["index"] for a in forwarded] == list(range(15))
        assert forwarded[14]["title"] == "Story 14"

    def test_articles_are_normalized(self, client, fake_completions):
        fake_completions.content = "ok"
        body = {
            "question": "Q?",
            "articles": [{"title": "Only a title", "content": "dropped", "url": None}, "junk"],
        }
        client.post("/news-chat", json=body)

        assert _forwarded_articles(fake_completions.calls[0]) == [
            {
                "index": 0,
                "title": "Only a title",
                "description": "",
                "category": "",
                "source": "",
                "url": "",
            },
            {"index": 1, "title": "", "description": "", "category": "", "source": "", "url": ""},
        ]

    def test_nested_source_forwarded_as_json(self, client, fake_completions):
        fake_completions.content = "ok"
        body = {
            "question": "Q?",
            "articles": [{"title": "t", "source": {"id": None, "name": "BBC"}}],
        }
        client.post("/news-chat", json=body)

        forwarded = _forwarded_articles(fake_completions.calls[0])
        assert forwarded[0]["source"] == {"id": None, "name": "BBC"}

    def test_null_article_is_internal_error(self, client, fake_completions):
        response = client.post("/news-chat", json={"question": "Q?", "articles": [None]})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert fake_completions.calls == []

    @pytest.mark.parametrize("question,rendered", [(["a"], '"a"'), ({}, '"[object Object]"'), (7, '"7"')])
    def test_non_string_question_is_accepted(self, client, fake_completions, question, rendered):
        fake_completions.content = "ok"
        response = client.post("/news-chat", json={"question": question, "articles": []})

        assert response.status_code == 200
        assert rendered in fake_completions.calls[0]["messages"][1]["content"]

    @pytest.mark.parametrize("question", [0, False, None])
    def test_blank_question_rejected(self, client, question):
        response = client.post("/news-chat", json={"question": question, "articles": []})
        assert response.status_code == 400

    def test_prompt_shape(self, client, fake_completions, articles):
        fake_completions.content = "ok"
        client.post(
            "/api/news-chat",
            json={"question": "What's new in science?", "articles": articles},
        )

        call = fake_completions.calls[0]
        assert call["json_mode"] is False
        assert [m["role"] for m in call["messages"]] == ["system", "user"]
        assert '"What\'s new in science?"' in call["messages"][1]["content"]
        assert "today's feed" in call["messages"][1]["content"]

    def test_repeated_calls_are_identical(self, client, fake_completions, articles):
        fake_completions.content = "Same answer"
        body = {"question": "Q?", "articles": articles}
        first = client.post("/news-chat", json=body)
        second = client.post("/news-chat", json=body)

        assert first.json() == second.json()
        assert fake_completions.calls[0] == fake_completions.calls[1]


class TestUpstreamFailures:
    def test_upstream_status_is_reported(self, client, fake_completions, articles):
        fake_completions.error = UpstreamError(429, '{"error": "secret detail"}')
        response = client.post("/news-chat", json={"question": "Q?", "articles": articles})

        assert response.status_code == 500
        assert response.json() == {"error": "OpenAI API error", "status": 429}
        assert "secret detail" not in response.text
        _assert_cors(response)

    def test_network_error_is_generic(self, client, fake_completions, articles):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        fake_completions.error = openai.APIConnectionError(request=request)
        response = client.post("/news-chat", json={"question": "Q?", "articles": articles})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_unexpected_error_is_generic(self, client, fake_completions, articles):
        fake_completions.error = RuntimeError("boom")
        response = client.post("/news-chat", json={"question": "Q?", "articles": articles})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "boom" not in response.text
