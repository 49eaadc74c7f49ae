import asyncio
import json

import httpx
import pytest

from utils.task_suggestions import (
    SuggestionError,
    TaskSuggester,
    fallback_suggestions,
    parse_suggestions,
    suggest_or_fallback,
)

SUGGESTIONS = [
    {"description": "Practice scales", "type": "positive", "points": 20},
    {"description": "Skip practice", "type": "negative", "points": -15},
]


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def suggester_returning(status_code, body, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    return TaskSuggester(api_url="https://ai.test/v1/chat/completions", model="test-model", transport=httpx.MockTransport(handler))


def test_suggest_sends_chat_completion_request():
    seen = []
    suggester = suggester_returning(200, completion(json.dumps(SUGGESTIONS)), seen)

    patterns = asyncio.run(suggester.suggest("key-123", "Learn piano", "Play Chopin"))

    assert [(p.description, p.type, p.points) for p in patterns] == [
        ("Practice scales", "positive", 20),
        ("Skip practice", "negative", 15),
    ]
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer key-123"
    payload = json.loads(request.content)
    assert payload["model"] == "test-model"
    assert payload["messages"][0]["role"] == "system"
    assert "Learn piano" in payload["messages"][1]["content"]
    assert "Play Chopin" in payload["messages"][1]["content"]


def test_suggest_accepts_fenced_json():
    content = "```json\n" + json.dumps(SUGGESTIONS) + "\n```"
    patterns = asyncio.run(suggester_returning(200, completion(content)).suggest("k", "t", "d"))
    assert len(patterns) == 2


def test_http_error_falls_back():
    suggester = suggester_returning(500, {"error": "boom"})
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(suggester.suggest("k", "Learn piano", "d"))

    patterns, source = asyncio.run(suggest_or_fallback(suggester, "k", "Learn piano", "d"))
    assert source == "fallback"
    assert patterns == fallback_suggestions("Learn piano")


def test_non_json_content_falls_back():
    suggester = suggester_returning(200, completion("Sure! Here are some tasks: run, read."))
    patterns, source = asyncio.run(suggest_or_fallback(suggester, "k", "Learn piano", "d"))
    assert source == "fallback"
    assert len(patterns) == 5


def test_unexpected_payload_falls_back():
    suggester = suggester_returning(200, {"id": "cmpl-1"})
    patterns, source = asyncio.run(suggest_or_fallback(suggester, "k", "Learn piano", "d"))
    assert source == "fallback"


def test_without_api_key_the_service_is_not_called():
    seen = []
    suggester = suggester_returning(200, completion(json.dumps(SUGGESTIONS)), seen)
    patterns, source = asyncio.run(suggest_or_fallback(suggester, None, "Learn piano", "d"))
    assert source == "fallback"
    assert seen == []


def test_ai_source_when_service_answers():
    suggester = suggester_returning(200, completion(json.dumps(SUGGESTIONS)))
    patterns, source = asyncio.run(suggest_or_fallback(suggester, "k", "Learn piano", "d"))
    assert source == "ai"
    assert len(patterns) == 2


def test_parse_rejects_empty_and_invalid_items():
    with pytest.raises(SuggestionError):
        parse_suggestions("[]")
    with pytest.raises(SuggestionError):
        parse_suggestions('{"description": "x"}')
    with pytest.raises(SuggestionError):
        parse_suggestions('[{"description": "x", "type": "sideways", "points": 5}]')


def test_fallback_is_three_positive_then_two_negative():
    patterns = fallback_suggestions("Guitar")
    assert [p.type for p in patterns] == ["positive"] * 3 + ["negative"] * 2
    assert patterns[0].description == "Work on Guitar for 30 minutes"
    assert patterns[-1].description == "Skip planned work on Guitar"
    assert all(p.points > 0 for p in patterns)
