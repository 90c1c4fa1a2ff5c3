import pytest

from retrospect.core.exceptions import ProviderNotConfigured, UpstreamError
from retrospect.services.completion import (
    PARSE_ERROR,
    CompletionGateway,
    ModelParams,
    extract_json,
)

PARAMS = ModelParams(model="test-model", temperature=0.3, max_tokens=123)


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_surrounding_prose_and_fences(self):
        text = 'Here you go:\n```json\n{"tasks": [{"title": "Setup"}]}\n```\nGood luck!'
        assert extract_json(text) == {"tasks": [{"title": "Setup"}]}

    def test_nested_braces(self):
        assert extract_json('x {"a": {"b": {"c": 2}}} y') == {"a": {"b": {"c": 2}}}

    def test_braces_inside_strings(self):
        assert extract_json('{"note": "use {curly} braces"}') == {"note": "use {curly} braces"}

    @pytest.mark.parametrize("text", [None, "", "no json here", "[1, 2, 3]"])
    def test_no_braces(self, text):
        assert extract_json(text) is None

    def test_closing_brace_before_opening(self):
        assert extract_json("} oops {") is None

    def test_truncated_output(self):
        assert extract_json('{"tasks": [{"title": "Setup"}, {"title": "Des') is None

    def test_malformed_object(self):
        assert extract_json("{'single': 'quotes'}") is None
        assert extract_json('{"a": 1,}') is None

    def test_two_objects_span_does_not_parse(self):
        # first "{" to last "}" covers both objects, which is not one JSON value
        assert extract_json('{"a": 1} and {"b": 2}') is None

    def test_trailing_brace_in_prose_breaks_parse(self):
        assert extract_json('{"a": 1} (see note})') is None


@pytest.mark.asyncio
async def test_complete_posts_chat_completion_body(gateway, provider):
    provider.content = "hello"
    text = await gateway.complete("system text", "user text", PARAMS)

    assert text == "hello"
    request = provider.requests[-1]
    assert request["url"] == "https://llm.test/v1/chat/completions"
    assert request["headers"]["authorization"] == "Bearer test-key"
    assert request["body"] == {
        "model": "test-model",
        "messages": [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "user text"},
        ],
        "temperature": 0.3,
        "max_tokens": 123,
    }


@pytest.mark.asyncio
async def test_upstream_status_is_forwarded(gateway, provider):
    provider.status_code = 429
    with pytest.raises(UpstreamError) as excinfo:
        await gateway.complete("s", "u", PARAMS)
    assert excinfo.value.status_code == 429
    assert "provider failure" in excinfo.value.body


@pytest.mark.asyncio
async def test_missing_api_key():
    gateway = CompletionGateway(api_key="")
    assert not gateway.is_available()
    with pytest.raises(ProviderNotConfigured):
        await gateway.complete("s", "u", PARAMS)


@pytest.mark.asyncio
async def test_complete_json_parsed(gateway, provider):
    provider.content = 'Sure!\n{"total_hours": 120}'
    outcome = await gateway.complete_json("s", "u", PARAMS)
    assert outcome.parsed == {"total_hours": 120}
    assert outcome.raw == provider.content
    assert outcome.error is None


@pytest.mark.asyncio
async def test_complete_json_keeps_raw_on_parse_failure(gateway, provider):
    provider.content = "I cannot produce an estimate for this brief."
    outcome = await gateway.complete_json("s", "u", PARAMS)
    assert outcome.parsed is None
    assert outcome.raw == provider.content
    assert outcome.error == PARSE_ERROR


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        "<html>Gateway maintenance</html>",
        '{"choices": ["not a message object"]}',
        '{"choices": []}',
        '["unexpected", "list"]',
    ],
)
async def test_malformed_success_body_is_upstream_error(gateway, provider, body):
    provider.body = body
    with pytest.raises(UpstreamError) as excinfo:
        await gateway.complete("s", "u", PARAMS)
    assert excinfo.value.status_code == 502
    assert excinfo.value.body == body


@pytest.mark.asyncio
async def test_null_content_is_empty_reply(gateway, provider):
    provider.body = '{"choices": [{"message": {"role": "assistant", "content": null}}]}'
    assert await gateway.complete("s", "u", PARAMS) == ""
