from unittest.mock import MagicMock

import httpx
import openai
import pytest

from services.llm_factory import LLMFactory, LLMProvider, MissingCredentialError
from services.llm_service import (
    EMPTY_RESPONSE_MESSAGE,
    OVERLOADED_MESSAGE,
    RATE_LIMIT_MESSAGE,
    LLMGenerationError,
    LLMJSONParseError,
    OpenAIChatProvider,
    ProviderUnavailableError,
    parse_json_response,
)

REQUEST = httpx.Request("POST", "https://api.avalai.ir/v1/chat/completions")


def status_error(cls, status_code: int, message: str):
    return cls(message, response=httpx.Response(status_code, request=REQUEST), body=None)


def completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def provider_with(result=None, error=None) -> OpenAIChatProvider:
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.return_value = result
    return OpenAIChatProvider(client, "gemini-2.5-flash")


def test_json_mode_sets_response_format():
    provider = provider_with(completion('{"a": 1}'))
    messages = [{"role": "user", "content": "hi"}]

    assert provider.complete(messages, json_mode=True, temperature=0.8, top_p=0.95) == '{"a": 1}'

    params = provider.client.chat.completions.create.call_args.kwargs
    assert params["model"] == "gemini-2.5-flash"
    assert params["response_format"] == {"type": "json_object"}
    assert params["top_p"] == 0.95
    assert params["temperature"] == 0.8


def test_plain_mode_omits_optional_params():
    provider = provider_with(completion("Hello"))
    provider.complete([{"role": "user", "content": "سلام"}])

    params = provider.client.chat.completions.create.call_args.kwargs
    assert "response_format" not in params
    assert "top_p" not in params


def test_empty_content_is_an_error():
    provider = provider_with(completion(None))
    with pytest.raises(LLMGenerationError) as exc:
        provider.complete([])
    assert exc.value.message == EMPTY_RESPONSE_MESSAGE
    assert exc.value.status_code == 500


def test_rate_limit_maps_to_429():
    provider = provider_with(error=status_error(openai.RateLimitError, 429, "quota"))
    with pytest.raises(ProviderUnavailableError) as exc:
        provider.complete([])
    assert exc.value.status_code == 429
    assert exc.value.message == RATE_LIMIT_MESSAGE


@pytest.mark.parametrize("status_code,message", [
    (503, "Service Unavailable"),
    (500, "The model is overloaded. Please try again later."),
])
def test_overload_maps_to_503(status_code, message):
    provider = provider_with(error=status_error(openai.APIStatusError, status_code, message))
    with pytest.raises(ProviderUnavailableError) as exc:
        provider.complete([])
    assert exc.value.status_code == 503
    assert exc.value.message == OVERLOADED_MESSAGE


def test_other_status_passes_through():
    provider = provider_with(error=status_error(openai.AuthenticationError, 401, "Invalid API key"))
    with pytest.raises(LLMGenerationError) as exc:
        provider.complete([])
    assert exc.value.status_code == 401
    assert exc.value.message == "فراخوانی API با شکست مواجه شد: Invalid API key"


def test_connection_error_maps_to_503():
    provider = provider_with(error=openai.APIConnectionError(request=REQUEST))
    with pytest.raises(ProviderUnavailableError) as exc:
        provider.complete([])
    assert exc.value.status_code == 503


def test_parse_json_strips_markdown_fence():
    assert parse_json_response('```json\n{"items": []}\n```') == {"items": []}
    assert parse_json_response('  {"items": [1]}  ') == {"items": [1]}


def test_parse_json_error_keeps_raw_text():
    with pytest.raises(LLMJSONParseError) as exc:
        parse_json_response("I am not JSON")
    assert exc.value.raw_text == "I am not JSON"
    assert "I am not JSON" in exc.value.message


# ------------------------------------------------------------
# Factory
# ------------------------------------------------------------
def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(MissingCredentialError):
        LLMFactory.get_client(LLMProvider.GEMINI)


def test_client_is_cached_per_configuration(monkeypatch):
    monkeypatch.setenv("AVALAI_API_KEY", "test-key")
    monkeypatch.delenv("AVALAI_BASE_URL", raising=False)

    first = LLMFactory.get_client(LLMProvider.AVALAI)
    assert LLMFactory.get_client(LLMProvider.AVALAI) is first
    assert str(first.base_url).startswith("https://api.avalai.ir/v1")
    assert first.max_retries == 0

    monkeypatch.setenv("AVALAI_API_KEY", "rotated-key")
    assert LLMFactory.get_client(LLMProvider.AVALAI) is not first


def test_unknown_provider_falls_back(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "ollama")
    assert LLMFactory.get_provider() == LLMProvider.AVALAI


def test_default_model(monkeypatch):
    monkeypatch.delenv("LLM_MODEL", raising=False)
    assert LLMFactory.get_default_model(LLMProvider.GEMINI) == "gemini-2.5-flash"
    assert LLMFactory.get_default_model(LLMProvider.OPENAI) == "gpt-4o-mini"


@pytest.mark.parametrize("raw", ['{"score": NaN}', '{"score": Infinity}', '{"score": -Infinity}'])
def test_parse_json_rejects_non_finite_constants(raw):
    with pytest.raises(LLMJSONParseError) as exc:
        parse_json_response(raw)
    assert exc.value.raw_text == raw


def test_malformed_timeout_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("LLM_TIMEOUT", "sixty")

    client = LLMFactory.get_client(LLMProvider.OPENAI)
    assert client.timeout == 60.0
