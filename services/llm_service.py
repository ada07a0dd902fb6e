import re
import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import openai
from openai import OpenAI

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "سرویس هوش مصنوعی در حال حاضر با محدودیت تعداد درخواست مواجه است. لطفاً چند لحظه دیگر دوباره تلاش کنید."
OVERLOADED_MESSAGE = "سرویس هوش مصنوعی در حال حاضر در دسترس نیست یا بیش از حد شلوغ است. لطفاً بعداً دوباره تلاش کنید."
EMPTY_RESPONSE_MESSAGE = "پاسخ دریافتی از API فاقد محتوای متنی است یا به دلیل خط‌مشی‌های ایمنی مسدود شده است."

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _reject_constant(name: str):
    # NaN and Infinity are not JSON and cannot be sent back to the client
    raise ValueError(f"Non-finite number {name} in model output")


class LLMGenerationError(Exception):
    """Raised when the LLM fails to generate a response."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProviderUnavailableError(LLMGenerationError):
    """Raised when the provider is rate limited, overloaded or unreachable."""
    pass


class LLMJSONParseError(Exception):
    """Raised when the LLM response cannot be parsed as JSON."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text


class ChatProvider(Protocol):
    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        json_mode: bool = False,
        temperature: float = 0.7,
        top_p: Optional[float] = None,
    ) -> str:
        ...


class OpenAIChatProvider:
    """
    Chat completions against any OpenAI-compatible endpoint.
    One call per request: no retries, no streaming.
    """

    def __init__(self, client: OpenAI, model: str):
        self.client = client
        self.model = model

    def complete(self, messages, *, json_mode=False, temperature=0.7, top_p=None) -> str:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if top_p is not None:
            params["top_p"] = top_p
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(**params)
        except openai.RateLimitError as e:
            logger.warning(f"Provider rate limited the request: {e}")
            raise ProviderUnavailableError(RATE_LIMIT_MESSAGE, status_code=429) from e
        except openai.APIStatusError as e:
            if e.status_code in (502, 503, 504) or "overloaded" in str(e).lower():
                logger.warning(f"Provider unavailable ({e.status_code}): {e}")
                raise ProviderUnavailableError(OVERLOADED_MESSAGE, status_code=503) from e
            logger.error(f"Provider returned status {e.status_code}: {e}")
            raise LLMGenerationError(
                f"فراخوانی API با شکست مواجه شد: {e.message}",
                status_code=e.status_code or 500,
            ) from e
        except openai.APIConnectionError as e:
            logger.warning(f"Provider unreachable: {e}")
            raise ProviderUnavailableError(OVERLOADED_MESSAGE, status_code=503) from e

        if not response.choices or not response.choices[0].message.content:
            logger.error("LLM returned empty response or no content")
            raise LLMGenerationError(EMPTY_RESPONSE_MESSAGE)

        return response.choices[0].message.content


def parse_json_response(content: str) -> Any:
    """
    Parses the raw model text as JSON. Some gateways wrap JSON mode output
    in a markdown fence even when asked not to, so a single fence is removed.
    Raises:
        LLMJSONParseError: If the text is not valid JSON.
    """
    text = (content or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        logger.error(f"Failed to parse LLM JSON response: {e}. Content: {content}")
        raise LLMJSONParseError(
            f"پاسخ دریافتی از API یک JSON معتبر نیست. پاسخ دریافت شده: {content}",
            raw_text=content,
        ) from e
