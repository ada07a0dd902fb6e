import os

# Must be set before api.main is imported by any test module
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ.setdefault("APP_ENV", "test")

import pytest

from api.dependencies.provider import get_provider
from api.main import app


class FakeProvider:
    """Stands in for the LLM provider; records every call it receives."""

    def __init__(self, reply: str = "", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, messages, *, json_mode=False, temperature=0.7, top_p=None):
        self.calls.append({
            "messages": messages,
            "json_mode": json_mode,
            "temperature": temperature,
            "top_p": top_p,
        })
        if self.error:
            raise self.error
        return self.reply

    @property
    def last_prompt(self) -> str:
        return self.calls[-1]["messages"][-1]["content"]


@pytest.fixture
def fake_provider():
    provider = FakeProvider()
    app.dependency_overrides[get_provider] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_provider, None)
