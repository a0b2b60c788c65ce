"""
Unit tests for generative backends, the request counter and backend selection.
"""
from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from pedmed.core.config import Settings
from pedmed.core.exceptions import GenerativeBackendError, QuotaExceededError
from pedmed.generation.backends import (
    GROQ_DAILY_LIMIT,
    AzureOpenAIBackend,
    ChatCompletionBackend,
    OpenAICompatibleBackend,
    RequestCounter,
    create_backend,
)


class FakeCompletions:
    def __init__(self, content="Liều 40 mg/kg.", error=None):
        self.content = content
        self.error = error
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestChatCompletionBackend:
    def test_generate(self):
        completions = FakeCompletions(content="  Liều 40 mg/kg.  ")
        backend = ChatCompletionBackend(fake_client(completions), model="gpt-4o-mini")

        assert backend.generate("prompt", timeout=3) == "Liều 40 mg/kg."
        request = completions.requests[0]
        assert request["model"] == "gpt-4o-mini"
        assert request["timeout"] == 3
        assert [m["role"] for m in request["messages"]] == ["system", "user"]
        assert request["messages"][1]["content"] == "prompt"

    def test_empty_answer(self):
        backend = ChatCompletionBackend(fake_client(FakeCompletions(content="")), model="m")
        with pytest.raises(GenerativeBackendError):
            backend.generate("prompt", timeout=3)

    def test_client_error_is_wrapped(self):
        backend = ChatCompletionBackend(fake_client(FakeCompletions(error=OpenAIError("boom"))), model="m")
        with pytest.raises(GenerativeBackendError, match="boom"):
            backend.generate("prompt", timeout=3)

    def test_quota(self):
        backend = OpenAICompatibleBackend(
            fake_client(FakeCompletions()), model="m", name="groq", counter=RequestCounter(daily_limit=1),
        )
        backend.generate("prompt", timeout=3)
        with pytest.raises(QuotaExceededError) as excinfo:
            backend.generate("prompt", timeout=3)
        assert excinfo.value.backend == "groq"


class TestRequestCounter:
    def test_limit(self):
        counter = RequestCounter(daily_limit=2)
        assert counter.acquire() == 1
        assert counter.acquire() == 2
        with pytest.raises(QuotaExceededError):
            counter.acquire()

    def test_unlimited(self):
        counter = RequestCounter()
        for _ in range(100):
            counter.acquire()
        assert counter.status()["remaining"] is None

    def test_day_rollover(self):
        today = [date(2024, 1, 1)]
        counter = RequestCounter(daily_limit=1, today=lambda: today[0])
        counter.acquire()
        with pytest.raises(QuotaExceededError):
            counter.acquire()

        today[0] += timedelta(days=1)
        assert counter.acquire() == 1

    def test_reset_and_status(self):
        counter = RequestCounter(daily_limit=5, today=lambda: date(2024, 1, 1))
        counter.acquire()
        counter.acquire()
        assert counter.status() == {"day": "2024-01-01", "used": 2, "limit": 5, "remaining": 3}
        counter.reset()
        assert counter.status()["used"] == 0


class TestCreateBackend:
    def test_none(self):
        assert create_backend(Settings(GENERATIVE_PROVIDER="none")) is None

    def test_missing_credentials(self):
        settings = Settings(GENERATIVE_PROVIDER="openai", OPENAI_API_KEY=None)
        assert create_backend(settings) is None

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="bogus"):
            create_backend(Settings(GENERATIVE_PROVIDER="bogus"))

    def test_groq(self):
        backend = create_backend(Settings(GENERATIVE_PROVIDER="groq", GROQ_API_KEY="gsk-test"))
        assert isinstance(backend, OpenAICompatibleBackend)
        assert backend.name == "groq"
        assert backend.counter.daily_limit == GROQ_DAILY_LIMIT

    def test_azure(self):
        settings = Settings(
            GENERATIVE_PROVIDER="Azure",
            AZURE_OPENAI_API_KEY="key",
            AZURE_OPENAI_ENDPOINT="https://example.openai.azure.com",
        )
        backend = create_backend(settings)
        assert isinstance(backend, AzureOpenAIBackend)
        assert backend.model == settings.AZURE_OPENAI_CHAT_DEPLOYMENT
