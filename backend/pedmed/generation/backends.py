"""
Generative backends: pluggable ``generate(prompt, timeout) -> str`` capability.

Backends are selected explicitly from settings (GENERATIVE_PROVIDER) through
BACKEND_FACTORIES. A backend is never probed by trial and error; an
unconfigured provider simply yields no backend and the deterministic answer
is used.

All backends are untrusted: the response assembler catches any error they
raise and falls back.
"""
import logging
import threading
from datetime import date
from typing import Callable, Dict, Optional, Protocol

from openai import AzureOpenAI, OpenAI, OpenAIError

from pedmed.core.config import Settings, settings as default_settings
from pedmed.core.exceptions import GenerativeBackendError, QuotaExceededError
from pedmed.generation.prompt_template import format_system_prompt

logger = logging.getLogger(__name__)

GROQ_DAILY_LIMIT = 14400


class GenerativeBackend(Protocol):
    name: str

    def generate(self, prompt: str, timeout: float) -> str:
        ...


class RequestCounter:
    """
    Daily request counter for one backend.

    Thread-safe; the count resets when the calendar day changes.

    Usage:
        counter = RequestCounter(daily_limit=14400)
        counter.acquire("groq")   # raises QuotaExceededError at the limit
    """

    def __init__(self, daily_limit: Optional[int] = None, today: Callable[[], date] = date.today):
        self.daily_limit = daily_limit
        self._today = today
        self._lock = threading.Lock()
        self._day = today()
        self._count = 0

    def _roll_over(self) -> None:
        current = self._today()
        if current != self._day:
            self._day = current
            self._count = 0

    def acquire(self, backend: str = "backend") -> int:
        with self._lock:
            self._roll_over()
            if self.daily_limit is not None and self._count >= self.daily_limit:
                raise QuotaExceededError(backend, self.daily_limit)
            self._count += 1
            return self._count

    def reset(self) -> None:
        with self._lock:
            self._day = self._today()
            self._count = 0

    def status(self) -> Dict:
        with self._lock:
            self._roll_over()
            remaining = None if self.daily_limit is None else max(self.daily_limit - self._count, 0)
            return {
                "day": self._day.isoformat(),
                "used": self._count,
                "limit": self.daily_limit,
                "remaining": remaining,
            }


class ChatCompletionBackend:
    """
    Backend over any client exposing ``chat.completions.create``.

    The client is built with ``max_retries=0``: the caller's timeout bounds
    the whole call and a failure goes straight to the fallback answer.
    """

    name = "chat"

    def __init__(
        self,
        client,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 400,
        counter: Optional[RequestCounter] = None,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.counter = counter or RequestCounter()

    def generate(self, prompt: str, timeout: float) -> str:
        self.counter.acquire(self.name)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": format_system_prompt()},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=timeout,
            )
        except OpenAIError as e:
            raise GenerativeBackendError(f"{self.name} request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerativeBackendError(f"{self.name} returned an empty answer")
        return content.strip()


class AzureOpenAIBackend(ChatCompletionBackend):
    name = "azure"

    @classmethod
    def from_settings(cls, settings: Settings, counter: Optional[RequestCounter] = None) -> "AzureOpenAIBackend":
        client = AzureOpenAI(
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            max_retries=0,
        )
        return cls(
            client,
            model=settings.AZURE_OPENAI_CHAT_DEPLOYMENT,
            temperature=settings.GENERATIVE_TEMPERATURE,
            max_tokens=settings.GENERATIVE_MAX_TOKENS,
            counter=counter,
        )


class OpenAICompatibleBackend(ChatCompletionBackend):
    """OpenAI or any OpenAI-compatible endpoint (Groq via its /openai/v1 URL)."""

    name = "openai"

    def __init__(self, client, model: str, name: Optional[str] = None, **kwargs):
        super().__init__(client, model, **kwargs)
        if name:
            self.name = name

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        name: str = "openai",
        counter: Optional[RequestCounter] = None,
    ) -> "OpenAICompatibleBackend":
        client = OpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        return cls(
            client,
            model=model,
            name=name,
            temperature=settings.GENERATIVE_TEMPERATURE,
            max_tokens=settings.GENERATIVE_MAX_TOKENS,
            counter=counter,
        )


def _azure(settings: Settings) -> Optional[GenerativeBackend]:
    if not (settings.AZURE_OPENAI_API_KEY and settings.AZURE_OPENAI_ENDPOINT):
        return None
    return AzureOpenAIBackend.from_settings(settings, RequestCounter(settings.GENERATIVE_DAILY_LIMIT))


def _openai(settings: Settings) -> Optional[GenerativeBackend]:
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAICompatibleBackend.from_settings(
        settings,
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        base_url=settings.OPENAI_BASE_URL,
        counter=RequestCounter(settings.GENERATIVE_DAILY_LIMIT),
    )


def _groq(settings: Settings) -> Optional[GenerativeBackend]:
    if not settings.GROQ_API_KEY:
        return None
    return OpenAICompatibleBackend.from_settings(
        settings,
        api_key=settings.GROQ_API_KEY,
        model=settings.GROQ_MODEL,
        base_url=settings.GROQ_BASE_URL,
        name="groq",
        counter=RequestCounter(settings.GENERATIVE_DAILY_LIMIT or GROQ_DAILY_LIMIT),
    )


BACKEND_FACTORIES: Dict[str, Callable[[Settings], Optional[GenerativeBackend]]] = {
    "azure": _azure,
    "openai": _openai,
    "groq": _groq,
}


def create_backend(settings: Optional[Settings] = None) -> Optional[GenerativeBackend]:
    """
    Build the configured backend, or None for deterministic answers only.

    Raises:
        ValueError: GENERATIVE_PROVIDER names an unknown provider
    """
    settings = settings or default_settings
    provider = (settings.GENERATIVE_PROVIDER or "none").strip().lower()
    if provider == "none":
        logger.info("No generative backend configured, using deterministic answers")
        return None

    factory = BACKEND_FACTORIES.get(provider)
    if factory is None:
        raise ValueError(
            f"Unknown GENERATIVE_PROVIDER '{provider}'. "
            f"Expected one of: none, {', '.join(BACKEND_FACTORIES)}"
        )

    backend = factory(settings)
    if backend is None:
        logger.warning(f"Generative provider '{provider}' selected but not configured (missing credentials)")
    else:
        logger.info(f"Generative backend ready: {provider}", extra={"provider": provider})
    return backend
