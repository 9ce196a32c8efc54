"""Generative-text client supporting OpenAI and Anthropic.

Usage:
    client = AIClient.from_settings(settings)

    text = await client.chat(
        messages=[
            {"role": "system", "content": "You are an instructional designer."},
            {"role": "user", "content": "Write a remedial lesson on fractions."},
        ],
        use_case="remediation",  # "lesson", "remediation", or None for default
        temperature=0.4,
    )
    # text is the raw, unstructured assistant response

Provider is auto-detected per use case from the model name:
  - Models starting with "claude-" route to Anthropic
  - Everything else routes to OpenAI
One AIClient is created per process (see server.lifespan) and injected
into request handlers; it holds no per-request state.
"""

import asyncio
import logging
from enum import Enum

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


# Known Anthropic model prefixes for auto-detection
_ANTHROPIC_PREFIXES = ("claude-",)


class AIClient:
    def __init__(
        self,
        *,
        api_key: str,
        model_name: str,
        ai_provider: str = "openai",
        anthropic_api_key: str = "",
        lesson_model: str = "",
        remediation_model: str = "",
        timeout_seconds: float = 30.0,
        max_attempts: int = 1,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.ai_provider = ai_provider
        self.anthropic_api_key = anthropic_api_key
        self.lesson_model = lesson_model
        self.remediation_model = remediation_model
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self._openai = None
        self._anthropic = None

    @classmethod
    def from_settings(cls, settings) -> "AIClient":
        return cls(
            api_key=settings.api_key,
            model_name=settings.model_name,
            ai_provider=settings.ai_provider,
            anthropic_api_key=settings.anthropic_api_key,
            lesson_model=settings.lesson_model,
            remediation_model=settings.remediation_model,
            timeout_seconds=settings.ai_timeout_seconds,
            max_attempts=settings.ai_max_attempts,
        )

    def resolve_model(self, use_case: str | None) -> str:
        """Pick the model name based on the use case and config overrides."""
        if use_case == "lesson" and self.lesson_model:
            return self.lesson_model
        if use_case == "remediation" and self.remediation_model:
            return self.remediation_model
        return self.model_name

    def detect_provider(self, model: str) -> AIProvider:
        """Auto-detect the provider from the model name.

        Models starting with 'claude-' are routed to Anthropic.
        Everything else uses the configured ai_provider (default: OpenAI).
        """
        model_lower = model.lower()
        for prefix in _ANTHROPIC_PREFIXES:
            if model_lower.startswith(prefix):
                return AIProvider.ANTHROPIC
        try:
            return AIProvider(self.ai_provider.lower())
        except ValueError:
            return AIProvider.OPENAI

    async def chat(
        self,
        messages: list[dict],
        *,
        use_case: str | None = None,
        temperature: float = 0.7,
        json_mode: bool = False,
        max_tokens: int = 4096,
    ) -> str:
        """Send a chat completion and return the assistant text.

        Each attempt is bounded by timeout_seconds; asyncio.TimeoutError is
        raised when it runs out. With max_attempts > 1, failed attempts are
        retried with exponential backoff.
        """
        model = self.resolve_model(use_case)
        provider = self.detect_provider(model)

        if provider == AIProvider.OPENAI:
            call = self._openai_chat
        elif provider == AIProvider.ANTHROPIC:
            call = self._anthropic_chat
        else:
            raise ValueError(f"Unknown AI provider: {provider}")

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=30),
            retry=retry_if_exception_type(Exception),
            before_sleep=lambda retry_state: logger.warning(
                "%s call failed (attempt %d), retrying: %s",
                provider.value,
                retry_state.attempt_number,
                retry_state.outcome.exception(),
            ),
            reraise=True,
        ):
            with attempt:
                return await asyncio.wait_for(
                    call(messages, model, temperature, json_mode, max_tokens),
                    timeout=self.timeout_seconds,
                )

    async def _openai_chat(
        self,
        messages: list[dict],
        model: str,
        temperature: float,
        json_mode: bool,
        max_tokens: int,
    ) -> str:
        if self._openai is None:
            from openai import AsyncOpenAI
            self._openai = AsyncOpenAI(api_key=self.api_key)

        kwargs: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._openai.chat.completions.create(**kwargs)
        return response.choices[0].message.content

    async def _anthropic_chat(
        self,
        messages: list[dict],
        model: str,
        temperature: float,
        json_mode: bool,
        max_tokens: int,
    ) -> str:
        if self._anthropic is None:
            import anthropic
            self._anthropic = anthropic.AsyncAnthropic(api_key=self.anthropic_api_key)

        # Anthropic uses a separate system parameter, not a system message
        system_text = ""
        chat_messages = []
        for msg in messages:
            if msg["role"] == "system":
                system_text += msg["content"] + "\n"
            else:
                chat_messages.append({"role": msg["role"], "content": msg["content"]})

        if json_mode:
            system_text += "\nYou MUST respond with valid JSON only. No other text.\n"

        kwargs: dict = {
            "model": model,
            "messages": chat_messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if system_text.strip():
            kwargs["system"] = system_text.strip()

        response = await self._anthropic.messages.create(**kwargs)
        return response.content[0].text
