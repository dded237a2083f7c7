"""Unified LLM client: Anthropic first, OpenAI as fallback."""

from __future__ import annotations

import asyncio
import logging

from tech_analyst.config import Config
from tech_analyst.errors import ConfigurationError

logger = logging.getLogger(__name__)


class _AnthropicBillingError(Exception):
    """Raised when Anthropic returns a billing/credit error."""


class LLMClient:
    """Chat completion over Anthropic with OpenAI as fallback.

    Tries Anthropic first. A billing/credit error switches this client to
    OpenAI for the rest of its life; any other Anthropic error falls back to
    OpenAI for that call only (when an OpenAI key exists) and is re-raised
    otherwise, so the caller's retry policy can classify it.
    """

    def __init__(self, config: Config):
        self.config = config
        self.timeout = config.llm_timeout
        self._anthropic_failed = False
        self._active_provider: str | None = None
        self._anthropic = None
        self._openai = None

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str:
        """Send a system + user prompt and return the response text."""
        max_tokens = max_tokens or self.config.llm_max_tokens

        if not self._anthropic_failed and self.config.anthropic_api_key:
            try:
                return await asyncio.wait_for(
                    self._call_anthropic(system, user, max_tokens, temperature),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Anthropic call timed out after %ds", self.timeout)
                if not self.config.openai_api_key:
                    raise RuntimeError(f"Anthropic LLM call timed out after {self.timeout}s")
                logger.info("Falling back to OpenAI for this call")
            except _AnthropicBillingError:
                logger.warning("Anthropic billing error, switching to OpenAI for all future calls")
                self._anthropic_failed = True
            except Exception as e:
                logger.warning("Anthropic error: %s", e)
                if not self.config.openai_api_key:
                    raise
                logger.info("Falling back to OpenAI for this call")

        if self.config.openai_api_key:
            if self._active_provider != "openai":
                self._active_provider = "openai"
                logger.info("Using OpenAI (%s) for LLM calls", self.config.openai_model)
            try:
                return await asyncio.wait_for(
                    self._call_openai(system, user, max_tokens, temperature),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                raise RuntimeError(f"OpenAI LLM call timed out after {self.timeout}s")

        raise ConfigurationError(
            "No LLM provider available. Anthropic is unavailable and no "
            "OPENAI_API_KEY is set. Add OPENAI_API_KEY to your .env file as a fallback."
        )

    async def _call_anthropic(
        self, system: str, user: str, max_tokens: int, temperature: float,
    ) -> str:
        import anthropic

        if self._anthropic is None:
            self._anthropic = anthropic.AsyncAnthropic(api_key=self.config.anthropic_api_key)
        try:
            response = await self._anthropic.messages.create(
                model=self.config.anthropic_model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except anthropic.APIStatusError as e:
            if e.status_code in (400, 401, 402):
                msg = str(e).lower()
                if "credit" in msg or "balance" in msg or "billing" in msg:
                    raise _AnthropicBillingError(str(e)) from e
            raise
        self._active_provider = "anthropic"
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    async def _call_openai(
        self, system: str, user: str, max_tokens: int, temperature: float,
    ) -> str:
        from openai import AsyncOpenAI

        if self._openai is None:
            self._openai = AsyncOpenAI(api_key=self.config.openai_api_key)
        response = await self._openai.chat.completions.create(
            model=self.config.openai_model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        for client in (self._anthropic, self._openai):
            if client is not None:
                await client.close()
        self._anthropic = None
        self._openai = None
