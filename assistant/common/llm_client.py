"""
Provider-agnostic LLM client for the CRM assistant.

This is the "text classifier" collaborator: prompt in, text out. Supports
Google Gemini, Anthropic and OpenAI behind one ``generate`` call.
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger("assistant.common.llm_client")

DEFAULT_MODELS = {
    "google": "gemini-2.0-flash",
    "anthropic": "claude-haiku-4-5-20251001",
    "openai": "gpt-4o-mini",
}


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model or DEFAULT_MODELS.get(self.provider, "")
        self.timeout = timeout
        self._client = None

        if self.provider == "google":
            if not google_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._client = genai
                self._google_models = {}
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.Anthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import OpenAI

                self._client = OpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @classmethod
    def from_config(cls, llm_config) -> "LLMClient":
        """Build a client from an ``LLMConfig`` section."""
        model = {
            "google": llm_config.google_model,
            "anthropic": llm_config.anthropic_model,
            "openai": llm_config.openai_model,
        }.get((llm_config.provider or "").lower(), "")
        return cls(
            provider=llm_config.provider,
            model=model,
            anthropic_api_key=llm_config.anthropic_api_key or None,
            openai_api_key=llm_config.openai_api_key or None,
            google_api_key=llm_config.google_api_key or None,
            timeout=llm_config.timeout,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: Optional[float] = None,
    ) -> str:
        if not self.is_available:
            raise RuntimeError("LLM client is not available")
        if timeout is None:
            timeout = self.timeout

        if self.provider == "google":
            cache_key = system or ""
            if cache_key not in self._google_models:
                kwargs = {"model_name": self.model}
                if system:
                    kwargs["system_instruction"] = system
                self._google_models[cache_key] = self._client.GenerativeModel(**kwargs)
            model = self._google_models[cache_key]
            response = model.generate_content(
                prompt,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": timeout},
            )
            return response.text.strip()

        if self.provider == "anthropic":
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout,
                **kwargs,
            )
            return response.content[0].text.strip()

        if self.provider == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            response = self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=messages,
                timeout=timeout,
            )
            return (response.choices[0].message.content or "").strip()

        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")
