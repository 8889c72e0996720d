"""Translation provider abstractions."""

from __future__ import annotations

import json
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .errors import (
    TranslationProviderConfigurationError,
    TranslationProviderError,
)


@dataclass
class ProviderOptions:
    """Per-request generation settings handed to a provider."""

    model: Optional[str] = None
    temperature: float = 0.3
    max_tokens: int = 4096
    api_key: Optional[str] = None
    base_url: Optional[str] = None


class TranslationProvider(ABC):
    """Abstract adapter for text-generation services."""

    name = "provider"

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        options: ProviderOptions,
    ) -> str:
        """Send one request and return the raw response text."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original blocks (useful for testing)."""

    name = "echo"

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        options: ProviderOptions,
    ) -> str:
        _, marker, blocks = user_prompt.partition("Translate these blocks:")
        if marker:
            return blocks.strip()
        _, marker, remainder = user_prompt.partition("Original text:\n")
        if marker:
            original, _, _ = remainder.partition("\n\nYour previous translation:")
            return original
        return user_prompt


def strip_code_fence(text: str) -> str:
    """Remove leading/trailing markdown code fences if present."""

    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    # Drop opening fence and optional language hint.
    first_newline = stripped.find("\n")
    if first_newline == -1:
        return stripped
    body = stripped[first_newline + 1 :]
    closing_index = body.rfind("```")
    if closing_index != -1:
        body = body[:closing_index]
    return body.strip()


class HostedTranslationProvider(TranslationProvider):
    """Shared plumbing for SDK-backed providers.

    SDK clients are created lazily, once per ``(api_key, base_url)`` pair,
    so a single provider instance can serve every worker of a run.
    """

    DEFAULT_MODEL = ""

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug
        self._clients: Dict[Tuple[Optional[str], Optional[str]], Tuple[Any, str]] = {}

    @abstractmethod
    def _build_client(
        self,
        api_key: Optional[str],
        base_url: Optional[str],
    ) -> Tuple[Any, str]:
        """Return an SDK client and the model to use when none is requested."""

    @abstractmethod
    async def _invoke_model(
        self,
        client: Any,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        options: ProviderOptions,
    ) -> str:
        """Call the service and return the response text."""

    def _client_for(self, options: ProviderOptions) -> Tuple[Any, str]:
        key = (options.api_key, options.base_url)
        if key not in self._clients:
            self._clients[key] = self._build_client(options.api_key, options.base_url)
        return self._clients[key]

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        options: ProviderOptions,
    ) -> str:
        client, default_model = self._client_for(options)
        model = options.model or default_model

        self._log_debug("provider.request.system_prompt", system_prompt)
        self._log_debug("provider.request.user_prompt", user_prompt)

        content = await self._invoke_model(
            client,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            model=model,
            options=options,
        )
        self._log_debug("provider.response.text", content)
        return strip_code_fence(content)

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[albsub][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        for attr in ("model_dump_json", "model_dump"):
            candidate = getattr(response, attr, None)
            if candidate:
                try:
                    data = candidate()
                    if isinstance(data, str):
                        return json.loads(data)
                    return data
                except Exception:
                    continue
        return str(response)


class AnthropicTranslationProvider(HostedTranslationProvider):
    """Provider that uses the Anthropic Messages API."""

    name = "anthropic"
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def _build_client(
        self,
        api_key: Optional[str],
        base_url: Optional[str],
    ) -> Tuple[Any, str]:
        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise TranslationProviderConfigurationError(
                "Anthropic configuration missing. Set ANTHROPIC_API_KEY, pass "
                "--api-key, or choose a different provider."
            )
        try:
            from anthropic import AsyncAnthropic  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "Anthropic Python SDK not installed. Install with `pip install anthropic`."
            ) from exc

        if base_url:
            return AsyncAnthropic(api_key=api_key, base_url=base_url), self.DEFAULT_MODEL
        return AsyncAnthropic(api_key=api_key), self.DEFAULT_MODEL

    async def _invoke_model(
        self,
        client: Any,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        options: ProviderOptions,
    ) -> str:
        try:
            response = await client.messages.create(
                model=model,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as exc:
            raise TranslationProviderError(
                f"Anthropic request failed: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        blocks = getattr(response, "content", None) or []
        if blocks and getattr(blocks[0], "type", None) == "text":
            return str(blocks[0].text)
        raise TranslationProviderError("Unexpected response type from Anthropic.")


class OpenAITranslationProvider(HostedTranslationProvider):
    """Provider that uses OpenAI chat models."""

    name = "openai"
    DEFAULT_MODEL = "gpt-4o"

    def _build_client(
        self,
        api_key: Optional[str],
        base_url: Optional[str],
    ) -> Tuple[Any, str]:
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY, pass "
                "--api-key, or choose a different provider."
            )
        try:
            from openai import AsyncOpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        return AsyncOpenAI(api_key=api_key, base_url=base_url), self.DEFAULT_MODEL

    async def _invoke_model(
        self,
        client: Any,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        options: ProviderOptions,
    ) -> str:
        try:
            response = await client.chat.completions.create(
                model=model,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except Exception as exc:
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        choices = getattr(response, "choices", None) or []
        for choice in choices:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None) if message else None
            if content:
                return str(content)
        return ""


class AzureOpenAITranslationProvider(OpenAITranslationProvider):
    """OpenAI chat models served from an Azure deployment."""

    name = "azure_openai"

    def __init__(
        self,
        *,
        api_version: str | None = None,
        deployment_name: str | None = None,
        debug: bool = False,
    ) -> None:
        super().__init__(debug=debug)
        self.api_version = api_version
        self.deployment_name = deployment_name

    def _build_client(
        self,
        api_key: Optional[str],
        base_url: Optional[str],
    ) -> Tuple[Any, str]:
        api_key = api_key or os.getenv("AZURE_OPENAI_API_KEY")
        endpoint = base_url or os.getenv("AZURE_OPENAI_ENDPOINT")
        api_version = self.api_version or os.getenv("AZURE_OPENAI_API_VERSION")
        deployment_name = self.deployment_name or os.getenv(
            "AZURE_OPENAI_DEPLOYMENT_NAME"
        )

        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": api_key,
                "AZURE_OPENAI_ENDPOINT": endpoint,
                "AZURE_OPENAI_API_VERSION": api_version,
                "AZURE_OPENAI_DEPLOYMENT_NAME": deployment_name,
            }.items()
            if not value
        ]
        if missing:
            raise TranslationProviderConfigurationError(
                "Azure OpenAI configuration incomplete. Please set: "
                + ", ".join(missing)
                + "."
            )

        try:
            from openai import AsyncAzureOpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        client = AsyncAzureOpenAI(
            api_key=api_key,
            api_version=api_version,
            azure_endpoint=endpoint,
        )
        return client, deployment_name  # type: ignore[return-value]


class OllamaTranslationProvider(HostedTranslationProvider):
    """Provider backed by a local Ollama server."""

    name = "ollama"
    DEFAULT_MODEL = "llama3"
    DEFAULT_HOST = "http://localhost:11434"

    def _build_client(
        self,
        api_key: Optional[str],
        base_url: Optional[str],
    ) -> Tuple[Any, str]:
        try:
            from ollama import AsyncClient  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "Ollama Python client not installed. Install with `pip install ollama`."
            ) from exc

        return AsyncClient(host=base_url or self.DEFAULT_HOST), self.DEFAULT_MODEL

    async def _invoke_model(
        self,
        client: Any,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        options: ProviderOptions,
    ) -> str:
        try:
            response = await client.chat(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                options={
                    "temperature": options.temperature,
                    "num_predict": options.max_tokens,
                },
            )
        except Exception as exc:
            raise TranslationProviderError(f"Ollama request failed: {exc}") from exc

        try:
            content = response["message"]["content"]
        except (KeyError, TypeError) as exc:
            raise TranslationProviderError(
                "Ollama response malformed: missing message content."
            ) from exc
        return content or ""


PROVIDER_ALIASES: Dict[str, str] = {
    "anthropic": "anthropic",
    "claude": "anthropic",
    "default": "anthropic",
    "openai": "openai",
    "gpt": "openai",
    "azure_openai": "azure_openai",
    "azure-openai": "azure_openai",
    "azure_open_ai": "azure_openai",
    "azure": "azure_openai",
    "ollama": "ollama",
    "local": "ollama",
    "echo": "echo",
    "noop": "echo",
    "mock": "echo",
}


def normalise_provider_name(name: str | None) -> str:
    """Resolve a provider name or synonym to its canonical identifier."""

    normalized = (name or "anthropic").strip().lower()
    try:
        return PROVIDER_ALIASES[normalized]
    except KeyError:
        raise TranslationProviderConfigurationError(
            f"Unknown translation provider '{name}'. "
            "Supported: anthropic, openai, azure_openai, ollama, echo."
        ) from None


def build_provider(
    name: str | None,
    *,
    debug: bool = False,
    api_version: str | None = None,
    deployment_name: str | None = None,
) -> TranslationProvider:
    """Factory to create providers by name.

    ``api_version`` and ``deployment_name`` only apply to Azure OpenAI and
    fall back to the matching ``AZURE_OPENAI_*`` environment variables.
    """

    canonical = normalise_provider_name(name)
    if canonical == "anthropic":
        return AnthropicTranslationProvider(debug=debug)
    if canonical == "openai":
        return OpenAITranslationProvider(debug=debug)
    if canonical == "azure_openai":
        return AzureOpenAITranslationProvider(
            api_version=api_version,
            deployment_name=deployment_name,
            debug=debug,
        )
    if canonical == "ollama":
        return OllamaTranslationProvider(debug=debug)
    return EchoTranslationProvider()
