"""OpenRouter analysis provider (OpenAI-compatible chat completions over httpx)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from crucible_analysis.config import PROVIDER_CONFIGS, ProviderName
from crucible_analysis.core.exceptions import (
    ConfigurationError,
    ProviderTimeoutError,
    ResponseParsingError,
    ServiceError,
    error_for_status,
)
from crucible_analysis.logging import get_logger
from crucible_analysis.prompts import SYSTEM_PROMPT
from crucible_analysis.providers.base import DEFAULT_TIMEOUT, BaseAnalysisProvider

if TYPE_CHECKING:
    from crucible_analysis.config import Settings

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


def _error_detail(response: httpx.Response) -> str | None:
    """Extract ``error.message`` from an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message")
    return None


class OpenRouterAnalysisProvider(BaseAnalysisProvider):
    """Analysis provider backed by the OpenRouter API."""

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        app_name: str = "Crucible Solution Analysis",
        site_url: str = "http://localhost:5173",
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int | None = None,
        retry_delay_base: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize OpenRouter provider.

        Args:
            api_key: OpenRouter API key.
            model: Model slug (``vendor/model``). Defaults to config default.
            base_url: API root, without trailing slash.
            app_name: Sent as ``X-Title``.
            site_url: Sent as ``HTTP-Referer``.
            timeout: Per-call timeout in seconds.
            max_attempts: Retry ceiling. Defaults to MAX_ATTEMPTS.
            retry_delay_base: Backoff unit in seconds. Defaults to RETRY_DELAY_BASE.
            client: Pre-built HTTP client (tests). Not closed by :meth:`aclose`.

        Raises:
            ConfigurationError: If no API key is given.
        """
        if not api_key:
            raise ConfigurationError(
                ProviderName.OPENROUTER.value,
                "OPENROUTER_API_KEY is required for OpenRouter provider",
            )

        super().__init__(timeout=timeout, max_attempts=max_attempts, retry_delay_base=retry_delay_base)
        self._config = PROVIDER_CONFIGS[ProviderName.OPENROUTER]
        self._api_key = api_key
        self._model = model or self._config.default_model
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._site_url = site_url
        self._client = client
        self._owns_client = client is None

        logger.info("provider_initialized", provider=self.name, model=self._model)

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenRouterAnalysisProvider:
        """Build the provider from application settings."""
        return cls(
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_analysis_model,
            base_url=settings.openrouter_base_url,
            app_name=settings.openrouter_title,
            site_url=settings.openrouter_referer,
            timeout=settings.analysis_provider_timeout,
            max_attempts=settings.analysis_max_attempts,
            retry_delay_base=settings.analysis_retry_delay_base,
        )

    @property
    def name(self) -> str:
        """Return the provider name."""
        return ProviderName.OPENROUTER.value

    @property
    def model(self) -> str:
        """Return the model name."""
        return self._model

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._site_url,
            "X-Title": self._app_name,
        }

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_output_tokens,
            "top_p": self._config.top_p,
        }

    async def _call_api(self, prompt: str) -> str:
        client = self._get_client()

        logger.debug("openrouter_request", model=self._model, prompt_chars=len(prompt))

        try:
            response = await client.post(
                f"{self._base_url}/chat/completions",
                headers=self._headers(),
                json=self._request_body(prompt),
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                self.name,
                f"Request timed out after {self._timeout}s",
                timeout=self._timeout,
            ) from e
        except httpx.RequestError as e:
            raise ServiceError(self.name, f"OpenRouter connection error: {e}") from e

        if not response.is_success:
            raise error_for_status(self.name, response.status_code, _error_detail(response))

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
            if content is not None and not isinstance(content, str):
                raise TypeError(f"message content is {type(content).__name__}, not text")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ResponseParsingError(
                self.name,
                "Invalid response format from OpenRouter API",
                raw_response=response.text,
            ) from e

        logger.debug("openrouter_response_received", model=self._model)
        return content or ""

    async def _check_health(self) -> bool:
        response = await self._get_client().get(
            f"{self._base_url}/models",
            headers=self._headers(),
        )
        response.raise_for_status()
        body = response.json()
        return bool(isinstance(body, dict) and body.get("data"))

    def _extra_configuration(self) -> dict[str, Any]:
        return {"base_url": self._base_url}

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
