"""Google Gemini analysis provider."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from google.genai import errors as genai_errors

from crucible_analysis.config import PROVIDER_CONFIGS, ProviderName
from crucible_analysis.core.exceptions import (
    ConfigurationError,
    ModelOverloadError,
    error_for_status,
)
from crucible_analysis.logging import get_logger
from crucible_analysis.providers.base import DEFAULT_TIMEOUT, BaseAnalysisProvider

if TYPE_CHECKING:
    from google.genai import Client

    from crucible_analysis.config import Settings

logger = get_logger(__name__)

HEALTH_CHECK_PROMPT = "Test health check"

_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HARASSMENT",
)


class GeminiAnalysisProvider(BaseAnalysisProvider):
    """Analysis provider backed by Google's Gemini models."""

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int | None = None,
        retry_delay_base: float | None = None,
        client: Client | None = None,
    ) -> None:
        """
        Initialize Gemini provider.

        Args:
            api_key: Google API key.
            model: Model name to use. Defaults to config default.
            timeout: Per-call timeout in seconds.
            max_attempts: Retry ceiling. Defaults to MAX_ATTEMPTS.
            retry_delay_base: Backoff unit in seconds. Defaults to RETRY_DELAY_BASE.
            client: Pre-built genai client (tests).

        Raises:
            ConfigurationError: If no API key is given.
        """
        if not api_key:
            raise ConfigurationError(
                ProviderName.GEMINI.value, "GEMINI_API_KEY or GEMINI_PRO_API_KEY is required"
            )

        super().__init__(timeout=timeout, max_attempts=max_attempts, retry_delay_base=retry_delay_base)
        self._config = PROVIDER_CONFIGS[ProviderName.GEMINI]
        self._api_key = api_key
        self._model = model or self._config.default_model
        self._client = client

        logger.info("provider_initialized", provider=self.name, model=self._model)

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiAnalysisProvider:
        """Build the provider from application settings."""
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.analysis_provider_timeout,
            max_attempts=settings.analysis_max_attempts,
            retry_delay_base=settings.analysis_retry_delay_base,
        )

    @property
    def name(self) -> str:
        """Return the provider name."""
        return ProviderName.GEMINI.value

    @property
    def model(self) -> str:
        """Return the model name."""
        return self._model

    def _get_client(self) -> Client:
        """Get or create the Gemini client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _generation_config(self) -> Any:
        """JSON-mode generation config with relaxed safety thresholds."""
        from google.genai import types

        return types.GenerateContentConfig(
            temperature=self._config.temperature,
            top_k=32,
            top_p=self._config.top_p,
            response_mime_type="application/json",
            max_output_tokens=self._config.max_output_tokens,
            safety_settings=[
                types.SafetySetting(
                    category=getattr(types.HarmCategory, category),
                    threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
                )
                for category in _SAFETY_CATEGORIES
            ],
        )

    async def _call_api(self, prompt: str) -> str:
        client = self._get_client()

        logger.debug("gemini_request", model=self._model, prompt_chars=len(prompt))

        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=self._generation_config(),
            )
        except genai_errors.APIError as e:
            detail = e.message or e.status or str(e)
            if "overloaded" in str(detail).lower():
                raise ModelOverloadError(
                    self.name,
                    "The AI model is currently overloaded. Please try again later.",
                    status_code=e.code,
                ) from e
            raise error_for_status(self.name, e.code or 500, str(detail)) from e

        logger.debug("gemini_response_received", model=self._model)
        return response.text or ""

    async def _check_health(self) -> bool:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self._model,
            contents=HEALTH_CHECK_PROMPT,
        )
        return bool(response.text)
