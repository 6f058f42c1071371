"""Provider factory: builds, caches and composes analysis providers."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import TYPE_CHECKING

from crucible_analysis.config import ProviderName, Settings, get_settings
from crucible_analysis.core.exceptions import ConfigurationError
from crucible_analysis.logging import get_logger
from crucible_analysis.providers.fallback import FallbackAnalysisProvider
from crucible_analysis.providers.gemini import GeminiAnalysisProvider
from crucible_analysis.providers.openrouter import OpenRouterAnalysisProvider

if TYPE_CHECKING:
    from crucible_analysis.providers.base import AnalysisProvider

logger = get_logger(__name__)

ProviderBuilder = Callable[[Settings], "AnalysisProvider"]

DEFAULT_REGISTRY: Mapping[ProviderName, ProviderBuilder] = MappingProxyType(
    {
        ProviderName.GEMINI: GeminiAnalysisProvider.from_settings,
        ProviderName.OPENROUTER: OpenRouterAnalysisProvider.from_settings,
    }
)


def resolve_provider_name(name: str) -> ProviderName:
    """
    Normalize a configured provider name.

    Raises:
        ConfigurationError: If the name is not a supported provider.
    """
    try:
        return ProviderName(name.strip().lower())
    except ValueError:
        supported = ", ".join(p.value for p in ProviderName)
        raise ConfigurationError(
            name, f'Unknown provider: "{name}". Supported providers: {supported}'
        ) from None


class AnalysisProviderFactory:
    """
    Builds provider instances from settings and memoizes them by name.

    The cache belongs to the factory instance; construct a new factory (or
    call :meth:`clear_cache`) to start from a clean slate.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        registry: Mapping[ProviderName, ProviderBuilder] | None = None,
    ) -> None:
        """
        Initialize the factory.

        Args:
            settings: Settings to build providers from. Defaults to get_settings().
            registry: Builders per provider name. Defaults to DEFAULT_REGISTRY.
        """
        self._settings = settings if settings is not None else get_settings()
        self._registry = MappingProxyType(dict(registry or DEFAULT_REGISTRY))
        self._cache: dict[str, AnalysisProvider] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings

    def available_providers(self) -> list[str]:
        """Names of all registered providers."""
        return [name.value for name in self._registry]

    def is_provider_available(self, name: str) -> bool:
        """Return True if name is a registered provider."""
        return name.strip().lower() in self.available_providers()

    def _get_or_create(self, key: str, build: Callable[[], AnalysisProvider]) -> AnalysisProvider:
        # Construction happens under the lock so racing first callers share one instance
        with self._lock:
            provider = self._cache.get(key)
            if provider is None:
                provider = build()
                self._cache[key] = provider
                logger.info("provider_created", provider=key)
            return provider

    def get_provider(self, name: str | None = None) -> AnalysisProvider:
        """
        Get the provider for name, building it on first use.

        Args:
            name: Provider name. Defaults to the configured ANALYSIS_PROVIDER.

        Returns:
            The cached provider instance for that name.

        Raises:
            ConfigurationError: If the name is unknown or the provider's
                configuration is incomplete.
        """
        provider_name = resolve_provider_name(name or self._settings.analysis_provider)
        if provider_name not in self._registry:
            raise ConfigurationError(provider_name.value, f"Provider not registered: {provider_name.value}")

        builder = self._registry[provider_name]
        return self._get_or_create(provider_name.value, lambda: builder(self._settings))

    def get_fallback_provider(self) -> AnalysisProvider:
        """The designated fallback provider (ANALYSIS_FALLBACK_PROVIDER)."""
        return self.get_provider(self._settings.analysis_fallback_provider)

    def get_primary_provider(self) -> AnalysisProvider:
        """
        Get the provider callers should use for analysis.

        Returns the raw primary provider when fallback is disabled or when the
        primary already is the designated fallback; otherwise a cached
        FallbackAnalysisProvider wrapping primary and fallback.
        """
        primary_name = resolve_provider_name(self._settings.analysis_provider)
        primary = self.get_provider(primary_name.value)

        if not self._settings.enable_analysis_fallback:
            logger.debug("fallback_disabled", provider=primary.name)
            return primary

        fallback_name = resolve_provider_name(self._settings.analysis_fallback_provider)
        if primary_name == fallback_name:
            logger.debug("fallback_same_as_primary", provider=primary.name)
            return primary

        fallback = self.get_provider(fallback_name.value)
        key = f"{primary_name.value}-with-{fallback_name.value}-fallback"
        return self._get_or_create(key, lambda: FallbackAnalysisProvider(primary, fallback))

    def clear_cache(self) -> None:
        """Forget every cached provider."""
        with self._lock:
            self._cache.clear()
        logger.info("provider_cache_cleared")

    async def get_all_provider_health(self) -> dict[str, bool]:
        """
        Check health of every registered provider.

        Providers that cannot even be constructed (e.g. missing credentials)
        are reported as unhealthy.
        """
        health: dict[str, bool] = {}
        for name in self.available_providers():
            try:
                provider = self.get_provider(name)
            except ConfigurationError as e:
                logger.warning("provider_health_unavailable", provider=name, error=e.message)
                health[name] = False
                continue
            health[name] = await provider.is_healthy()
        return health

    async def aclose(self) -> None:
        """Release resources held by cached providers."""
        with self._lock:
            providers = list(self._cache.values())
        for provider in providers:
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()


@lru_cache
def get_provider_factory() -> AnalysisProviderFactory:
    """Process-wide factory built from get_settings()."""
    return AnalysisProviderFactory()


def reset_provider_factory() -> None:
    """Drop the process-wide factory and settings (tests, reconfiguration)."""
    get_provider_factory.cache_clear()
    get_settings.cache_clear()
