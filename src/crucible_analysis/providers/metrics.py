"""Per-provider reliability metrics for the fallback orchestrator."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ProviderMetrics:
    """Counters for one provider. Lives as long as the orchestrator."""

    success_count: int = 0
    failure_count: int = 0
    fallback_count: int = 0
    last_success: datetime | None = None
    last_failure: datetime | None = None
    total_response_time_ms: float = 0.0
    average_response_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize with ISO timestamps."""
        data = asdict(self)
        for key in ("last_success", "last_failure"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class MetricsTracker:
    """
    Thread-safe registry of ProviderMetrics keyed by provider name.

    Every read-modify-write happens under one lock, so concurrent analyses
    through the same orchestrator never lose updates.
    """

    _metrics: dict[str, ProviderMetrics] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def register(self, provider: str) -> None:
        """Start tracking a provider (no-op if already tracked)."""
        with self._lock:
            self._metrics.setdefault(provider, ProviderMetrics())

    def record_success(self, provider: str, response_time_ms: float) -> None:
        with self._lock:
            metrics = self._metrics.setdefault(provider, ProviderMetrics())
            metrics.success_count += 1
            metrics.last_success = _utcnow()
            metrics.total_response_time_ms += response_time_ms
            metrics.average_response_time_ms = (
                metrics.total_response_time_ms / metrics.success_count
            )

    def record_failure(self, provider: str) -> None:
        with self._lock:
            metrics = self._metrics.setdefault(provider, ProviderMetrics())
            metrics.failure_count += 1
            metrics.last_failure = _utcnow()

    def record_fallback(self, provider: str) -> None:
        """Count an invocation of provider as the fallback."""
        with self._lock:
            self._metrics.setdefault(provider, ProviderMetrics()).fallback_count += 1

    def get(self, provider: str) -> ProviderMetrics:
        """Return a copy of one provider's metrics."""
        with self._lock:
            return replace(self._metrics.get(provider) or ProviderMetrics())

    def snapshot(self) -> dict[str, ProviderMetrics]:
        """Return copies of all tracked metrics."""
        with self._lock:
            return {name: replace(metrics) for name, metrics in self._metrics.items()}
