"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import Generator

# Every variable the settings layer reads; cleared so a developer's shell or
# .env never leaks into unit tests.
SETTINGS_ENV_VARS = (
    "ANALYSIS_PROVIDER",
    "ENABLE_ANALYSIS_FALLBACK",
    "ANALYSIS_FALLBACK_PROVIDER",
    "ANALYSIS_PROVIDER_TIMEOUT",
    "ANALYSIS_MAX_ATTEMPTS",
    "ANALYSIS_RETRY_DELAY_BASE",
    "GEMINI_API_KEY",
    "GEMINI_PRO_API_KEY",
    "GEMINI_MODEL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_ANALYSIS_MODEL",
    "OPENROUTER_BASE_URL",
    "OPENROUTER_TITLE",
    "OPENROUTER_REFERER",
    "LOG_LEVEL",
    "LOG_JSON_FORMAT",
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires API keys)",
    )


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (require API keys)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def isolated_settings(
    monkeypatch: pytest.MonkeyPatch, tmp_path, request: pytest.FixtureRequest
) -> Generator[None, None, None]:
    """
    Run each unit test against a clean environment.

    Clears analysis-related variables, moves the working directory away from
    any .env file, drops cached settings and factory, and restores the
    default structlog configuration afterwards.
    Integration tests keep the real environment.
    """
    from crucible_analysis.providers.factory import reset_provider_factory

    if "integration" not in request.keywords:
        for var in SETTINGS_ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        monkeypatch.chdir(tmp_path)

    reset_provider_factory()
    yield
    reset_provider_factory()
    structlog.reset_defaults()
