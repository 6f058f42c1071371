"""Typer CLI for inspecting and exercising analysis providers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from crucible_analysis.config import get_settings
from crucible_analysis.core.exceptions import ProviderError
from crucible_analysis.core.models import ProblemContext
from crucible_analysis.logging import configure_logging_from_settings
from crucible_analysis.prompts import rubric_label
from crucible_analysis.providers.factory import AnalysisProviderFactory

app = typer.Typer(
    name="crucible-analysis",
    help="AI solution analysis with retry and provider fallback",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


@app.callback()
def _setup() -> None:
    """Configure logging from the environment before any command runs."""
    try:
        settings = get_settings()
    except ValidationError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=2) from e
    configure_logging_from_settings(settings)


def _factory() -> AnalysisProviderFactory:
    return AnalysisProviderFactory(get_settings())


def _fail(error: ProviderError) -> typer.Exit:
    err_console.print(f"[red]{error.error_code}[/red] ({error.provider}): {error.message}")
    return typer.Exit(code=1)


@app.command("providers")
def list_providers() -> None:
    """List supported analysis providers."""
    factory = _factory()
    settings = factory.settings

    table = Table(title="Analysis providers")
    table.add_column("Provider")
    table.add_column("Role")
    for name in factory.available_providers():
        roles = []
        if name == settings.analysis_provider.lower():
            roles.append("primary")
        if settings.enable_analysis_fallback and name == settings.analysis_fallback_provider.lower():
            roles.append("fallback")
        table.add_row(name, ", ".join(roles) or "-")
    console.print(table)


@app.command("config")
def show_config() -> None:
    """Print the primary provider's configuration (no secrets)."""
    try:
        provider = _factory().get_primary_provider()
    except ProviderError as e:
        raise _fail(e) from e
    console.print_json(json.dumps(provider.get_configuration(), default=str))


@app.command("health")
def health() -> None:
    """Check health of every provider. Exits 1 if none is healthy."""
    factory = _factory()

    async def _check() -> dict[str, bool]:
        try:
            return await factory.get_all_provider_health()
        finally:
            await factory.aclose()

    status = asyncio.run(_check())

    table = Table(title="Provider health")
    table.add_column("Provider")
    table.add_column("Healthy")
    for name, healthy in status.items():
        table.add_row(name, "[green]yes[/green]" if healthy else "[red]no[/red]")
    console.print(table)

    if not any(status.values()):
        raise typer.Exit(code=1)


@app.command("analyze")
def analyze(
    problem: Annotated[
        Path,
        typer.Argument(
            help="Problem document (JSON)", metavar="PROBLEM", exists=True, dir_okay=False
        ),
    ],
    solution: Annotated[
        Path,
        typer.Argument(
            help="File containing the submitted solution",
            metavar="SOLUTION",
            exists=True,
            dir_okay=False,
        ),
    ],
    documents: Annotated[
        list[Path] | None,
        typer.Option(
            "-d",
            "--document",
            help="Knowledge base document used as context (repeatable)",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    parameters: Annotated[
        list[str] | None,
        typer.Option(
            "-p",
            "--parameter",
            help="Technical parameter to score against (repeatable)",
        ),
    ] = None,
    provider_name: Annotated[
        str | None,
        typer.Option(
            "--provider",
            help="Use this provider directly instead of the configured primary",
        ),
    ] = None,
) -> None:
    """Analyze a solution and print the result as JSON."""
    try:
        context = ProblemContext.from_dict(json.loads(problem.read_text()))
    except (ValueError, KeyError) as e:
        err_console.print(f"[red]Invalid problem document:[/red] {e}")
        raise typer.Exit(code=2) from e

    factory = _factory()

    async def _run():
        try:
            provider = (
                factory.get_provider(provider_name)
                if provider_name
                else factory.get_primary_provider()
            )
            return await provider.analyze_comprehensively(
                context,
                solution.read_text(),
                [doc.read_text() for doc in documents or []],
                parameters or [],
            )
        finally:
            await factory.aclose()

    try:
        result = asyncio.run(_run())
    except ProviderError as e:
        raise _fail(e) from e

    console.print_json(json.dumps(result.to_dict()))
    err_console.print(
        f"Overall score {result.overall_score:g} ({rubric_label(result.overall_score)}), "
        f"confidence {result.ai_confidence:g}"
    )


def main() -> None:
    """Entry point for the crucible-analysis command."""
    app()
