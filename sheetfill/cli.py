"""sheetfill CLI — run the API server or generate single cells from the terminal.

Usage:
    sheetfill serve --port 8080
    sheetfill fill "Find the official website" -C "Company Name=Acme Corp"
    sheetfill assess "Write a competitive analysis"
    sheetfill compare "https://acme.com" "acme.com"
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    name="sheetfill",
    help="sheetfill — fill spreadsheet cells with web-searched LLM answers and their sources.",
    no_args_is_help=True,
)


def _init(env_file: Optional[Path]):
    """Resolve settings once and initialize nfo logging."""
    from sheetfill.env_config import get_settings
    from sheetfill.logging_setup import setup_logging

    settings = get_settings(str(env_file) if env_file else None)
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    return settings


def _client(settings):
    from sheetfill.errors import ConfigurationError
    from sheetfill.llm_client import LLMClient

    try:
        return LLMClient(settings)
    except ConfigurationError as e:
        typer.echo(f"✗ {e} (set OPENAI_API_KEY or use --env-file)", err=True)
        raise typer.Exit(code=2)


def _parse_context(pairs: List[str]) -> dict[str, str]:
    context: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"Context must be KEY=VALUE, got {pair!r}")
        key, _, value = pair.partition("=")
        context[key.strip()] = value.strip()
    return context


@app.command()
def fill(
    prompt: str = typer.Argument(..., help="Column instruction, e.g. 'Find the official website'"),
    context: List[str] = typer.Option([], "--context", "-C", help="Row context as KEY=VALUE (repeatable)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Tier (fast|advanced) or model id"),
    retries: Optional[int] = typer.Option(None, "--retries", "-r", help="Retry budget (default: from .env)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Generate a single cell value with retries."""
    from sheetfill.gateway import ModelGateway
    from sheetfill.generator import CellGenerator
    from sheetfill.models import GenerationRequest
    from sheetfill.retry import RetryController

    settings = _init(env_file)
    generator = CellGenerator(ModelGateway(_client(settings), settings), settings)
    controller = RetryController(
        max_retries=settings.max_retries if retries is None else retries,
        attempt_timeout=settings.attempt_timeout,
    )
    request = GenerationRequest(
        prompt=prompt,
        context=_parse_context(context),
        column_key="cli",
        model=model,
    )

    result = asyncio.run(controller.run(lambda: generator.try_generate(request)))

    if json_output:
        typer.echo(result.model_dump_json(indent=2, exclude_none=True))
    elif result.success:
        typer.echo(result.value)
        typer.echo(f"   Source: {result.source}")
    else:
        typer.echo(f"✗ {result.error}", err=True)
        raise typer.Exit(code=1)


@app.command()
def assess(
    prompt: str = typer.Argument(..., help="Column instruction to classify"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Classify a prompt as simple/medium/complex and suggest a model tier."""
    from sheetfill.classifier import ComplexityClassifier, tier_for_complexity

    settings = _init(env_file)
    classifier = ComplexityClassifier(_client(settings))
    complexity = asyncio.run(classifier.assess(prompt))
    tier = tier_for_complexity(complexity)
    typer.echo(f"Complexity: {complexity.value}")
    typer.echo(f"Tier:       {tier.value} ({settings.resolve_model(tier)})")


@app.command()
def compare(
    result1: str = typer.Argument(..., help="First result"),
    result2: str = typer.Argument(..., help="Second result"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Judge whether two results carry the same information."""
    from sheetfill.comparator import ResultComparator

    settings = _init(env_file)
    verdict = asyncio.run(ResultComparator(_client(settings)).compare(result1, result2))
    typer.echo(json.dumps(verdict.model_dump()))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-H", help="Bind host (default: from .env)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: from .env)"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Start the API server (/fill-cell, /compare-results, /assess-complexity)."""
    import uvicorn
    from sheetfill.server import create_app

    settings = _init(env_file)
    effective_host = host or settings.host
    effective_port = port or settings.port

    typer.echo(f"\n\U0001f4ca sheetfill API Server")
    typer.echo(f"   http://{effective_host}:{effective_port}")
    typer.echo(f"   Fast: {settings.fast_model} | Advanced: {settings.advanced_model} | Fallback: {settings.fallback_model}")
    typer.echo(f"   Credentials: {'set' if settings.has_credentials else 'MISSING (OPENAI_API_KEY)'}")
    typer.echo(f"{'='*60}\n")

    uvicorn.run(
        create_app(settings),
        host=effective_host,
        port=effective_port,
        log_level=settings.log_level,
    )


@app.command()
def doctor(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Show resolved configuration and validate the bundled prompts."""
    from sheetfill.env_config import get_settings
    from sheetfill.prompt_registry import default_registry

    settings = get_settings(str(env_file) if env_file else None)
    ok = True

    typer.echo("\U0001fa7a sheetfill doctor")
    typer.echo(f"   Credentials: {'✓ OPENAI_API_KEY set' if settings.has_credentials else '✗ OPENAI_API_KEY not set'}")
    typer.echo(f"   Fast:        {settings.fast_model}")
    typer.echo(f"   Advanced:    {settings.advanced_model}")
    typer.echo(f"   Fallback:    {settings.fallback_model}")
    typer.echo(f"   Classifier:  {settings.classifier_model}")
    typer.echo(f"   Search:      {', '.join(settings.search_models)}")
    typer.echo(f"   Retries:     {settings.max_retries} | Timeout: {settings.timeout}s")
    typer.echo(f"   Batches:     {settings.batch_size} every {settings.batch_delay}s")
    ok = ok and settings.has_credentials

    errors = default_registry().validate()
    if errors:
        ok = False
        for err in errors:
            typer.echo(f"   ✗ {err}")
    else:
        typer.echo(f"   Prompts:     ✓ {len(default_registry().names())} loaded")

    if not ok:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
