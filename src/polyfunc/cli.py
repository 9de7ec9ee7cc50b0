"""CLI for polyfunc microservice scaffolding."""

from __future__ import annotations

import io
import json
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from polyfunc import __version__
from polyfunc.config import DEFAULT_CONFIG_FILE, Config
from polyfunc.llm import LLMClient, LLMConfigError
from polyfunc.logging import configure_logging
from polyfunc.profiles import (
    CHARACTERISTICS,
    ScoreResult,
    builtin_registry,
    normalize_query,
    rank,
)
from polyfunc.scaffold import init_project, write_service

# Force UTF-8 output on Windows to avoid cp1252 encoding errors
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")

console = Console()


def _score_bar(score: float, width: int = 20) -> Text:
    """Render a visual bar for a 0-10 score."""
    fraction = max(0.0, min(1.0, score / 10))
    filled = int(fraction * width)
    empty = width - filled

    if score >= 8:
        color = "green"
    elif score >= 6:
        color = "yellow"
    else:
        color = "red"

    bar = Text()
    bar.append("#" * filled, style=color)
    bar.append("." * empty, style="dim")
    bar.append(f" {score:.2f}", style="bold")
    return bar


def _display_ranking(ranking: list[ScoreResult]) -> None:
    """Rich display of the winner and the runners-up."""
    best = ranking[0]
    summary = Text()
    summary.append("\n  Recommended: ", style="bold")
    summary.append(f"{best.language}", style="bold green")
    summary.append(f" (Score: {best.score:.2f})\n")
    console.print(Panel(summary, title="Language Recommendation", border_style="blue"))

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Rank", justify="right")
    table.add_column("Language", style="cyan")
    table.add_column("Score", min_width=25)
    for position, result in enumerate(ranking, 1):
        table.add_row(str(position), result.language, _score_bar(result.score))
    console.print(table)
    console.print()


def _ranking_to_dict(ranking: list[ScoreResult], query: dict) -> dict:
    best = ranking[0] if ranking else None
    return {
        "query": query,
        "language": best.language if best else None,
        "score": round(best.score, 3) if best else None,
        "ranking": [{"language": r.language, "score": round(r.score, 3)} for r in ranking],
    }


def _oracle(ctx: click.Context) -> LLMClient:
    return LLMClient(ctx.obj["config"])


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="JSON or YAML file overriding the default settings")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-file", "log_file", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Also write log records to this file")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool, log_file: Path | None):
    """polyfunc - Microservice framework with smart language selection."""
    configure_logging(verbose=verbose, log_file=log_file)
    config = Config()

    if config_path is None and Path(DEFAULT_CONFIG_FILE).is_file():
        config_path = DEFAULT_CONFIG_FILE
    if config_path is not None and not config.load_from(config_path):
        console.print(f"[yellow]Could not load {config_path}, using defaults.[/yellow]")

    ctx.obj = {"config": config, "config_path": config_path, "registry": builtin_registry()}


@main.command()
@click.pass_context
def init(ctx: click.Context):
    """Initialize a new polyfunc project in the current directory."""
    console.print("Initializing a new polyfunc project...")
    try:
        path = init_project(ctx.obj["config"])
    except OSError as e:
        console.print(f"[red]Failed to initialize project: {e}[/red]")
        raise SystemExit(1)

    console.print(f"[green]Project initialized successfully![/green] Wrote {path}")
    console.print("Set your OpenAI API key with:")
    console.print("  export OPENAI_API_KEY=your_api_key")
    console.print("\nThen create a new service with:")
    console.print('  polyfunc create "Your service description"')


def _analyze(ctx: click.Context, description: str) -> dict:
    try:
        analysis = _oracle(ctx).analyze_requirements(description)
    except LLMConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    if not analysis:
        console.print("[red]Failed to analyze requirements[/red]")
        raise SystemExit(1)
    return analysis


@main.command()
@click.argument("description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def analyze(ctx: click.Context, description: str, as_json: bool):
    """Analyze requirements from a service description and recommend a language."""
    if not as_json:
        console.print("[dim]Analyzing requirements...[/dim]")
    analysis = _analyze(ctx, description)
    query = normalize_query(analysis)
    ranking = rank(ctx.obj["registry"], query)

    if as_json:
        data = _ranking_to_dict(ranking, query)
        data["analysis"] = analysis
        click.echo(json.dumps(data, indent=2))
        return

    console.print("\n[bold]Requirements Analysis:[/bold]")
    console.print_json(json.dumps(analysis))
    if ranking:
        _display_ranking(ranking)


@main.command()
@click.option("--performance", type=float, default=None, help="Weight for raw performance")
@click.option("--memory", type=float, default=None, help="Weight for memory efficiency")
@click.option("--startup-time", "startup_time", type=float, default=None,
              help="Weight for fast startup")
@click.option("--ecosystem", type=float, default=None, help="Weight for library ecosystem")
@click.option("--concurrency", type=float, default=None, help="Weight for concurrency support")
@click.option("--use-case", "use_case", default=None, help="Primary use case (web, ml, system...)")
@click.option("--use-case-weight", "use_case_weight", type=float, default=None,
              help="Weight for the use case match (default 1)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def recommend(ctx: click.Context, performance, memory, startup_time, ecosystem, concurrency,
              use_case, use_case_weight, as_json: bool):
    """Rank languages for manually weighted requirements."""
    weights = dict(zip(CHARACTERISTICS, (performance, memory, startup_time, ecosystem,
                                         concurrency)))
    query: dict = {dim: {"weight": w} for dim, w in weights.items() if w is not None}
    if use_case:
        query["useCase"] = use_case
        if use_case_weight is not None:
            query["useCaseWeight"] = use_case_weight

    ranking = rank(ctx.obj["registry"], query)
    if as_json:
        click.echo(json.dumps(_ranking_to_dict(ranking, query), indent=2))
    elif ranking:
        _display_ranking(ranking)
    else:
        console.print("[yellow]No language profiles registered.[/yellow]")


@main.command()
@click.argument("description")
@click.pass_context
def decompose(ctx: click.Context, description: str):
    """Decompose a service into microservices."""
    console.print("[dim]Decomposing service...[/dim]")
    try:
        microservices = _oracle(ctx).decompose_service(description)
    except LLMConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    if not microservices:
        console.print("[red]Failed to decompose service[/red]")
        raise SystemExit(1)

    table = Table(title="Microservices", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Purpose")
    table.add_column("Endpoints", style="dim")
    for service in microservices:
        if not isinstance(service, dict):
            continue
        endpoints = service.get("endpoints") or []
        table.add_row(
            str(service.get("name", "")),
            str(service.get("purpose", "")),
            ", ".join(str(e) for e in endpoints),
        )
    console.print(table)


@main.command()
@click.argument("description")
@click.option("--language", "-l", default=None, help="Force a specific programming language")
@click.pass_context
def create(ctx: click.Context, description: str, language: str | None):
    """Create a new microservice from a description."""
    config: Config = ctx.obj["config"]
    console.print("Creating new microservice...")

    if language is None:
        console.print("[dim]Analyzing requirements...[/dim]")
        analysis = _analyze(ctx, description)
        ranking = rank(ctx.obj["registry"], normalize_query(analysis))
        if not ranking:
            console.print("[red]No language profiles registered.[/red]")
            raise SystemExit(1)
        language = ranking[0].language
        console.print(f"\nSelected language: [bold]{language}[/bold] "
                      f"(Score: {ranking[0].score:.2f})")
    else:
        console.print(f"\nUsing specified language: [bold]{language}[/bold]")

    console.print("[dim]Generating code...[/dim]")
    try:
        code = _oracle(ctx).generate_code(language, "service", description)
    except LLMConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    if not code or not code.get("files"):
        console.print("[red]Failed to generate code[/red]")
        raise SystemExit(1)

    try:
        service_path = write_service(code, language, description,
                                     config.get("paths.services", "./services"))
    except (OSError, ValueError, KeyError) as e:
        console.print(f"[red]Failed to write service: {e}[/red]")
        raise SystemExit(1)

    console.print(f"\n[green]Service created successfully in {service_path}[/green]")
    console.print("See README.md in the service directory for instructions")


@main.command()
@click.pass_context
def languages(ctx: click.Context):
    """List available language profiles."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Language", style="cyan")
    for dim in CHARACTERISTICS:
        table.add_column(dim, justify="right")
    table.add_column("Top use cases")

    for profile in ctx.obj["registry"]:
        top = ", ".join(f"{uc.name} {uc.score}/10" for uc in profile.top_use_cases(3))
        row = [profile.name]
        row.extend(f"{profile.characteristics[dim]}/10" for dim in CHARACTERISTICS)
        row.append(top)
        table.add_row(*row)

    console.print(table)


@main.group(name="config")
def config_group():
    """Inspect or change configuration values."""
    pass


@config_group.command(name="get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str):
    """Print the value at a dotted KEY such as llm.model."""
    value = ctx.obj["config"].get(key)
    if value is None:
        console.print(f"[red]No value set for {key}[/red]")
        raise SystemExit(1)
    if isinstance(value, (dict, list)):
        click.echo(json.dumps(value, indent=2))
    else:
        click.echo(value)


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.option("--file", "file_path", type=click.Path(dir_okay=False), default=None,
              help="Where to save (defaults to the loaded config or polyfunc.json)")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str, file_path: str | None):
    """Set a dotted KEY to VALUE and save the configuration.

    VALUE is parsed as YAML, so numbers, booleans and lists keep their type.
    """
    config: Config = ctx.obj["config"]
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        parsed = value
    config.set(key, parsed)

    target = file_path or ctx.obj["config_path"] or DEFAULT_CONFIG_FILE
    if not config.save_to(target):
        console.print(f"[red]Failed to save configuration to {target}[/red]")
        raise SystemExit(1)
    console.print(f"Set {key} in {target}")


@config_group.command(name="show")
@click.option("--yaml", "as_yaml", is_flag=True, help="Output as YAML instead of JSON")
@click.pass_context
def config_show(ctx: click.Context, as_yaml: bool):
    """Print the effective configuration."""
    data = ctx.obj["config"].redacted()
    if as_yaml:
        click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
    else:
        click.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    main()
