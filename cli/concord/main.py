"""Concord CLI - Command-line interface for the consensus engine."""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from concord.models.config import EnginePolicy, PolicyUpdate
from concord.models.output import ConsensusResult, ContextFragment

app = typer.Typer(
    name="concord",
    help="Concord - ask several LLMs at once and keep the answer they agree on",
    add_completion=False,
)
settings_app = typer.Typer(help="Show or change a tenant's consensus settings")
app.add_typer(settings_app, name="settings")
console = Console()

DEFAULT_POLICY_FILE = Path.home() / ".concord" / "policies.json"


def _open_store(policy_file: Optional[Path]):
    from concord.config_loader import get_policy_path
    from concord.policy import JsonFilePolicyStore

    return JsonFilePolicyStore(policy_file or get_policy_path() or DEFAULT_POLICY_FILE)


def _load_context(context_file: Optional[Path]) -> list[ContextFragment]:
    if context_file is None:
        return []
    with open(context_file, encoding="utf-8") as f:
        data = json.load(f)
    return [ContextFragment.model_validate(item) for item in data]


def _print_policy(tenant: str, policy: EnginePolicy):
    from concord.policy import resolve_models

    table = Table(show_header=False, title=f"Tenant: {tenant}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Enabled", "[green]yes[/green]" if policy.enabled else "[red]no[/red]")
    table.add_row("Model count", str(policy.model_count))
    table.add_row("Tier", policy.tier)
    table.add_row("Agreement threshold", f"{policy.agreement_threshold:.2f}")
    table.add_row("Timeout", f"{policy.timeout_ms} ms")
    table.add_row("Models", "\n".join(resolve_models(policy)))
    console.print(table)


def _print_result(result: ConsensusResult):
    if result.method == "consensus":
        color = "green" if result.confidence >= 0.7 else "yellow" if result.confidence >= 0.4 else "red"
    else:
        color = "yellow"

    console.print(Panel(
        result.answer,
        title=f"[bold]{result.method}[/bold]",
        subtitle=f"[{color}]confidence {result.confidence:.2f}[/{color}]",
    ))
    console.print(
        f"[dim]Responses:[/dim] {result.responses_received}/{result.models_queried}   "
        f"[dim]Duration:[/dim] {result.duration_ms} ms"
    )

    if result.ranking:
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", style="dim", width=4)
        table.add_column("Model", style="cyan")
        table.add_column("Agreement", justify="right")
        table.add_column("Outlier", justify="center")
        for idx, score in enumerate(result.ranking, 1):
            table.add_row(
                str(idx),
                score.model,
                f"{score.avg_similarity:.2f}",
                "[red]yes[/red]" if score.model in result.outliers else "",
            )
        console.print(table)


def _run_query(
    question: str,
    tenant: str,
    system: str,
    context: list[ContextFragment],
    policy_file: Optional[Path],
    overrides: PolicyUpdate,
    api_key: Optional[str],
    debug: bool,
) -> ConsensusResult:
    from concord.errors import ConfigurationError, MissingCredentialsError
    from concord.llm.usage import UsageTracker
    from concord.logging import bind_tenant, configure_logging
    from concord.policy import InMemoryPolicyStore, create_engine

    configure_logging(debug)
    bind_tenant(tenant)

    # Overrides apply to this run only and are not written back
    policy = _open_store(policy_file).get(tenant).merged(overrides)
    store = InMemoryPolicyStore({tenant: policy})

    tracker = UsageTracker(tenant_id=tenant)
    try:
        engine = create_engine(tenant, api_key, store, usage_tracker=tracker, debug=debug)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        if isinstance(e, MissingCredentialsError):
            console.print("[dim]Set OPENROUTER_API_KEY in the environment or pass --api-key[/dim]")
        raise typer.Exit(1)

    console.print(f"[dim]Querying {len(engine.models)} models:[/dim] {', '.join(engine.models)}")
    result = asyncio.run(engine.get_consensus_answer(question, system, context))
    _print_result(result)

    if tracker.call_count:
        cost = tracker.compute_cost()
        console.print(
            f"[dim]Usage:[/dim] {cost['total_tokens']} tokens over {cost['total_calls']} calls "
            f"(~${cost['total_cost_usd']:.4f})"
        )
    return result


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer"),
    tenant: str = typer.Option("default", "--tenant", "-t", help="Tenant whose settings apply"),
    system: str = typer.Option("", "--system", "-s", help="System instructions for every model"),
    context_file: Optional[Path] = typer.Option(
        None,
        "--context",
        "-c",
        help="JSON file with a list of {source, content} context fragments",
        exists=True,
        readable=True,
    ),
    models: Optional[List[str]] = typer.Option(
        None, "--model", "-m", help="Model ID to query (repeatable, overrides tier)"
    ),
    tier: Optional[str] = typer.Option(None, "--tier", help="Model tier: 'fast' or 'default'"),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of models to query", min=1),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", help="Per-model timeout in milliseconds", min=1),
    policy_file: Optional[Path] = typer.Option(None, "--policy-file", help="Policy store JSON file"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenRouter API key"),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging and raw responses"),
):
    """
    Ask a question and print the consensus answer.

    \b
    Examples:
        concord ask "What is the capital of France?"
        concord ask "What is our refund window?" -c kb.json --tier default
        concord ask "Explain TCP slow start" -m openai/gpt-4o -m anthropic/claude-3.5-sonnet
    """
    overrides = {}
    if models:
        overrides["models"] = models
        overrides.setdefault("model_count", len(models))
    if tier:
        if tier not in ("fast", "default"):
            console.print(f"[red]Error:[/red] Invalid tier '{tier}'")
            raise typer.Exit(1)
        overrides["tier"] = tier
    if count:
        overrides["model_count"] = count
    if timeout_ms:
        overrides["timeout_ms"] = timeout_ms

    result = _run_query(
        question,
        tenant,
        system,
        _load_context(context_file),
        policy_file,
        PolicyUpdate(**overrides),
        api_key,
        debug,
    )
    if json_output:
        console.print_json(result.model_dump_json())


@app.command()
def test(
    query: str = typer.Argument("What is 2 + 2?", help="Sample query"),
    tenant: str = typer.Option("default", "--tenant", "-t", help="Tenant whose settings apply"),
    policy_file: Optional[Path] = typer.Option(None, "--policy-file", help="Policy store JSON file"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenRouter API key"),
):
    """Run a quick consensus check with debug output."""
    _run_query(
        query,
        tenant,
        "You are a helpful assistant. Give a brief, direct answer.",
        [],
        policy_file,
        PolicyUpdate(),
        api_key,
        debug=True,
    )


@settings_app.command("show")
def settings_show(
    tenant: str = typer.Option("default", "--tenant", "-t", help="Tenant ID"),
    policy_file: Optional[Path] = typer.Option(None, "--policy-file", help="Policy store JSON file"),
):
    """Show a tenant's consensus settings."""
    _print_policy(tenant, _open_store(policy_file).get(tenant))


@settings_app.command("set")
def settings_set(
    tenant: str = typer.Option("default", "--tenant", "-t", help="Tenant ID"),
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Enable or disable consensus"),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of models to query"),
    tier: Optional[str] = typer.Option(None, "--tier", help="Model tier: 'fast' or 'default'"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Agreement threshold (0-1)"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout", help="Per-model timeout in milliseconds"),
    models: Optional[List[str]] = typer.Option(None, "--model", "-m", help="Explicit model ID (repeatable)"),
    clear_models: bool = typer.Option(False, "--clear-models", help="Drop the explicit model list"),
    policy_file: Optional[Path] = typer.Option(None, "--policy-file", help="Policy store JSON file"),
):
    """
    Update a tenant's consensus settings.

    \b
    Examples:
        concord settings set --tenant acme --count 4 --tier default
        concord settings set --tenant acme -m openai/gpt-4o -m google/gemini-pro
        concord settings set --tenant acme --disabled
    """
    from pydantic import ValidationError

    fields = {
        "enabled": enabled,
        "model_count": count,
        "tier": tier,
        "agreement_threshold": threshold,
        "timeout_ms": timeout_ms,
        "models": models or None,
    }
    update_data = {k: v for k, v in fields.items() if v is not None}
    if clear_models:
        update_data["models"] = None

    try:
        update = PolicyUpdate(**update_data)
    except ValidationError as e:
        console.print(f"[red]Invalid settings:[/red] {e}")
        raise typer.Exit(1)

    policy = _open_store(policy_file).set(tenant, update)
    console.print("[green]OK[/green] Consensus settings updated")
    _print_policy(tenant, policy)


@app.command()
def models(
    tier: Optional[str] = typer.Option(None, "--tier", help="Only show one tier"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON for scripting"),
):
    """List the model IDs in each tier."""
    from concord.policy import MODEL_TIERS

    tiers = {tier: MODEL_TIERS[tier]} if tier in MODEL_TIERS else MODEL_TIERS
    if json_output:
        console.print(json.dumps(tiers, indent=2))
        return

    for name, model_ids in tiers.items():
        table = Table(show_header=True, header_style="bold", title=f"Tier: {name}")
        table.add_column("#", style="dim", width=4)
        table.add_column("Model ID", style="cyan")
        for idx, model_id in enumerate(model_ids, 1):
            table.add_row(str(idx), model_id)
        console.print(table)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
):
    """Start the FastAPI server."""
    import uvicorn
    from concord.logging import configure_logging

    configure_logging()
    console.print(Panel.fit(
        "[bold blue]Concord[/bold blue] API Server",
        subtitle=f"Running on http://{host}:{port}",
    ))

    uvicorn.run(
        "concord.api:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version():
    """Show Concord version information."""
    from concord import __version__

    console.print(f"Concord version [bold]{__version__}[/bold]")


if __name__ == "__main__":
    app()
