"""CLI entry-point: run a harness from files and manage persisted runs."""

import asyncio
import json
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from specharness.config import get_settings
from specharness.errors import InvalidPathError, RunValidationError
from specharness.harness.service import execute_run
from specharness.llm.registry import DEFAULT_AUDITOR_MODEL_ID, DEFAULT_SELECTED_MODELS, MODEL_REGISTRY
from specharness.schemas.api_schemas import RunRequest, RunSettingsIn
from specharness.store import get_run_store
from specharness.validate import load_cases_file

app = typer.Typer(help="ModelSpec Harness: run compliance specs against LLMs")


@app.command()
def run(
    spec_path: str = typer.Argument(..., help="Path to the spec YAML"),
    cases_path: str = typer.Argument(..., help="Path to the cases YAML (list, or mapping with 'cases')"),
    model: list[str] = typer.Option(
        default=[], help="Provider-prefixed model id, repeatable (default: registry defaults)"
    ),
    local_only: bool = typer.Option(False, "--local-only", help="Skip the LLM auditor; local rules only"),
    auditor_model: str = typer.Option(DEFAULT_AUDITOR_MODEL_ID, help="Auditor model id"),
    concurrency: int = typer.Option(4, help="Concurrent jobs (1-20)"),
    temperature: float = typer.Option(0.2, help="Generation temperature"),
    max_tokens: int = typer.Option(512, help="Generation max tokens"),
    ratecard: str = typer.Option(None, help="Rate card file (JSON or YAML list of entries)"),
):
    """Run every case against every model and write the run artifacts."""
    console = Console()
    spec_file = Path(spec_path)
    if not spec_file.exists():
        console.print(f"[red]Error: spec not found: {spec_file}[/red]")
        raise typer.Exit(1)
    try:
        cases = load_cases_file(cases_path)
    except (FileNotFoundError, RunValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    rates = None
    if ratecard:
        ratecard_file = Path(ratecard)
        if not ratecard_file.exists():
            console.print(f"[red]Error: rate card not found: {ratecard_file}[/red]")
            raise typer.Exit(1)
        try:
            rates = yaml.safe_load(ratecard_file.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            console.print(f"[red]Error: invalid rate card {ratecard_file}: {escape(str(e))}[/red]")
            raise typer.Exit(1)

    request = RunRequest(
        spec_yaml=spec_file.read_text(encoding="utf-8"),
        cases=[c.model_dump() for c in cases],
        models=list(model) or list(DEFAULT_SELECTED_MODELS),
        settings=RunSettingsIn(temperature=temperature, max_tokens=max_tokens, concurrency=concurrency),
        ratecard=rates,
        verifier_mode="local_only" if local_only else "llm_auditor",
        auditor_model=auditor_model,
    )

    settings = get_settings()
    store = get_run_store(settings)
    console.print(f"Running {len(cases)} case(s) x {len(request.models)} model(s)...")
    outcome = asyncio.run(execute_run(request, store, settings=settings))
    body = outcome.body

    if not outcome.ok:
        console.print(f"[red]Error: {body.get('error')}[/red]")
        if body.get("hint"):
            console.print(body["hint"])
        for detail in body.get("details") or []:
            console.print(f"  {json.dumps(detail)}")
        raise typer.Exit(1)

    table = Table(title=f"Run {body['runId']}")
    table.add_column("Model")
    table.add_column("Passed", justify="right")
    table.add_column("Avg latency (ms)", justify="right")
    table.add_column("Cost (USD)", justify="right")
    for m in body["totals"]["byModel"]:
        table.add_row(
            m["model"],
            f"{m['pass']}/{m['total']}",
            f"{m['avg_latency_ms']:.0f}",
            f"${m['cost_usd']:.6f}",
        )
    console.print(table)

    for warning in body.get("warnings", []):
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    for err in body["debug"].get("first_errors", []):
        console.print(f"[yellow]{err['stage']} failed for {err['case_id']} / {err['model']}: {err['message']}[/yellow]")

    if store.enabled:
        console.print(f"Wrote artifacts to {settings.runs_dir / body['runId']}")
    else:
        console.print(f"[yellow]{body.get('notice')}[/yellow]")
    console.print("[green]Done.[/green]")


@app.command()
def runs():
    """List persisted runs, newest first."""
    console = Console()
    store = get_run_store()
    if not store.enabled:
        console.print("[yellow]Run persistence is disabled in this environment.[/yellow]")
        return
    summaries = store.list()
    if not summaries:
        console.print("No runs yet.")
        return
    table = Table()
    table.add_column("Run id")
    table.add_column("Created at")
    for s in summaries:
        table.add_row(s.run_id, s.created_at or "-")
    console.print(table)


@app.command()
def delete(run_id: str = typer.Argument(..., help="Run id to delete")):
    """Delete a persisted run and its artifacts."""
    console = Console()
    try:
        deleted = get_run_store().delete(run_id)
    except InvalidPathError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    if not deleted:
        console.print(f"[red]Error: run not found: {run_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {run_id}.[/green]")


@app.command()
def models():
    """Show the model registry."""
    console = Console()
    table = Table()
    table.add_column("Model id")
    table.add_column("Label")
    table.add_column("Badge")
    table.add_column("Default")
    for m in MODEL_REGISTRY:
        flags = []
        if m.id in DEFAULT_SELECTED_MODELS:
            flags.append("selected")
        if m.id == DEFAULT_AUDITOR_MODEL_ID:
            flags.append("auditor")
        table.add_row(m.id, m.label, m.badge or "", ", ".join(flags))
    console.print(table)


if __name__ == "__main__":
    app()
