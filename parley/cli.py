"""Parley CLI: validate execution params, run conversations, view results."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from .errors import ParleyError
from .models.conversation import ConversationResult
from .orchestrator.runner import build_orchestrator
from .params import ExecutionParams
from .reporting.transcript import print_transcript
from .schema_validator import validate_params_file
from .storage import create_storage

console = Console()


def _fail(message: str, hint: str | None = None) -> None:
    console.print(f"[red]✗ {escape(message)}[/red]")
    if hint:
        console.print(f"  [dim]{hint}[/dim]")
    sys.exit(1)


def _load_params_or_exit(params_path: str) -> dict:
    params, errors = validate_params_file(params_path)
    if errors:
        console.print(f"\n[red]✗ Validation failed with {len(errors)} error(s):[/red]")
        for err in errors:
            console.print(f"  [red]•[/red] {escape(err)}")
        sys.exit(1)
    return params


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    """💬 Parley: multi-turn Conversation Orchestration for Prompt Tests"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("params_path", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print the normalized params as JSON.")
def validate(params_path: str, as_json: bool):
    """Validate an execution params file against the schema."""
    if not as_json:
        console.print(f"\n[cyan]Validating:[/cyan] {params_path}")
    data = _load_params_or_exit(params_path)
    try:
        params = ExecutionParams.from_mapping(data)
    except ParleyError as err:
        _fail(str(err), err.hint)

    if as_json:
        click.echo(json.dumps(params.to_map(), indent=2, default=str))
        return
    console.print(f"[green]✓ Valid![/green] Execution '{params.execution_id}'")
    console.print(f"  Provider: {params.provider}  API: {params.api or 'chat_completions'}  Protocol: {params.protocol.value}")
    console.print(f"  Model: {params.model}  Max turns: {params.max_turns}  Tools: {list(params.tools) or 'none'}")


@cli.command()
@click.argument("params_path", type=click.Path(exists=True))
@click.option("--live/--simulated", default=None, help="Call real providers (default: value from params file).")
@click.option("--model", "-m", default=None, help="Override the model from the params file.")
@click.option("--max-turns", default=None, type=int, help="Override max conversation turns.")
@click.option("--api-key", default=None, help="API key (overrides .env)")
@click.option("--api-base", default=None, help="API base URL (overrides .env)")
@click.option(
    "--output",
    "-o",
    default=None,
    help="Where to save the result: directory, file://, s3://bucket/prefix or gs://bucket/prefix.",
)
@click.option("--save/--no-save", default=True, show_default=True, help="Persist the result.")
@click.option("--json", "as_json", is_flag=True, help="Print the result map as JSON instead of a transcript.")
def run(
    params_path: str,
    live: bool | None,
    model: str | None,
    max_turns: int | None,
    api_key: str | None,
    api_base: str | None,
    output: str | None,
    save: bool,
    as_json: bool,
):
    """Run one conversation execution and print its transcript."""
    if max_turns is not None and max_turns < 1:
        _fail("--max-turns must be >= 1")

    # Load .env
    load_dotenv()

    data = dict(_load_params_or_exit(params_path))
    if live is not None:
        data["live"] = live
    if model:
        data["model"] = model
    if max_turns is not None:
        data["max_turns"] = max_turns

    try:
        params = ExecutionParams.from_mapping(data)
        store = create_storage(output) if save else None
        orchestrator = build_orchestrator(params, api_key=api_key, api_base=api_base, store=store)
    except ParleyError as err:
        _fail(str(err), err.hint)
    except ValueError as err:
        _fail(str(err))

    if not as_json:
        mode = "live" if params.live else "simulated"
        console.print(f"\n[cyan]💬 Parley Run[/cyan]")
        console.print(f"  Params: {params_path}")
        console.print(f"  Model: {params.model}  ({params.protocol.value}, {mode})")
        console.print(f"\n[yellow]▶ Running conversation...[/yellow]")

    result = orchestrator.execute(params)

    if as_json:
        click.echo(json.dumps(result.to_map(), indent=2, default=str))
    else:
        print_transcript(result)
        if orchestrator.result_uri:
            console.print(f"\n[dim]Saved result:[/dim] {orchestrator.result_uri}")

    if result.is_error:
        sys.exit(1)


@cli.command()
@click.argument("result_path", type=click.Path(exists=True))
@click.option("--no-tools", is_flag=True, help="Hide the function-call table.")
def show(result_path: str, no_tools: bool):
    """Display a saved conversation result."""
    try:
        data = json.loads(Path(result_path).read_text(encoding="utf-8"))
        result = ConversationResult.from_map(data)
    except (json.JSONDecodeError, KeyError, ValueError) as err:
        _fail(f"Could not read result {result_path}: {err}")
    print_transcript(result, show_tools=not no_tools)


if __name__ == "__main__":
    cli()
