"""Typer-based CLI to inspect and run the inference flows."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .cli_utils import dump_result, load_context, load_payload, ping_llm_client, setup_logging
from .composer import FlowRequest, TextPart, compose
from .config import DEFAULT_LLM_CONFIG
from .exceptions import AgroFlowError, InputError, InvocationError, OutputError, UnknownFlowError
from .flows import build_default_registry
from .pipeline import InferencePipeline
from .registry import FlowDefinition, FlowRegistry

app = typer.Typer(help="agroflow CLI - run structured inference flows for farm data")
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    setup_logging(log_level)


def _get_flow(registry: FlowRegistry, flow: str) -> FlowDefinition:
    try:
        return registry.get(flow)
    except UnknownFlowError as exc:
        raise typer.BadParameter(str(exc), param_hint="FLOW") from exc


def _prepare(flow: str, input: Path, context: Optional[Path]) -> tuple[FlowDefinition, FlowRequest]:
    registry = build_default_registry()
    definition = _get_flow(registry, flow)
    try:
        request = FlowRequest.build(definition, load_payload(input), load_context(context))
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--context") from exc
    registry.validate_input(flow, request.payload)
    return definition, request


@app.command()
def flows() -> None:
    """List registered flows."""
    table = Table(title="Registered flows")
    table.add_column("Flow", no_wrap=True)
    table.add_column("Class")
    table.add_column("Model")
    table.add_column("Fallback")
    table.add_column("Description")
    for definition in build_default_registry():
        table.add_row(
            definition.name,
            definition.flow_class,
            definition.model or "(default)",
            repr(definition.fallback),
            definition.description,
        )
    console.print(table)


@app.command()
def check(
    flow: str = typer.Argument(..., help="Flow name, e.g. validateProductionData"),
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True, help="JSON/YAML file with the flow input"),
    context: Optional[Path] = typer.Option(None, "--context", "-c", exists=True, help="JSON/YAML file with historical records"),
) -> None:
    """Validate a payload against a flow's input schema without calling the reasoner."""
    try:
        _prepare(flow, input, context)
    except InputError as exc:
        console.print(f"[bold red]Invalid input for {flow}:[/bold red]")
        for err in exc.errors:
            console.print(f"  - {escape(err)}")
        raise typer.Exit(code=1)
    console.print(f"[green]Input is valid for {flow}.[/green]")


@app.command()
def prompt(
    flow: str = typer.Argument(..., help="Flow name"),
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True, help="JSON/YAML file with the flow input"),
    context: Optional[Path] = typer.Option(None, "--context", "-c", exists=True, help="JSON/YAML file with historical records"),
) -> None:
    """Render the request a flow would send, without sending it."""
    try:
        definition, request = _prepare(flow, input, context)
    except InputError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1)

    composed = compose(definition, request)
    console.rule(f"{definition.name} ({composed.model or 'default model'})")
    console.print("[bold]System[/bold]")
    console.print(composed.system, markup=False)
    console.print("[bold]User[/bold]")
    for part in composed.parts:
        if isinstance(part, TextPart):
            console.print(part.text, markup=False)
        else:
            console.print(f"<{part.field}: {part.mime_type}, {len(part.data)} base64 chars>", markup=False)
    console.print(f"Fingerprint: {composed.fingerprint()}")


@app.command()
def run(
    flow: str = typer.Argument(..., help="Flow name"),
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True, help="JSON/YAML file with the flow input"),
    context: Optional[Path] = typer.Option(None, "--context", "-c", exists=True, help="JSON/YAML file with historical records"),
    model: Optional[str] = typer.Option(None, help="Model for flows that do not pin one"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result to a .json or .yaml file"),
    llm_config: str = typer.Option(DEFAULT_LLM_CONFIG, help="Path to LLM config"),
    config_tag: str = typer.Option("default", "--tag", help="Config entry to use from the LLM config"),
) -> None:
    """Run a flow end to end and print its result."""
    try:
        pipeline = InferencePipeline.from_config(llm_config, config_tag=config_tag)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--llm-config") from exc
    except InvocationError as exc:
        console.print(f"[bold red]LLM unavailable:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)
    _get_flow(pipeline.registry, flow)
    try:
        result = pipeline.run(flow, load_payload(input), load_context(context), model=model)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--context") from exc
    except InputError as exc:
        console.print(f"[bold red]Invalid input:[/bold red] {escape('; '.join(exc.errors))}")
        raise typer.Exit(code=1)
    except InvocationError as exc:
        console.print(f"[bold red]Reasoning service failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)
    except OutputError as exc:
        console.print(f"[bold red]No result:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=3)

    text = dump_result(result, output)
    if output:
        console.print(f"Saved to {output}")
    else:
        console.print_json(text)


@app.command()
def ping(
    llm_config: str = typer.Option(DEFAULT_LLM_CONFIG, help="Path to LLM config"),
    config_tag: str = typer.Option("default", "--tag", help="Config entry to use from the LLM config"),
) -> None:
    """Check that the configured reasoning service answers."""
    try:
        info = ping_llm_client(llm_config, config_tag=config_tag)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--llm-config") from exc
    except AgroFlowError as exc:
        console.print(f"[bold red]LLM unavailable:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2)
    console.print(f"Provider: [bold]{info['config'].get('provider', 'mock')}[/bold]  Model: {info['config'].get('model')}")
    console.print(info["response"], markup=False)


if __name__ == "__main__":
    app()
