"""CLI interface for screenlabel."""

import asyncio
import base64
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from screenlabel.config import AiSettings, load_settings
from screenlabel.consts import DEFAULT_DATA_DIR
from screenlabel.models.model_provider import (
    ClassificationDecision,
    ClassificationInput,
    ScreenContext,
)
from screenlabel.repositories.file_repository import FileRepository
from screenlabel.service import ClassificationService

app = typer.Typer(
    name="screenlabel",
    help="screenlabel - Label screenshots through an ordered chain of classifiers",
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load_settings_or_exit(settings_path: Path | None) -> AiSettings:
    try:
        return load_settings(settings_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading settings:[/red] {e}")
        raise typer.Exit(1)


def _build_service(settings_path: Path | None, data_dir: Path | None) -> ClassificationService:
    settings = _load_settings_or_exit(settings_path)
    try:
        repository = FileRepository(data_dir or DEFAULT_DATA_DIR)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading data:[/red] {e}")
        raise typer.Exit(1)
    return ClassificationService(
        settings=settings, memory_repository=repository, event_repository=repository
    )


def _truncate(text: str, max_len: int = 60) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _print_decision(decision: ClassificationDecision) -> None:
    if decision.ok and decision.result is not None:
        result = decision.result
        console.print(f"\n[bold green]Classified by {decision.provider_id}[/bold green]")
        console.print(f"Category:   [cyan]{result.category.value}[/cyan]")
        console.print(f"Caption:    {result.caption}")
        console.print(f"Confidence: {result.confidence:.2f}")
        if result.project:
            console.print(f"Project:    {result.project}")
        if result.tags:
            console.print(f"Tags:       {', '.join(result.tags)}")
        if result.tracked_addiction.detected:
            console.print(f"[red]Addiction:  {result.tracked_addiction.name}[/red]")
        elif result.addiction_candidate:
            console.print(f"[yellow]Possible addiction: {result.addiction_candidate}[/yellow]")
    else:
        console.print("\n[yellow]No classification available[/yellow]")

    if not decision.attempts:
        return

    table = Table(title="Provider Attempts")
    table.add_column("Provider", style="cyan")
    table.add_column("Available", justify="center")
    table.add_column("Latency (ms)", justify="right", style="magenta")
    table.add_column("Error", style="dim")
    for attempt in decision.attempts:
        table.add_row(
            attempt.provider_id,
            "[green]yes[/green]" if attempt.available else "[red]no[/red]",
            str(attempt.latency_ms),
            _truncate(attempt.error or ""),
        )
    console.print(table)


@app.command()
def classify(
    ocr_text: str = typer.Option(None, "--ocr-text", help="OCR text of the screenshot"),
    ocr_file: Path = typer.Option(None, "--ocr-file", help="File containing OCR text"),
    image: Path = typer.Option(None, "--image", help="Screenshot image (WebP) to upload"),
    context_file: Path = typer.Option(None, "--context", help="JSON file with screen context"),
    settings_path: Path = typer.Option(None, "--settings", help="Settings JSON file"),
    data_dir: Path = typer.Option(None, "--data", help="Directory with memories.json/events.json"),
    as_json: bool = typer.Option(False, "--json", help="Print the decision as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Classify one capture and show which providers were tried."""
    _configure_logging(verbose)

    if ocr_text and ocr_file:
        console.print("[red]Error:[/red] Use either --ocr-text or --ocr-file, not both")
        raise typer.Exit(1)

    try:
        if ocr_file:
            ocr_text = ocr_file.read_text()
        image_base64 = base64.b64encode(image.read_bytes()).decode("ascii") if image else None
        context = (
            ScreenContext.model_validate(json.loads(context_file.read_text()))
            if context_file
            else None
        )
    except (OSError, ValueError) as e:
        console.print(f"[red]Error reading input:[/red] {e}")
        raise typer.Exit(1)

    service = _build_service(settings_path, data_dir)
    input = ClassificationInput(image_base64=image_base64, ocr_text=ocr_text, context=context)
    decision = asyncio.run(service.classify(input))

    if as_json:
        console.print_json(decision.model_dump_json())
    else:
        _print_decision(decision)

    if not decision.ok:
        raise typer.Exit(1)


@app.command()
def availability(
    settings_path: Path = typer.Option(None, "--settings", help="Settings JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Show which providers can run with the current settings."""
    _configure_logging(verbose)
    service = ClassificationService(settings=_load_settings_or_exit(settings_path))
    results = asyncio.run(service.get_availability())

    table = Table(title="Provider Availability")
    table.add_column("Provider", style="cyan")
    table.add_column("Available", justify="center")
    table.add_column("Reason", style="dim")
    for provider_id, status in results.items():
        table.add_row(
            provider_id,
            "[green]yes[/green]" if status.available else "[red]no[/red]",
            status.reason or "",
        )
    console.print(table)


@app.command()
def order(
    settings_path: Path = typer.Option(None, "--settings", help="Settings JSON file"),
) -> None:
    """Print the provider order derived from the current settings."""
    service = ClassificationService(settings=_load_settings_or_exit(settings_path))
    for index, provider_id in enumerate(service.provider_order(), start=1):
        console.print(f"{index}. {provider_id}")


@app.command("test-local")
def test_local(
    settings_path: Path = typer.Option(None, "--settings", help="Settings JSON file"),
) -> None:
    """Ping the configured local model server."""
    service = ClassificationService(settings=_load_settings_or_exit(settings_path))
    result = asyncio.run(service.test_local_connection())
    if result.success:
        console.print("[green]Local model reachable[/green]")
        return
    console.print(f"[red]Local model check failed:[/red] {result.error}")
    raise typer.Exit(1)


@app.command("test-cloud")
def test_cloud(
    settings_path: Path = typer.Option(None, "--settings", help="Settings JSON file"),
) -> None:
    """Check the configured cloud API key and model."""
    service = ClassificationService(settings=_load_settings_or_exit(settings_path))
    result = asyncio.run(service.test_cloud_connection())
    if result.success:
        console.print("[green]Cloud model reachable[/green]")
        return
    console.print(f"[red]Cloud check failed:[/red] {result.error}")
    raise typer.Exit(1)


if __name__ == "__main__":
    app()
