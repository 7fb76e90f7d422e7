"""Quibble CLI - classify clues and replay transcripts locally."""

from __future__ import annotations

import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from quibble import __version__
from quibble.classifier import (
    AnswerClassifier,
    CallFailed,
    ClassifierRequest,
    create_classifier,
)
from quibble.common.events import Event
from quibble.common.logging import setup_logging
from quibble.config import Config, load_config
from quibble.session import SessionRegistry

app = typer.Typer(
    name="quibble",
    help="Quibble live trivia assistant",
    no_args_is_help=True,
)
console = Console()


class ConsoleDisplay:
    """Display surface that draws on the terminal."""

    def __init__(self, target: Console | None = None) -> None:
        self.console = target or console

    def show_text_wall(self, text: str) -> None:
        self.console.print(Panel(escape(text), border_style="dim"))

    def show_double_text_wall(self, top_text: str, bottom_text: str) -> None:
        self.console.print(
            Panel(
                f"{escape(top_text)}\n[bold green]{escape(bottom_text)}[/]",
                border_style="green",
            )
        )


def get_config(config_path: Optional[Path], mock: bool) -> Config:
    """Get configuration."""
    cfg = load_config(config_path)
    if mock:
        cfg.mock_mode = True
    setup_logging(
        level=cfg.app.log_level,
        json_output=cfg.app.mode == "production",
        app_name=cfg.app.name,
    )
    return cfg


def build_classifier(cfg: Config, replies: List[str]) -> AnswerClassifier:
    if cfg.mock_mode:
        return create_classifier(cfg.llm, mock_mode=True, replies=replies)
    return create_classifier(cfg.llm)


@app.command()
def ask(
    text: str,
    mock: bool = typer.Option(False, "--mock", help="Use the scripted mock provider"),
    reply: List[str] = typer.Option([], "--reply", help="Mock reply (repeatable)"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
):
    """Classify a single clue text."""
    cfg = get_config(config_path, mock)
    classifier = build_classifier(cfg, reply)

    outcome = asyncio.run(
        classifier.classify(ClassifierRequest(full_text=text, recent_segment=text))
    )

    entity = getattr(outcome, "entity", None)
    if entity:
        console.print(f"[bold green]Answer:[/] {escape(entity)}")
    elif isinstance(outcome, CallFailed):
        console.print(f"[red]Call failed[/] ({outcome.reason.value}): {escape(outcome.detail)}")
        sys.exit(1)
    else:
        console.print(f"[yellow]{outcome.kind.value}[/] for: {escape(text)}")


def load_script(path: Path) -> dict[str, Any]:
    """Load a transcript script (``segments`` and optional ``replies``)."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    segments = data.get("segments") or []
    for segment in segments:
        if not isinstance(segment, dict) or "text" not in segment:
            raise typer.BadParameter(f"invalid segment in {path}: {segment!r}")

    return {"segments": segments, "replies": [str(r) for r in data.get("replies") or []]}


@app.command()
def simulate(
    script: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML transcript script"),
    mock: bool = typer.Option(False, "--mock", help="Use the scripted mock provider"),
    delay: float = typer.Option(0.0, "--delay", help="Seconds between segments"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
):
    """Replay a scripted transcript through a live session."""
    cfg = get_config(config_path, mock)
    data = load_script(script)
    outcomes: list[Event] = []

    async def _simulate() -> None:
        registry = SessionRegistry(cfg, classifier=build_classifier(cfg, data["replies"]))

        async def record(event: Event) -> None:
            outcomes.append(event)

        registry.event_bus.subscribe("quiz.outcome", record)

        await registry.start_session("cli-user", f"cli-{int(time.time())}", ConsoleDisplay())
        try:
            for segment in data["segments"]:
                await registry.handle_transcription(
                    "cli-user", str(segment["text"]), bool(segment.get("final", False))
                )
                if delay:
                    await asyncio.sleep(delay)
        finally:
            await registry.close()

    asyncio.run(_simulate())

    table = Table(title="Classifications")
    table.add_column("#", style="dim")
    table.add_column("Outcome", style="cyan")
    table.add_column("Answer")
    table.add_column("Shown")

    for index, event in enumerate(outcomes, start=1):
        table.add_row(
            str(index),
            event.data["kind"],
            event.data.get("entity") or "",
            "✓" if event.data.get("displayed") else "",
        )

    console.print(table)


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
):
    """Show classifier provider status."""
    cfg = get_config(config_path, mock=False)
    provider = create_classifier(cfg.llm, mock_mode=cfg.mock_mode).get_status()

    style = "green" if provider.configured else "red"
    console.print(Panel(f"[bold {style}]{provider.name}[/]", title="Classifier"))
    console.print(f"  Model: {provider.model}")
    console.print(f"  Configured: {provider.configured}")
    if not provider.configured:
        console.print("[dim]Set QUIBBLE_LLM_API_KEY or the provider's API key variable.[/]")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Quibble[/] v{__version__}")


@app.command()
def config(
    json_output: bool = False,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
):
    """Show configuration."""
    cfg = load_config(config_path)

    if json_output:
        data = cfg.model_dump()
        if data["llm"]["api_key"]:
            data["llm"]["api_key"] = "***"
        print(json.dumps(data, indent=2, default=str))
    else:
        console.print("[bold]Configuration[/]")
        console.print(f"  App: {cfg.app.name}")
        console.print(f"  Mode: {cfg.app.mode}")
        console.print(f"  Mock Mode: {cfg.mock_mode}")
        console.print("\n[bold]LLM[/]")
        console.print(f"  Provider: {cfg.llm.provider}")
        console.print(f"  Model: {cfg.llm.model or 'provider default'}")
        console.print(f"  Fallback: {cfg.llm.fallback_model or 'provider default'}")
        console.print("\n[bold]Transcript[/]")
        console.print(f"  Min growth: {cfg.transcript.min_growth_chars} chars")
        console.print(f"  End-of-clue cues: {', '.join(cfg.transcript.end_of_clue_phrases)}")
        console.print("\n[bold]Display[/]")
        console.print(f"  Live transcription: {cfg.display.show_live_transcription}")
        console.print(f"  Silence clear: {cfg.display.silence_clear_seconds}s")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
