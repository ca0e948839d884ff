"""CLI entry point — Typer app for groundrag commands.

Usage:
    groundrag ask "When does the library open?"
    groundrag ask "Who is the principal?" --provider openrouter
    groundrag status
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer(
    name="groundrag",
    help="Grounded question answering over a fixed knowledge base.",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    provider: str | None = typer.Option(
        None, "--provider", "-p", help="Preferred provider for this run",
    ),
    top_k: int | None = typer.Option(
        None, "--top-k", "-k", help="Number of chunks to retrieve",
    ),
    settings_file: Path | None = typer.Option(
        None, "--settings", help="Path to settings.yaml",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show pipeline logs"),
) -> None:
    """Answer a question from the knowledge base."""
    from groundrag.config import load_settings
    from groundrag.pipeline.citations import format_citations
    from groundrag.pipeline.synthesizer import AnswerSynthesizer

    _configure_logging(verbose)

    settings = load_settings(settings_file)
    if top_k is not None:
        settings.retrieval.top_k = top_k

    synthesizer = AnswerSynthesizer.from_settings(settings)
    if provider:
        synthesizer.coordinator.switch_provider(provider)

    outcome = synthesizer.answer_query(question)
    meta = outcome.metadata

    console.print(f"\n[bold]Q:[/] {meta.query}")
    console.print(f"\n[bold green]A:[/] {outcome.answer}")

    if outcome.sources:
        console.print(format_citations(outcome.sources))

    reason = f" | Reason: {meta.reason.value}" if meta.reason else ""
    console.print(
        f"\n[dim]Provider: {meta.provider} | Matches: {meta.matches_count} "
        f"| Top score: {meta.top_score:.3f} | {meta.processing_time_ms}ms{reason}[/]",
    )


@app.command()
def status(
    settings_file: Path | None = typer.Option(
        None, "--settings", help="Path to settings.yaml",
    ),
) -> None:
    """Show configured providers, vector backend and pipeline thresholds."""
    from groundrag import __version__
    from groundrag.config import load_settings
    from groundrag.providers.coordinator import ProviderCoordinator
    from groundrag.providers.factory import available_providers
    from groundrag.vectorstore.factory import available_stores

    settings = load_settings(settings_file)
    coordinator = ProviderCoordinator.from_settings(settings)

    console.print(f"\n[bold green]groundrag[/] v{__version__}\n")

    table = Table(title="Providers (priority order)")
    table.add_column("Provider", style="cyan")
    table.add_column("Credentials")
    table.add_column("Embedding model")
    table.add_column("Generation model")

    infos = {info.name: info for info in coordinator.describe()}
    for name in coordinator.state.priority_order():
        info = infos[name]
        label = f"{name} [bold](preferred)[/]" if info.preferred else name
        table.add_row(
            label,
            "[green]yes[/]" if info.has_credentials else "[red]missing[/]",
            info.embed_model,
            info.llm_model,
        )
    console.print(table)

    console.print(f"\nRegistered providers: {', '.join(available_providers())}")
    console.print(
        f"Vector store: [cyan]{settings.vectorstore.backend}[/] "
        f"(available: {', '.join(available_stores())})"
    )
    console.print(
        f"Retrieval: top_k={settings.retrieval.top_k}, "
        f"similarity_threshold={settings.retrieval.similarity_threshold}"
    )
    console.print(
        f"Retries: {settings.providers.max_retries} per provider, "
        f"initial backoff {settings.providers.initial_backoff_ms}ms"
    )


if __name__ == "__main__":
    app()
