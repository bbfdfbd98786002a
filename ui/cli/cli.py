"""CLI entrypoint for action-orchestrator."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ui.cli import commands

app = typer.Typer(help="Board assistant action orchestrator")
patterns_app = typer.Typer(help="Action pattern commands")
config_app = typer.Typer(help="Configuration commands")


@app.callback()
def main_callback(
    root: Optional[Path] = typer.Option(None, "--root", help="Directory holding config/"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Global options."""
    commands.configure(root=root, verbose=verbose)


@app.command("detect")
def detect_cmd(
    text: str = typer.Argument(..., help="User request"),
    nodes: int = typer.Option(0, "--nodes", min=0, help="Seed the board with N nodes"),
    edges: int = typer.Option(0, "--edges", min=0, help="Chain up to N seeded nodes"),
    selected: Optional[str] = typer.Option(None, "--selected", help="Selected node id, or 'first'"),
    document: list[str] = typer.Option([], "--document", help="Attach a document by name"),
) -> None:
    """Print detected actions as JSON."""
    commands.detect(text=text, nodes=nodes, edges=edges, selected=selected, documents=document)


@app.command("run")
def run_cmd(
    text: str = typer.Argument(..., help="User request"),
    nodes: int = typer.Option(0, "--nodes", min=0, help="Seed the board with N nodes"),
    threshold: Optional[float] = typer.Option(None, "--threshold", min=0.0, max=1.0),
) -> None:
    """Detect and execute a request, printing progress and the report."""
    commands.run(text=text, nodes=nodes, threshold=threshold)


@patterns_app.command("list")
def patterns_list_cmd() -> None:
    """List registered action patterns."""
    commands.patterns_list()


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(patterns_app, name="patterns")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
