"""Typer command handlers."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from board.graph_document import GraphDocument, InMemoryGraphDocument
from board.models import NodeSpec
from core.policy_runtime import configure_logging
from core.runtime import Runtime, RuntimeBundle
from detection.context import AIContext, DocumentInfo
from detection.patterns import default_patterns
from executor.placement import PlacementGrid
from executor.schemas import ExecutionProgress

_options: dict[str, object] = {"root": None, "verbose": False}


def configure(root: Path | None, verbose: bool) -> None:
    """Store global options and set up logging for this invocation."""
    _options["root"] = root
    _options["verbose"] = verbose
    configure_logging(Runtime(root=root).load_config(), verbose=verbose)


def _runtime(document: GraphDocument | None = None, overrides: dict | None = None) -> RuntimeBundle:
    root = _options["root"]
    return Runtime(root=root if isinstance(root, Path) else None).build(document=document, overrides=overrides)


def seed_board(document: GraphDocument, nodes: int, edges: int = 0) -> list[str]:
    """Fill ``document`` with placeholder nodes and chain up to ``edges`` of them."""
    grid = PlacementGrid()
    ids = [
        document.add_node(
            NodeSpec(
                label=f"Seed Node {index + 1}",
                content="Existing board content",
                position=grid.reserve(document),
                ai_generated=False,
            )
        )
        for index in range(nodes)
    ]
    for source, target in list(zip(ids, ids[1:]))[:edges]:
        document.add_edge(source, target)
    return ids


def _context(document: GraphDocument, selected: str | None, documents: list[str]) -> AIContext:
    infos = [DocumentInfo(id=f"doc_{index}", name=name) for index, name in enumerate(documents)]
    return AIContext.from_graph(document, selected_node_id=selected, documents=infos or None)


def detect(text: str, nodes: int, edges: int, selected: str | None, documents: list[str]) -> None:
    """Print detected actions as JSON."""
    document = InMemoryGraphDocument()
    seeded = seed_board(document, nodes, edges)
    if selected == "first" and seeded:
        selected = seeded[0]
    bundle = _runtime(document=document)
    actions = bundle.detector.detect(text, _context(document, selected, documents))
    typer.echo(json.dumps([action.model_dump(mode="json") for action in actions], indent=2))


def _print_progress(progress: ExecutionProgress) -> None:
    typer.echo(
        f"[{progress.status.value}] step {progress.current_step}/{progress.total_steps} "
        f"completed={progress.completed_actions} failed={progress.failed_actions} "
        f"skipped={progress.skipped_actions}"
    )


def run(text: str, nodes: int, threshold: float | None) -> None:
    """Detect actions and execute them against a seeded in-memory board."""
    document = InMemoryGraphDocument()
    seed_board(document, nodes)
    overrides = {"confidence_threshold": threshold} if threshold is not None else None
    bundle = _runtime(document=document, overrides=overrides)
    context = AIContext.from_graph(document)
    actions = bundle.detector.detect(text, context)
    for action in actions:
        typer.echo(f"detected {action.action_type.value} confidence={action.confidence:.2f}")
    report = bundle.orchestrator.execute_actions(actions, context, on_progress=_print_progress)
    typer.echo(report.model_dump_json(indent=2))
    if not report.success:
        raise typer.Exit(code=1)


def patterns_list() -> None:
    """List registered action patterns."""
    for pattern in default_patterns():
        typer.echo(f"{pattern.id}: {pattern.description} (e.g. {', '.join(pattern.examples) or '-'})")


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(_json_safe(bundle.config), indent=2))


def _json_safe(payload: object) -> object:
    """Convert datetimes and paths to strings for JSON output."""
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if isinstance(payload, Path):
        return str(payload)
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
