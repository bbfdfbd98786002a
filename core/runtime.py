"""Top-level wiring of detector, orchestrator and collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from board.graph_document import GraphDocument, InMemoryGraphDocument
from core.audit_logger import AuditLogger
from core.event_bus import EventBus
from core.orchestrator import ActionOrchestrator
from core.policy_runtime import ExecutionCapabilities, load_effective_config, resolve_audit_path
from detection.action_detector import ActionDetector
from executor.command_executor import CommandExecutor
from executor.content_generator import ContentGenerator
from executor.placement import PlacementGrid
from llm.base_llm import BaseLLM
from llm.llm_factory import build_llm


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    document: GraphDocument
    llm: BaseLLM
    detector: ActionDetector
    orchestrator: ActionOrchestrator
    event_bus: EventBus
    audit_logger: AuditLogger | None


class Runtime:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, config: dict[str, Any] | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self._config = config

    def load_config(self) -> dict[str, Any]:
        if self._config is None:
            self._config = load_effective_config(self.root)
        return self._config

    def build(
        self,
        document: GraphDocument | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> RuntimeBundle:
        config = self.load_config()
        section = dict(config.get("orchestrator", {}) or {})
        section.update(overrides or {})
        capabilities = ExecutionCapabilities.from_config({"orchestrator": section})

        detection_cfg = config.get("detection", {}) or {}
        detector = ActionDetector(
            max_candidates=int(detection_cfg.get("max_candidates", 3)),
            max_results=int(detection_cfg.get("max_results", 5)),
        )

        document = document or InMemoryGraphDocument()
        llm = build_llm(config=config)
        audit_path = resolve_audit_path(self.root, config)
        audit_logger = AuditLogger(audit_path) if audit_path else None
        event_bus = EventBus()

        executor = CommandExecutor(
            document=document,
            content=ContentGenerator(llm),
            placement=PlacementGrid.from_config(config),
        )
        orchestrator = ActionOrchestrator(
            executor,
            capabilities=capabilities,
            event_bus=event_bus,
            audit_logger=audit_logger,
        )
        return RuntimeBundle(
            config=config,
            document=document,
            llm=llm,
            detector=detector,
            orchestrator=orchestrator,
            event_bus=event_bus,
            audit_logger=audit_logger,
        )
