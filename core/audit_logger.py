"""Structured JSONL audit trail of unit outcomes."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Writes one JSON line per finished execution unit."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("ao.audit")
        self._lock = threading.Lock()

    @staticmethod
    def _hash_inputs(inputs: dict[str, Any]) -> str:
        payload = json.dumps(inputs, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def log(
        self,
        plan_id: str,
        execution_id: str,
        action_type: str,
        status: str,
        attempts: int,
        parameters: dict[str, Any],
        error: str = "",
    ) -> None:
        """Append one JSONL audit event."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "plan_id": plan_id,
            "execution_id": execution_id,
            "action_type": action_type,
            "status": status,
            "attempts": attempts,
            "parameters_hash": self._hash_inputs(parameters),
            "error": error,
        }
        line = json.dumps(event, ensure_ascii=True)
        with self._lock:
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        self.logger.debug(line)

    def read(self) -> list[dict[str, Any]]:
        if not self.log_path.exists():
            return []
        with self.log_path.open("r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]
