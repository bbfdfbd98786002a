"""Explicitly chained groups of detected actions."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from detection.types import Complexity, DetectedAction

SECONDS_PER_ACTION = 2


class ActionSequence(BaseModel):
    id: str = Field(default_factory=lambda: f"sequence_{uuid.uuid4().hex[:12]}")
    name: str
    description: str = ""
    actions: list[DetectedAction] = Field(default_factory=list)
    estimated_time: int = 0
    complexity: Complexity = Complexity.SIMPLE
    dependencies: list[str] = Field(default_factory=list)


def build_sequence(
    name: str,
    description: str,
    actions: list[DetectedAction],
    chained: bool = True,
) -> ActionSequence:
    """Copy ``actions`` into a sequence; when chained each waits for the previous one."""
    copies = [action.model_copy(deep=True) for action in actions]
    if chained:
        for previous, current in zip(copies, copies[1:]):
            if previous.id not in current.dependencies:
                current.dependencies.append(previous.id)

    if len(copies) > 5:
        complexity = Complexity.COMPLEX
    elif len(copies) > 2:
        complexity = Complexity.MODERATE
    else:
        complexity = Complexity.SIMPLE

    return ActionSequence(
        name=name,
        description=description,
        actions=copies,
        estimated_time=len(copies) * SECONDS_PER_ACTION,
        complexity=complexity,
        dependencies=[dep for action in copies for dep in action.dependencies],
    )
