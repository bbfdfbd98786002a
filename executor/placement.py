"""Non-overlapping placement of new nodes on the board."""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field

from board.graph_document import GraphDocument
from board.models import Position

logger = logging.getLogger("ao.placement")

RANDOM_SPREAD = 1000


@dataclass
class PlacementGrid:
    """Grid scan with a square exclusion radius around every occupied spot.

    Reservations made during a run are remembered so concurrent units never
    pick the same slot before their nodes reach the document.
    """

    grid_size: int = 300
    start_x: int = 200
    start_y: int = 200
    min_distance: int = 250
    rows: int = 10
    cols: int = 10
    rng: random.Random = field(default_factory=random.Random)
    _reserved: list[Position] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_config(cls, config: dict, rng: random.Random | None = None) -> PlacementGrid:
        section = config.get("placement", {}) or {}
        return cls(
            grid_size=int(section.get("grid_size", 300)),
            start_x=int(section.get("start_x", 200)),
            start_y=int(section.get("start_y", 200)),
            min_distance=int(section.get("min_distance", 250)),
            rows=int(section.get("grid_rows", 10)),
            cols=int(section.get("grid_cols", 10)),
            rng=rng or random.Random(),
        )

    def _too_close(self, x: float, y: float, occupied: list[Position]) -> bool:
        return any(
            abs(pos.x - x) < self.min_distance and abs(pos.y - y) < self.min_distance
            for pos in occupied
        )

    def find_position(self, occupied: list[Position]) -> Position:
        for row in range(self.rows):
            for col in range(self.cols):
                x = self.start_x + col * self.grid_size
                y = self.start_y + row * self.grid_size
                if not self._too_close(x, y, occupied):
                    return Position(x=x, y=y)
        logger.warning("Placement grid exhausted; using random position")
        return Position(
            x=self.start_x + self.rng.random() * RANDOM_SPREAD,
            y=self.start_y + self.rng.random() * RANDOM_SPREAD,
        )

    def reserve(self, document: GraphDocument) -> Position:
        """Pick a free slot against live nodes and earlier reservations."""
        with self._lock:
            occupied = [node.position for node in document.list_nodes()] + self._reserved
            position = self.find_position(occupied)
            self._reserved.append(position)
            return position

    def release_all(self) -> None:
        with self._lock:
            self._reserved.clear()
