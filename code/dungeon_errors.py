"""Exception hierarchy raised by the dungeon generator."""

from __future__ import annotations


class DungeonGenerationError(Exception):
    """Base class for all generator failures."""


class DungeonConfigError(DungeonGenerationError, ValueError):
    """Raised when a DungeonConfig holds out-of-range or inconsistent values."""


class GraphIntegrityError(DungeonGenerationError):
    """Raised when a spatial graph operation would break graph invariants."""


class UnknownNodeError(GraphIntegrityError, KeyError):
    """Raised when an operation references a node id the graph does not hold."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Unknown node id {self.node_id!r}"


class GenerationIncompleteError(DungeonGenerationError):
    """Raised when a finished layout leaves rooms unreachable from the entrance."""

    def __init__(self, message: str, unreachable: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.unreachable = unreachable
