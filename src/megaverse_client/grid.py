from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from megaverse.dispatch import Operation

from .errors import GoalParseError
from .models import CELL_WIDTH, SPACE, Entity, parse_cell


@dataclass(frozen=True)
class Grid:
    """Goal map as a flat row-major array of optional entities."""

    candidate_id: str
    rows: int
    columns: int
    cells: tuple[Optional[Entity], ...]

    def __post_init__(self) -> None:
        if len(self.cells) != self.rows * self.columns:
            raise GoalParseError(
                f"Grid has {len(self.cells)} cells, expected {self.rows}x{self.columns}"
            )

    @classmethod
    def from_goal(cls, candidate_id: str, matrix: Sequence[Sequence[str]]) -> "Grid":
        """Build a grid from the goal endpoint's matrix of tokens."""
        rows = len(matrix)
        columns = len(matrix[0]) if rows else 0
        cells: list[Optional[Entity]] = []
        for r, line in enumerate(matrix):
            if len(line) != columns:
                raise GoalParseError(f"Row {r} has {len(line)} cells, expected {columns}")
            cells.extend(parse_cell(token) for token in line)
        return cls(candidate_id=candidate_id, rows=rows, columns=columns, cells=tuple(cells))

    def cell(self, row: int, column: int) -> Optional[Entity]:
        if not (0 <= row < self.rows and 0 <= column < self.columns):
            raise IndexError(f"({row}, {column}) outside {self.rows}x{self.columns} grid")
        return self.cells[row * self.columns + column]

    def occupied(self) -> Iterator[tuple[int, int, Entity]]:
        """(row, column, entity) for every non-empty cell, row-major."""
        for idx, entity in enumerate(self.cells):
            if entity is not None:
                yield idx // self.columns, idx % self.columns, entity

    @property
    def occupied_count(self) -> int:
        return sum(1 for c in self.cells if c is not None)

    def to_operations(self) -> list[Operation]:
        return [
            Operation(
                destination=entity.endpoint,
                payload=entity.to_payload(self.candidate_id, row, column),
                key=f"{entity.endpoint}@({row},{column})",
            )
            for row, column, entity in self.occupied()
        ]

    def render(self) -> str:
        lines = []
        for r in range(self.rows):
            row = self.cells[r * self.columns : (r + 1) * self.columns]
            lines.append(
                " ".join(c.render() if c is not None else f"{SPACE:<{CELL_WIDTH}}" for c in row).rstrip()
            )
        return "\n".join(lines)
