"""
Cell matrix: an immutable 2-D grid of string cells.

Raw rows from a paste or a spreadsheet export are jagged and may carry
``None``/non-string cells. ``normalize()`` produces the rectangular form every
later stage works on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


@dataclass(frozen=True)
class CellMatrix:
    rows: Tuple[Tuple[str, ...], ...] = ()

    @classmethod
    def from_rows(cls, rows: Optional[Sequence[Sequence[Any]]]) -> "CellMatrix":
        if not rows:
            return cls(())
        return cls(tuple(tuple(_cell_text(v) for v in (row or ())) for row in rows))

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def col_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0 or self.col_count == 0

    def normalize(self) -> "CellMatrix":
        """
        Trim cells, pad short rows and drop trailing blank rows/columns.

        Rows are padded to the widest row, never truncated. Blank rows and
        columns inside the grid are kept: they separate blocks.
        """
        width = self.col_count
        grid = [[v.strip() for v in row] + [""] * (width - len(row)) for row in self.rows]

        bottom = len(grid) - 1
        while bottom >= 0 and all(v == "" for v in grid[bottom]):
            bottom -= 1
        grid = grid[: bottom + 1]

        right = width - 1
        while right >= 0 and all(row[right] == "" for row in grid):
            right -= 1

        return CellMatrix(tuple(tuple(row[: right + 1]) for row in grid if right >= 0))

    def get_row(self, index: int) -> List[str]:
        if index < 0 or index >= self.row_count:
            return []
        return list(self.rows[index])

    def get_column(self, index: int) -> List[str]:
        return [row[index] if 0 <= index < len(row) else "" for row in self.rows]

    def cell(self, row: int, col: int) -> str:
        if 0 <= row < self.row_count and 0 <= col < len(self.rows[row]):
            return self.rows[row][col]
        return ""

    def slice_rows(self, start: int, end: Optional[int] = None) -> "CellMatrix":
        end = self.row_count if end is None else min(end, self.row_count)
        start = max(start, 0)
        if start >= end:
            return CellMatrix(())
        return CellMatrix(self.rows[start:end])

    def slice_region(self, top: int, left: int, bottom: int, right: int) -> "CellMatrix":
        """Inclusive sub-grid; cells outside the source read as blank."""
        return CellMatrix(
            tuple(
                tuple(self.cell(r, c) for c in range(left, right + 1))
                for r in range(max(top, 0), min(bottom, self.row_count - 1) + 1)
            )
        )

    def is_blank_row(self, index: int, left: int = 0, right: Optional[int] = None) -> bool:
        right = self.col_count - 1 if right is None else right
        return all(is_blank(self.cell(index, c)) for c in range(left, right + 1))

    def is_blank_col(self, index: int, top: int = 0, bottom: Optional[int] = None) -> bool:
        bottom = self.row_count - 1 if bottom is None else bottom
        return all(is_blank(self.cell(r, index)) for r in range(top, bottom + 1))

    def to_lists(self) -> List[List[str]]:
        return [list(row) for row in self.rows]
