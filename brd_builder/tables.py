from dataclasses import dataclass, field
from typing import List

from .blocks import BlockKind


@dataclass
class Table:
    header_cells: List[str]
    body_rows: List[List[str]] = field(default_factory=list)

    @property
    def column_count(self):
        return max([len(self.header_cells)] + [len(row) for row in self.body_rows])

    def normalized_rows(self):
        """Header followed by body rows, all padded to the same width."""
        width = self.column_count
        rows = [self.header_cells] + self.body_rows
        return [list(row) + [""] * (width - len(row)) for row in rows]


class TableAccumulator:
    """Buffers a contiguous run of table-row blocks.

    The first row with cells is the header. Rows whose cells were all
    separators (``|---|---|``) come through with no cells and are dropped.
    A table is only emitted when it has at least one body row.
    """

    def __init__(self):
        self._rows = []
        self._lines = 0

    @property
    def pending(self):
        return self._lines > 0

    def add(self, block):
        if block.kind is not BlockKind.TABLE_ROW:
            raise ValueError(f"Expected a table row, got {block.kind}")
        self._lines += 1
        if block.cells:
            self._rows.append(list(block.cells))

    def flush(self):
        rows, self._rows, self._lines = self._rows, [], 0
        if len(rows) < 2:
            return None
        return Table(header_cells=rows[0], body_rows=rows[1:])
