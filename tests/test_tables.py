import pytest

from brd_builder.blocks import classify_line
from brd_builder.tables import TableAccumulator


def feed(accumulator, lines):
    for line in lines:
        accumulator.add(classify_line(line))


def test_header_and_body_rows():
    accumulator = TableAccumulator()
    feed(accumulator, ["| A | B |", "|---|---|", "| 1 | 2 |", "| 3 | 4 |"])
    table = accumulator.flush()
    assert table.header_cells == ["A", "B"]
    assert table.body_rows == [["1", "2"], ["3", "4"]]
    assert not accumulator.pending


def test_separator_row_is_optional():
    accumulator = TableAccumulator()
    feed(accumulator, ["| A | B |", "| 1 | 2 |"])
    assert accumulator.flush().body_rows == [["1", "2"]]


def test_body_rows_exclude_header_and_separator():
    lines = ["| H1 | H2 |", "|---|---|"] + [f"| r{i} | v{i} |" for i in range(5)]
    accumulator = TableAccumulator()
    feed(accumulator, lines)
    assert len(accumulator.flush().body_rows) == len(lines) - 2


def test_header_only_table_is_dropped():
    accumulator = TableAccumulator()
    feed(accumulator, ["| A | B |", "|---|---|"])
    assert accumulator.pending
    assert accumulator.flush() is None
    assert not accumulator.pending


def test_ragged_rows_are_padded():
    accumulator = TableAccumulator()
    feed(accumulator, ["| A | B | C |", "| 1 |", "| 2 | 3 | 4 | 5 |"])
    table = accumulator.flush()
    assert table.column_count == 4
    assert table.normalized_rows() == [
        ["A", "B", "C", ""],
        ["1", "", "", ""],
        ["2", "3", "4", "5"],
    ]


def test_non_table_block_is_rejected():
    with pytest.raises(ValueError):
        TableAccumulator().add(classify_line("plain"))
