import pytest

from brd_builder.blocks import BlockKind
from brd_builder.config import pdf_profile
from brd_builder.inline import InlineRun, tokenize
from brd_builder.layout import (
    DIAGRAM_GAP,
    TEXT_GAP,
    BlockMetrics,
    LayoutEngine,
    line_height,
    should_force_break,
    wrap_runs,
)


@pytest.fixture
def engine():
    return LayoutEngine.for_config(pdf_profile())


def test_engine_starts_at_top_margin(engine):
    config = pdf_profile()
    assert engine.cursor.y == config.page_margins.top
    assert engine.cursor.page_index == 0
    assert engine.at_page_top


def test_ensure_space_does_not_break_empty_page(engine):
    assert engine.ensure_space(engine.page_height * 3) is False
    assert engine.cursor.page_index == 0


def test_ensure_space_breaks_when_block_does_not_fit(engine):
    engine.advance(100)
    assert engine.ensure_space(engine.available + 1) is True
    assert engine.cursor.page_index == 1
    assert engine.cursor.y == engine.top
    assert engine.at_page_top


def test_ensure_space_keeps_page_when_block_fits(engine):
    engine.advance(100)
    assert engine.ensure_space(engine.available) is False
    assert engine.cursor.page_index == 0


def test_force_break_reuses_empty_page(engine):
    assert engine.force_break() is False
    engine.advance(10)
    assert engine.force_break() is True
    assert engine.cursor.page_index == 1
    assert engine.force_break() is False


def test_advance_records_placement(engine):
    start = engine.cursor.y
    engine.advance(25, BlockKind.PARAGRAPH)
    placement = engine.placements[-1]
    assert placement.kind is BlockKind.PARAGRAPH
    assert (placement.page_index, placement.y_start, placement.y_end) == (0, start, start + 25)


def test_wrap_runs_splits_long_text():
    text = "word " * 200
    lines = wrap_runs([InlineRun(text)], 200, "Helvetica", 9)
    assert len(lines) > 1
    assert " ".join("".join(run.text for run in line) for line in lines).split() == text.split()


def test_wrap_runs_hard_splits_unbreakable_word():
    lines = wrap_runs([InlineRun("x" * 400)], 100, "Helvetica", 9)
    assert len(lines) > 1
    assert "".join(run.text for line in lines for run in line) == "x" * 400


def test_wrap_runs_keeps_styles():
    lines = wrap_runs(tokenize("plain **bold**"), 500, "Helvetica", 9)
    assert lines == [[InlineRun("plain"), InlineRun(" "), InlineRun("bold", bold=True)]]


def test_text_block_height_grows_with_lines():
    metrics = BlockMetrics(pdf_profile())
    size = metrics.config.font_sizes.body
    assert metrics.text_block([InlineRun("short")]) == pytest.approx(line_height(size) + TEXT_GAP)
    assert metrics.text_block([InlineRun("long text " * 100)]) > metrics.text_block([InlineRun("short")])


def test_diagram_height_includes_gap():
    config = pdf_profile()
    assert BlockMetrics(config).diagram() == config.diagram_height + DIAGRAM_GAP


@pytest.mark.parametrize(
    "level, text, expected",
    [
        (1, "Anything", True),
        (2, "7 Scope", True),
        (2, "Business Problem/Opportunity", True),
        (2, "US1 Login", True),
        (2, "A3 Reporting", True),
        (2, "10 Business Requirements", True),
        (2, "Revision History", False),
        (3, "Scope", False),
        (4, "User Story A1", False),
    ],
)
def test_should_force_break(level, text, expected):
    assert should_force_break(level, text) is expected
