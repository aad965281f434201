import pytest

from brd_builder.blocks import PLACEHOLDER, BlockKind, classify_line, iter_blocks, sanitize_markdown


@pytest.mark.parametrize(
    "line, kind, text",
    [
        ("# Project Apollo", BlockKind.HEADING1, "Project Apollo"),
        ("## 1. Scope", BlockKind.HEADING2, "1. Scope"),
        ("### **8.1 Process Map**", BlockKind.HEADING3, "8.1 Process Map"),
        ("#### User Story A1", BlockKind.HEADING4, "User Story A1"),
        ("- first item", BlockKind.BULLET_ITEM, "first item"),
        ("* second item", BlockKind.BULLET_ITEM, "second item"),
        ("• third item", BlockKind.BULLET_ITEM, "third item"),
        ("Some paragraph text.", BlockKind.PARAGRAPH, "Some paragraph text."),
        ("  indented paragraph  ", BlockKind.PARAGRAPH, "indented paragraph"),
    ],
)
def test_classify_line(line, kind, text):
    block = classify_line(line)
    assert block.kind is kind
    assert block.text == text


def test_heading_marker_alone_is_empty_heading():
    block = classify_line("#")
    assert block.kind is BlockKind.HEADING1
    assert block.text == ""


def test_five_hashes_is_a_paragraph():
    assert classify_line("##### Deep").kind is BlockKind.PARAGRAPH


def test_blank_and_rule_and_placeholder():
    assert classify_line("   ").kind is BlockKind.BLANK
    assert classify_line("---").kind is BlockKind.HORIZONTAL_RULE
    assert classify_line(PLACEHOLDER).kind is BlockKind.DIAGRAM_PLACEHOLDER


def test_table_row_cells_are_cleaned():
    block = classify_line("| **ID** | `Name` |  |")
    assert block.kind is BlockKind.TABLE_ROW
    assert block.cells == ("ID", "Name")


def test_separator_row_has_no_cells():
    block = classify_line("|---|:---:|")
    assert block.kind is BlockKind.TABLE_ROW
    assert block.cells == ()


@pytest.mark.parametrize(
    "line",
    ["style A fill:#f9f,stroke:#333", "B fill:#fff", "C", "```mermaid", "```"],
)
def test_diagram_directives_are_skipped(line):
    assert classify_line(line) is None


def test_iter_blocks_keeps_document_order():
    kinds = [block.kind for block in iter_blocks("## Scope\n\ntext\nstyle A fill:#fff\n- item")]
    assert kinds == [BlockKind.HEADING2, BlockKind.BLANK, BlockKind.PARAGRAPH, BlockKind.BULLET_ITEM]


def test_sanitize_turns_mermaid_fence_into_placeholder(sample_brd):
    text = sanitize_markdown(sample_brd)
    assert "```" not in text
    assert "flowchart" not in text
    assert text.count(PLACEHOLDER) == 1


def test_sanitize_removes_artefacts():
    text = sanitize_markdown(
        "Line one<br>Line two &amp; more\nPage 3 of 9\n[Version 0.1]\n![logo](x.png)\n****\n```python\nprint()\n```"
    )
    assert text.splitlines()[:2] == ["Line one", "Line two & more"]
    assert "Page 3 of 9" not in text
    assert "[Version 0.1]" not in text
    assert "logo" not in text
    assert "****" not in text
    assert "```" not in text
