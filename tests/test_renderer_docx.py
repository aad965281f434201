from io import BytesIO

import pytest
from docx import Document
from PIL import Image

from brd_builder import DOCX, InputEmptyError, render, render_document
from brd_builder.blocks import BlockKind
from brd_builder.config import docx_profile
from brd_builder.layout import DIAGRAM_GAP
from brd_builder.renderer import TocEntry

APOLLO = "# Project Apollo\n\n## Scope\n- Item one\n- Item two\n\n| A | B |\n|---|---|\n| 1 | 2 |\n"


def read(result):
    return Document(BytesIO(result.data))


def paragraphs_with_style(doc, name):
    return [p for p in doc.paragraphs if p.style.name == name]


def test_apollo_document():
    result = render_document(APOLLO, diagrams=[], fmt=DOCX)
    doc = read(result)

    assert result.title == "Project Apollo"
    assert doc.core_properties.title == "Project Apollo"
    assert "Project Apollo" in [p.text for p in doc.paragraphs]

    assert result.toc == [TocEntry(1, "Scope", "section_1")]
    toc = paragraphs_with_style(doc, "TOC 1")
    assert len(toc) == 1
    assert "1. Scope" in toc[0]._p.xml

    bullets = paragraphs_with_style(doc, "List Bullet")
    assert [p.text for p in bullets] == ["Item one", "Item two"]

    assert len(doc.tables) == 1
    table = doc.tables[0]
    assert [[cell.text for cell in row.cells] for row in table.rows] == [["A", "B"], ["1", "2"]]
    assert result.tables_rendered == 1


def test_headings_get_bookmarks_for_toc_links(sample_brd):
    result = render_document(sample_brd, fmt=DOCX)
    body = read(result).element.body.xml
    for entry in result.toc:
        assert f'w:name="{entry.anchor}"' in body
        assert f'w:anchor="{entry.anchor}"' in body


def test_section_headings_start_new_pages(sample_brd):
    doc = read(render_document(sample_brd, fmt=DOCX))
    headings = {p.text: p for p in paragraphs_with_style(doc, "Heading 2")}
    assert headings["1. Scope"].paragraph_format.page_break_before
    assert headings["3. Business Requirements"].paragraph_format.page_break_before
    assert not headings["Executive Summary"].paragraph_format.page_break_before


def test_inline_markup_becomes_run_formatting(sample_brd):
    doc = read(render_document(sample_brd, fmt=DOCX))
    paragraph = next(p for p in doc.paragraphs if p.text.startswith("This project covers"))
    styled = {run.text: (bool(run.bold), bool(run.italic)) for run in paragraph.runs}
    assert styled["claims intake"] == (True, False)
    assert styled["triage"] == (False, True)
    assert "**" not in paragraph.text


def embedded_images(doc):
    blobs = []
    for shape in doc.inline_shapes:
        rid = shape._inline.graphic.graphicData.pic.blipFill.blip.embed
        blobs.append(doc.part.related_parts[rid].blob)
    return blobs


def test_diagrams_bind_to_placeholders_in_order(png_bytes):
    markdown = "## Flows\n[DIAGRAM_PLACEHOLDER]\nBetween\n[DIAGRAM_PLACEHOLDER]\n[DIAGRAM_PLACEHOLDER]\n"
    second = BytesIO()
    Image.new("RGB", (20, 10), color=(200, 30, 30)).save(second, format="PNG")
    result = render_document(markdown, diagrams=[png_bytes, second.getvalue()], fmt=DOCX)
    assert result.diagrams_embedded == 2
    assert embedded_images(read(result)) == [png_bytes, second.getvalue()]


def test_diagram_advances_cursor_by_height_and_gap(png_bytes):
    config = docx_profile()
    result = render_document("## Flow\n[DIAGRAM_PLACEHOLDER]\n", diagrams=[png_bytes], config=config, fmt=DOCX)
    placement = next(p for p in result.placements if p.kind is BlockKind.DIAGRAM_PLACEHOLDER)
    assert placement.y_end - placement.y_start == pytest.approx(config.diagram_height + DIAGRAM_GAP)


def test_undecodable_diagram_is_skipped():
    result = render_document("## Flow\n[DIAGRAM_PLACEHOLDER]\nAfter\n", diagrams=[b"not an image"], fmt=DOCX)
    doc = read(result)
    assert result.diagrams_embedded == 0
    assert len(doc.inline_shapes) == 0
    assert "After" in [p.text for p in doc.paragraphs]


def test_empty_h1_falls_back_to_default_title():
    result = render_document("# \n\n## Scope\nText\n", fmt=DOCX)
    doc = read(result)
    assert result.title == "Project Name"
    assert all(p.text for p in paragraphs_with_style(doc, "Heading 1"))


def test_logo_is_embedded(png_bytes):
    doc = read(render_document(APOLLO, fmt=DOCX, logo=png_bytes))
    assert len(doc.inline_shapes) == 1


def test_broken_logo_is_ignored():
    doc = read(render_document(APOLLO, fmt=DOCX, logo=b"broken"))
    assert len(doc.inline_shapes) == 0


def test_oversized_images_are_skipped(monkeypatch, png_bytes):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    markdown = "## Flow\n[DIAGRAM_PLACEHOLDER]\nAfter\n"
    result = render_document(markdown, diagrams=[png_bytes], fmt=DOCX, logo=png_bytes)
    doc = read(result)
    assert result.diagrams_embedded == 0
    assert len(doc.inline_shapes) == 0
    assert "After" in [p.text for p in doc.paragraphs]


def test_field_toc_mode():
    doc = read(render_document(APOLLO, config={"tocMode": "field"}, fmt=DOCX))
    assert "TOC \\o" in doc.element.body.xml
    assert not paragraphs_with_style(doc, "TOC 1")


def test_toc_is_capped():
    markdown = "\n".join(f"## Section {i}\ntext" for i in range(20))
    result = render_document(markdown, config={"tocMaxEntries": 5}, fmt=DOCX)
    assert [entry.number for entry in result.toc] == [1, 2, 3, 4, 5]


def test_placements_never_go_back_a_page(sample_brd):
    result = render_document(sample_brd * 4, fmt=DOCX)
    pages = [p.page_index for p in result.placements]
    assert pages == sorted(pages)


def test_render_returns_bytes():
    data = render(APOLLO)
    assert data[:2] == b"PK"


@pytest.mark.parametrize("markdown", ["", "   \n\t\n", "****\n", "Page 1 of 2\n"])
def test_empty_input_is_rejected(markdown):
    with pytest.raises(InputEmptyError):
        render(markdown)
    with pytest.raises(ValueError):
        render(markdown)


def test_unknown_format_is_rejected():
    with pytest.raises(ValueError):
        render(APOLLO, fmt="odt")


def test_unknown_config_option_is_rejected():
    with pytest.raises(ValueError):
        render(APOLLO, config={"noSuchOption": 1})
