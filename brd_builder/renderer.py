import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .blocks import BlockKind, iter_blocks, sanitize_markdown
from .config import DOCX, PDF, resolve_config
from .diagrams import DiagramResolver, load_image, resolve_diagrams
from .docx_writer import DocxWriter
from .errors import InputEmptyError, RecoverableAssetError
from .inline import tokenize
from .layout import BULLET_INDENT, TABLE_GAP, TABLE_MIN_SPACE, BlockMetrics, LayoutEngine, Placement, should_force_break
from .pdf_writer import PdfWriter
from .tables import TableAccumulator
from .title import extract_title

logger = logging.getLogger(__name__)

WRITERS = {DOCX: DocxWriter, PDF: PdfWriter}


@dataclass(frozen=True)
class TocEntry:
    number: int
    title: str
    anchor: str


@dataclass
class RenderResult:
    data: bytes
    format: str
    title: str
    toc: List[TocEntry]
    placements: List[Placement]
    diagrams_embedded: int
    tables_rendered: int
    page_count: int


@dataclass
class _RenderState:
    writer: object
    engine: LayoutEngine
    metrics: BlockMetrics
    diagrams: DiagramResolver
    force_breaks: bool
    tables: TableAccumulator = field(default_factory=TableAccumulator)
    anchors: dict = field(default_factory=dict)
    h2_count: int = 0
    diagrams_embedded: int = 0
    tables_rendered: int = 0


def build_toc(blocks, max_entries):
    """Number the level-two headings in document order."""
    entries = []
    for block in blocks:
        if block.kind is BlockKind.HEADING2 and block.text:
            number = len(entries) + 1
            entries.append(TocEntry(number, block.text, f"section_{number}"))
    return entries[:max_entries]


def _load_logo(logo):
    if not logo:
        return None
    try:
        return load_image(logo)
    except RecoverableAssetError as e:
        logger.warning("Logo skipped: %s", e)
        return None


def _break_before(state, required, forced=False):
    if forced and state.force_breaks:
        if state.engine.force_break():
            state.writer.new_page(forced=True)
            return
    if state.engine.ensure_space(required):
        state.writer.new_page(forced=False)


def _render_table(state, table):
    engine, writer = state.engine, state.writer
    _break_before(state, min(writer.measure_table(table), TABLE_MIN_SPACE))
    pending = table
    while pending is not None:
        used, pending = writer.add_table(pending, engine.cursor.y, engine.available, engine.at_page_top)
        if used:
            engine.advance(used, BlockKind.TABLE_ROW)
        if pending is not None:
            engine.new_page()
            writer.new_page(forced=False)
    engine.advance(TABLE_GAP)
    state.tables_rendered += 1


def _flush_table(state):
    if state.tables.pending:
        table = state.tables.flush()
        if table is not None:
            _render_table(state, table)


def _render_heading(state, block):
    level = block.kind.heading_level
    if not block.text:
        return
    anchor = None
    if level == 2:
        state.h2_count += 1
        anchor = state.anchors.get(state.h2_count)
    height = state.metrics.heading(level, block.text)
    _break_before(state, height, forced=should_force_break(level, block.text))
    state.writer.add_heading(level, block.text, state.engine.cursor.y, anchor=anchor)
    state.engine.advance(height, block.kind)


def _render_diagram(state, block):
    index = state.diagrams.next_index
    image = state.diagrams.next_image()
    if image is None:
        logger.debug("No diagram bound to placeholder %d", index + 1)
        return
    height = state.metrics.diagram()
    _break_before(state, height)
    try:
        state.writer.add_image(image, state.engine.cursor.y)
    except RecoverableAssetError as e:
        logger.warning("Diagram %d skipped: %s", index + 1, e)
        return
    state.engine.advance(height, block.kind)
    state.diagrams_embedded += 1


def _render_text(state, block):
    runs = tokenize(block.text)
    if block.kind is BlockKind.BULLET_ITEM:
        height = state.metrics.text_block(runs, BULLET_INDENT)
        _break_before(state, height)
        state.writer.add_bullet(runs, state.engine.cursor.y)
    else:
        height = state.metrics.text_block(runs)
        _break_before(state, height)
        state.writer.add_paragraph(runs, state.engine.cursor.y)
    state.engine.advance(height, block.kind)


def _render_rule(state, block):
    height = state.metrics.rule()
    _break_before(state, height)
    state.writer.add_rule(state.engine.cursor.y)
    state.engine.advance(height, block.kind)


def _render_block(state, block):
    if block.kind is BlockKind.TABLE_ROW:
        state.tables.add(block)
        return
    _flush_table(state)

    if block.kind is BlockKind.BLANK:
        return
    if block.kind.heading_level:
        _render_heading(state, block)
    elif block.kind is BlockKind.DIAGRAM_PLACEHOLDER:
        _render_diagram(state, block)
    elif block.kind is BlockKind.HORIZONTAL_RULE:
        _render_rule(state, block)
    else:
        _render_text(state, block)


def render_document(markdown, diagrams=None, config=None, fmt=DOCX, logo=None):
    """Render BRD markdown into a DOCX or PDF document.

    ``diagrams`` is an ordered list bound positionally to the
    ``[DIAGRAM_PLACEHOLDER]`` lines; entries may be image bytes, URLs or
    ``DiagramSource`` objects, and ``None``/undecodable entries leave their
    placeholder empty. Raises ``InputEmptyError`` for blank input or input
    that is empty once sanitised.
    """
    if not markdown or not markdown.strip():
        raise InputEmptyError("No BRD content available. Generate the BRD before rendering it.")
    if fmt not in WRITERS:
        raise ValueError(f"Unsupported output format: {fmt}")

    config = resolve_config(config, fmt)
    text = sanitize_markdown(markdown)
    if not text:
        raise InputEmptyError("The BRD has no renderable content after cleanup.")
    title = extract_title(text, config.default_title, config.title_bounds)
    blocks = list(iter_blocks(text))
    toc = build_toc(blocks, config.toc_max_entries)
    images = resolve_diagrams(diagrams)
    logger.info("Rendering %s BRD '%s': %d blocks, %d diagram(s)", fmt, title, len(blocks), len(images))

    writer = WRITERS[fmt](config)
    engine = LayoutEngine.for_config(config)
    state = _RenderState(
        writer=writer,
        engine=engine,
        metrics=BlockMetrics(config),
        diagrams=DiagramResolver(images),
        force_breaks=config.force_section_breaks,
        anchors={entry.number: entry.anchor for entry in toc},
    )

    writer.start_cover_page(title, _load_logo(logo))
    engine.new_page()
    writer.new_page(forced=True)
    writer.add_toc(toc, engine.cursor.y)
    engine.new_page()
    writer.begin_body()

    for block in blocks:
        _render_block(state, block)
    _flush_table(state)

    data = writer.finalize()
    page_count = writer.page_count or engine.cursor.page_index + 1
    logger.info("Rendered %s BRD: %d page(s), %d bytes", fmt, page_count, len(data))
    return RenderResult(
        data=data,
        format=fmt,
        title=title,
        toc=toc,
        placements=engine.placements,
        diagrams_embedded=state.diagrams_embedded,
        tables_rendered=state.tables_rendered,
        page_count=page_count,
    )


def render(markdown, diagrams=None, config=None, fmt=DOCX, logo: Optional[bytes] = None):
    return render_document(markdown, diagrams, config, fmt, logo).data
