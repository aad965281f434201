import logging
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as pdfcanvas
from reportlab.platypus import Paragraph
from reportlab.platypus import Table as PdfTable
from reportlab.platypus import TableStyle

from .config import hex_color
from .errors import RecoverableAssetError
from .inline import InlineRun, runs_text, tokenize
from .layout import (
    BULLET_INDENT,
    HEADING_LINE_FACTOR,
    HEADING_SPACING,
    RULE_BEFORE,
    TABLE_CELL_PADDING,
    TITLE_RULE_GAP,
    BlockMetrics,
    font_face,
    line_height,
    wrap_runs,
)

logger = logging.getLogger(__name__)

HEADER_TOP = 20 * mm
HEADER_LINE = 5 * mm
LOGO_GAP_BEFORE = 144
LOGO_GAP_AFTER = 36
NO_LOGO_OFFSET = 50 * mm
TITLE_GAP_AFTER = 12
TOC_HEADING_GAP = 15 * mm
TOC_LINE = 7 * mm
TOC_BOTTOM_RESERVE = 40 * mm
FOOTER_OFFSET = 10 * mm
FOOTER_GRAY = colors.Color(100 / 255, 100 / 255, 100 / 255)


def _hex(value):
    return colors.HexColor("#" + hex_color(value))


def inline_markup(text):
    """Inline runs as reportlab paragraph markup."""
    parts = []
    for run in tokenize(text):
        chunk = escape(run.text)
        if run.italic:
            chunk = f"<i>{chunk}</i>"
        if run.bold:
            chunk = f"<b>{chunk}</b>"
        parts.append(chunk)
    return "".join(parts)


class PdfWriter:
    """Draws BRD blocks onto a reportlab canvas at positions chosen by the layout engine."""

    def __init__(self, config):
        self.config = config
        self.metrics = BlockMetrics(config)
        self.buffer = BytesIO()
        self.canvas = pdfcanvas.Canvas(self.buffer, pagesize=config.page_size)
        self.page_number = 1
        self._anchor_pages = {}
        self._toc_forms = {}

    @property
    def page_count(self):
        return self.page_number

    def _pdf_y(self, y):
        return self.config.page_height - y

    def _set_font(self, family, size, bold=False, italic=False, color=None):
        self.canvas.setFont(font_face(family, bold, italic), size)
        self.canvas.setFillColor(_hex(color or self.config.text_color))

    def _draw_aligned(self, text, y, alignment, size, family, bold=False):
        face = font_face(family, bold)
        if alignment == "right":
            self.canvas.drawRightString(self.config.page_width - self.config.page_margins.right, self._pdf_y(y), text)
        elif alignment == "center":
            self.canvas.drawCentredString(self.config.page_width / 2, self._pdf_y(y), text)
        else:
            self.canvas.drawString(self.config.page_margins.left, self._pdf_y(y), text)
        return stringWidth(text, face, size)

    def _draw_lines(self, lines, x, y, size, family, color=None, align="left"):
        leading = line_height(size)
        for number, line in enumerate(lines):
            baseline = self._pdf_y(y + number * leading + size)
            if align == "center":
                width = sum(stringWidth(run.text, font_face(family, run.bold, run.italic), size) for run in line)
                cursor_x = (self.config.page_width - width) / 2
            else:
                cursor_x = x
            for run in line:
                self._set_font(family, size, run.bold, run.italic, color)
                self.canvas.drawString(cursor_x, baseline, run.text)
                cursor_x += stringWidth(run.text, font_face(family, run.bold, run.italic), size)

    def _draw_footer(self):
        config = self.config
        if self.page_number < config.page_number_start:
            return
        self._set_font(config.body_font, config.page_number_size)
        self.canvas.setFillColor(FOOTER_GRAY)
        label = str(self.page_number)
        position = config.page_number_position
        if position == "bottom-left":
            self.canvas.drawString(config.page_margins.left, FOOTER_OFFSET, label)
        elif position == "bottom-right":
            self.canvas.drawRightString(config.page_width - config.page_margins.right, FOOTER_OFFSET, label)
        else:
            self.canvas.drawCentredString(config.page_width / 2, FOOTER_OFFSET, label)

    def start_cover_page(self, title, logo=None):
        config = self.config
        self.canvas.setTitle(title)
        self.canvas.setSubject(config.subtitle)

        self._set_font(config.body_font, config.header_size)
        self._draw_aligned(config.disclosure_label, HEADER_TOP, "right", config.header_size, config.body_font)
        self._draw_aligned(config.version_label, HEADER_TOP + HEADER_LINE, "right", config.header_size, config.body_font)

        y = config.page_margins.top + NO_LOGO_OFFSET
        if logo:
            logo_y = HEADER_TOP + LOGO_GAP_BEFORE
            try:
                self.canvas.drawImage(
                    ImageReader(BytesIO(logo)),
                    (config.page_width - config.logo_size) / 2,
                    self._pdf_y(logo_y + config.logo_size),
                    config.logo_size,
                    config.logo_size,
                    preserveAspectRatio=True,
                    anchor="c",
                    mask="auto",
                )
                y = logo_y + config.logo_size + LOGO_GAP_AFTER
            except Exception as e:
                logger.warning("Failed to add logo to cover page: %s", e)

        size = config.title_size
        title_runs = [InlineRun(title, bold=True)]
        title_lines = wrap_runs(title_runs, config.content_width, config.heading_font, size) if title else []
        lines = [[InlineRun(run.text, bold=True) for run in line] for line in title_lines]
        self._draw_lines(lines, 0, y, size, config.heading_font, config.primary_color, align="center")
        y += len(lines) * line_height(size) + TITLE_GAP_AFTER

        self._set_font(config.body_font, config.subtitle_size, color="333333")
        self._draw_aligned(config.subtitle, y + config.subtitle_size, "center", config.subtitle_size, config.body_font)

    def add_toc(self, entries, y):
        config = self.config
        self._set_font(config.heading_font, config.font_sizes.h1, bold=True, color=config.primary_color)
        self.canvas.drawString(config.page_margins.left, self._pdf_y(y + config.font_sizes.h1), "Table of Contents")
        y += TOC_HEADING_GAP

        size = config.font_sizes.h4
        right = config.page_width - config.page_margins.right - 10 * mm
        for entry in entries:
            if y > config.page_height - TOC_BOTTOM_RESERVE:
                break
            baseline = self._pdf_y(y + size)
            label = f"{entry.number}. {entry.title}"
            self._set_font(config.body_font, size, color="333333")
            self.canvas.drawString(config.page_margins.left + 5 * mm, baseline, label)

            form = f"tocpage{len(self._toc_forms)}"
            self._toc_forms[form] = entry.anchor
            self.canvas.saveState()
            self.canvas.translate(right, baseline)
            self.canvas.doForm(form)
            self.canvas.restoreState()

            self.canvas.linkRect(
                "",
                entry.anchor,
                (config.page_margins.left, baseline - 2, right, baseline + size),
                relative=0,
            )
            y += TOC_LINE

    def new_page(self, forced=False):
        self._draw_footer()
        self.canvas.showPage()
        self.page_number += 1

    def begin_body(self):
        self.new_page(forced=True)

    def add_heading(self, level, text, y, anchor=None):
        config = self.config
        before, _ = HEADING_SPACING[level]
        size = self.metrics.heading_size(level)
        color = {1: config.primary_color, 2: config.primary_color, 3: config.heading_color}.get(level, config.text_color)
        lines = self.metrics.heading_lines(level, text)
        top = y + before

        leading = size * HEADING_LINE_FACTOR
        for number, line in enumerate(lines):
            baseline = self._pdf_y(top + number * leading + size)
            self._set_font(config.heading_font, size, bold=True, color=color)
            content = runs_text(line)
            if level == 1:
                self.canvas.drawCentredString(config.page_width / 2, baseline, content)
            else:
                self.canvas.drawString(config.page_margins.left, baseline, content)

        if level == 1:
            rule_y = self._pdf_y(top + len(lines) * leading + TITLE_RULE_GAP)
            self.canvas.setStrokeColor(_hex(config.primary_color))
            self.canvas.setLineWidth(0.5 * mm)
            self.canvas.line(config.page_margins.left + 20 * mm, rule_y, config.page_width - config.page_margins.right - 20 * mm, rule_y)

        if anchor:
            self._anchor_pages[anchor] = self.page_number
            self.canvas.bookmarkPage(anchor, fit="XYZ", top=self._pdf_y(y))
            self.canvas.addOutlineEntry(text, anchor, level=0)

    def add_paragraph(self, runs, y):
        lines = self.metrics.text_lines(runs)
        self._draw_lines(lines, self.config.page_margins.left, y, self.config.font_sizes.body, self.config.body_font)

    def add_bullet(self, runs, y):
        config = self.config
        size = config.font_sizes.body
        self.canvas.setFillColor(_hex(config.text_color))
        self.canvas.circle(config.page_margins.left + 2 * mm, self._pdf_y(y + size * 0.7), 0.7 * mm, stroke=0, fill=1)
        lines = self.metrics.text_lines(runs, BULLET_INDENT)
        self._draw_lines(lines, config.page_margins.left + BULLET_INDENT, y, size, config.body_font)

    def add_rule(self, y):
        config = self.config
        rule_y = self._pdf_y(y + RULE_BEFORE)
        self.canvas.setStrokeColor(_hex(config.rule_color))
        self.canvas.setLineWidth(0.3 * mm)
        self.canvas.line(config.page_margins.left, rule_y, config.page_width - config.page_margins.right, rule_y)

    def add_image(self, data, y):
        config = self.config
        try:
            self.canvas.drawImage(
                ImageReader(BytesIO(data)),
                (config.page_width - config.diagram_width) / 2,
                self._pdf_y(y + config.diagram_height),
                config.diagram_width,
                config.diagram_height,
                preserveAspectRatio=True,
                anchor="c",
                mask="auto",
            )
        except Exception as e:
            raise RecoverableAssetError(f"Failed to embed diagram: {e}") from e

    def _build_table(self, table):
        config = self.config
        size = config.font_sizes.body
        body_style = ParagraphStyle(
            "BrdCell",
            fontName=font_face(config.body_font),
            fontSize=size,
            leading=line_height(size),
            textColor=_hex(config.text_color),
        )
        header_style = ParagraphStyle(
            "BrdHeaderCell",
            parent=body_style,
            fontName=font_face(config.body_font, bold=True),
            fontSize=config.font_sizes.small,
            leading=line_height(config.font_sizes.small),
            textColor=_hex(config.table.header_text),
            alignment=TA_CENTER,
        )

        rows = table.normalized_rows()
        data = [[Paragraph(escape(cell), header_style) for cell in rows[0]]]
        data += [[Paragraph(inline_markup(cell), body_style) for cell in row] for row in rows[1:]]

        columns = table.column_count
        flowable = PdfTable(data, colWidths=[config.content_width / columns] * columns, repeatRows=1)
        flowable.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, _hex(config.table.border)),
                    ("BACKGROUND", (0, 0), (-1, 0), _hex(config.table.header_bg)),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [_hex(config.table.alt_row), colors.white]),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("TOPPADDING", (0, 0), (-1, -1), TABLE_CELL_PADDING),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), TABLE_CELL_PADDING),
                    ("LEFTPADDING", (0, 0), (-1, -1), TABLE_CELL_PADDING),
                    ("RIGHTPADDING", (0, 0), (-1, -1), TABLE_CELL_PADDING),
                ]
            )
        )
        return flowable

    def measure_table(self, table):
        _, height = self._build_table(table).wrap(self.config.content_width, self.config.page_height)
        return height

    def add_table(self, table, y, available, at_page_top):
        """Draw as much of ``table`` as fits; returns (height used, remainder or None)."""
        flowable = table if isinstance(table, PdfTable) else self._build_table(table)
        width = self.config.content_width
        left = self.config.page_margins.left

        _, height = flowable.wrapOn(self.canvas, width, available)
        if height <= available:
            flowable.drawOn(self.canvas, left, self._pdf_y(y) - height)
            return height, None

        parts = flowable.split(width, available)
        if len(parts) < 2:
            if at_page_top:
                flowable.drawOn(self.canvas, left, self._pdf_y(y) - height)
                return height, None
            return 0.0, flowable

        head, rest = parts[0], parts[1]
        _, head_height = head.wrapOn(self.canvas, width, available)
        head.drawOn(self.canvas, left, self._pdf_y(y) - head_height)
        return head_height, rest

    def _define_toc_forms(self):
        config = self.config
        for form, anchor in self._toc_forms.items():
            page = self._anchor_pages.get(anchor)
            self.canvas.beginForm(form, lowerx=-60, lowery=-4, upperx=4, uppery=config.font_sizes.h4 + 4)
            self._set_font(config.body_font, config.font_sizes.h4, color="333333")
            self.canvas.drawRightString(0, 0, str(page) if page else "")
            self.canvas.endForm()

    def finalize(self):
        self._draw_footer()
        self.canvas.showPage()
        self._define_toc_forms()
        self.canvas.save()
        return self.buffer.getvalue()
