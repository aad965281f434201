import logging
from io import BytesIO

from docx import Document
from docx.enum.section import WD_SECTION
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_TAB_ALIGNMENT, WD_TAB_LEADER
from docx.oxml import OxmlElement, parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Pt, RGBColor

from .config import hex_color
from .errors import RecoverableAssetError
from .inline import tokenize
from .layout import BlockMetrics

logger = logging.getLogger(__name__)

W_NS = nsdecls("w")
ALIGNMENTS = {
    "bottom-left": WD_ALIGN_PARAGRAPH.LEFT,
    "bottom-center": WD_ALIGN_PARAGRAPH.CENTER,
    "bottom-right": WD_ALIGN_PARAGRAPH.RIGHT,
}


def _rgb(value):
    return RGBColor.from_string(hex_color(value))


def add_field(run, instruction, placeholder=""):
    """Append a complex field (PAGE, PAGEREF, TOC ...) to ``run``."""
    run._r.append(parse_xml(f'<w:fldChar {W_NS} w:fldCharType="begin"/>'))
    instr = parse_xml(f'<w:instrText {W_NS} xml:space="preserve"> {instruction} </w:instrText>')
    run._r.append(instr)
    run._r.append(parse_xml(f'<w:fldChar {W_NS} w:fldCharType="separate"/>'))
    text = OxmlElement("w:t")
    text.text = placeholder
    run._r.append(text)
    run._r.append(parse_xml(f'<w:fldChar {W_NS} w:fldCharType="end"/>'))


def add_hyperlink(paragraph, text, bookmark):
    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("w:anchor"), bookmark)

    new_run = OxmlElement("w:r")
    rPr = OxmlElement("w:rPr")

    color = OxmlElement("w:color")
    color.set(qn("w:val"), "0563C1")
    rPr.append(color)

    underline = OxmlElement("w:u")
    underline.set(qn("w:val"), "single")
    rPr.append(underline)

    new_run.append(rPr)

    text_element = OxmlElement("w:t")
    text_element.set(qn("xml:space"), "preserve")
    text_element.text = text
    new_run.append(text_element)

    hyperlink.append(new_run)
    paragraph._p.append(hyperlink)
    return hyperlink


def add_bookmark(paragraph, bookmark_name, bookmark_id):
    bookmark_start = OxmlElement("w:bookmarkStart")
    bookmark_start.set(qn("w:id"), str(bookmark_id))
    bookmark_start.set(qn("w:name"), bookmark_name)

    bookmark_end = OxmlElement("w:bookmarkEnd")
    bookmark_end.set(qn("w:id"), str(bookmark_id))

    # bookmarkStart must follow w:pPr
    paragraph._p.insert(0 if paragraph._p.pPr is None else 1, bookmark_start)
    paragraph._p.append(bookmark_end)


def shade_cell(cell, fill):
    cell._tc.get_or_add_tcPr().append(parse_xml(f'<w:shd {W_NS} w:val="clear" w:color="auto" w:fill="{fill}"/>'))


class DocxWriter:
    """Builds the BRD as a Word document with python-docx.

    Word paginates on its own, so only forced breaks are written; overflow
    breaks decided by the layout engine are estimates.
    """

    def __init__(self, config):
        self.config = config
        self.metrics = BlockMetrics(config)
        self.doc = Document()
        self._break_pending = False
        self._bookmark_id = 0
        self._setup_page()
        self._setup_styles()

    @property
    def page_count(self):
        return None

    def _setup_page(self):
        config = self.config
        section = self.doc.sections[0]
        section.page_width = Pt(config.page_width)
        section.page_height = Pt(config.page_height)
        section.top_margin = Pt(config.page_margins.top)
        section.right_margin = Pt(config.page_margins.right)
        section.bottom_margin = Pt(config.page_margins.bottom)
        section.left_margin = Pt(config.page_margins.left)

        if config.page_number_start <= 1:
            self._add_page_number(section)
        elif config.page_number_start == 2:
            section.different_first_page_header_footer = True
            self._add_page_number(section)

        update = OxmlElement("w:updateFields")
        update.set(qn("w:val"), "true")
        self.doc.settings.element.append(update)

    def _setup_styles(self):
        config = self.config
        styles = self.doc.styles
        sizes = config.font_sizes

        normal = styles["Normal"]
        normal.font.name = config.body_font
        normal.font.size = Pt(sizes.body)
        normal.font.color.rgb = _rgb(config.text_color)

        heading_specs = {
            1: (sizes.title, config.primary_color),
            2: (sizes.h1, config.primary_color),
            3: (sizes.h2, config.heading_color),
            4: (sizes.h3, config.text_color),
        }
        for level, (size, color) in heading_specs.items():
            style = styles[f"Heading {level}"]
            style.font.name = config.heading_font
            style.font.size = Pt(size)
            style.font.bold = True
            style.font.italic = False
            style.font.color.rgb = _rgb(color)

        try:
            toc_style = styles["TOC 1"]
        except KeyError:
            toc_style = styles.add_style("TOC 1", WD_STYLE_TYPE.PARAGRAPH)
        toc_style.font.name = config.body_font
        toc_style.font.size = Pt(sizes.h4)
        toc_style.paragraph_format.left_indent = Pt(0)
        toc_style.paragraph_format.space_after = Pt(0)

    def _add_page_number(self, section):
        footer = section.footer
        footer.is_linked_to_previous = False
        paragraph = footer.paragraphs[0] if footer.paragraphs else footer.add_paragraph()
        paragraph.alignment = ALIGNMENTS[self.config.page_number_position]
        run = paragraph.add_run()
        run.font.name = self.config.body_font
        run.font.size = Pt(self.config.page_number_size)
        add_field(run, "PAGE", "1")

    def _take_break(self, paragraph):
        if self._break_pending:
            paragraph.paragraph_format.page_break_before = True
            self._break_pending = False

    def _add_runs(self, paragraph, text_or_runs, size=None):
        runs = tokenize(text_or_runs) if isinstance(text_or_runs, str) else text_or_runs
        for inline in runs:
            run = paragraph.add_run(inline.text)
            run.bold = inline.bold
            run.italic = inline.italic
            if size:
                run.font.size = Pt(size)
        return paragraph

    def _centered_line(self, text, size, bold=False, color=None, space_after=0):
        paragraph = self.doc.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.paragraph_format.space_after = Pt(space_after)
        run = paragraph.add_run(text)
        run.bold = bold
        run.font.size = Pt(size)
        run.font.name = self.config.heading_font
        if color:
            run.font.color.rgb = _rgb(color)
        return paragraph

    def start_cover_page(self, title, logo=None):
        config = self.config
        core = self.doc.core_properties
        core.title = title
        core.subject = config.subtitle

        for label, after in ((config.disclosure_label, 5), (config.version_label, 70)):
            paragraph = self.doc.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            paragraph.paragraph_format.space_after = Pt(after)
            run = paragraph.add_run(label)
            run.font.size = Pt(config.header_size)

        logo_added = False
        if logo:
            paragraph = self.doc.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            paragraph.paragraph_format.space_after = Pt(60)
            try:
                paragraph.add_run().add_picture(BytesIO(logo), width=Pt(config.logo_size))
                logo_added = True
            except Exception as e:
                logger.warning("Failed to add logo to cover page: %s", e)
                paragraph._p.getparent().remove(paragraph._p)
        if not logo_added:
            spacer = self.doc.add_paragraph()
            spacer.paragraph_format.space_before = Pt(config.logo_size / 2)

        self._centered_line(title, config.title_size, bold=True, color=config.primary_color, space_after=20)
        self._centered_line(config.subtitle, config.subtitle_size, bold=True, space_after=10)

    def add_toc(self, entries, y=None):
        config = self.config
        heading = self.doc.add_paragraph()
        self._take_break(heading)
        heading.paragraph_format.space_after = Pt(20)
        run = heading.add_run("Table of Contents")
        run.bold = True
        run.font.size = Pt(config.font_sizes.h1)
        run.font.color.rgb = _rgb(config.primary_color)

        if config.toc_mode == "field":
            add_field(self.doc.add_paragraph().add_run(), 'TOC \\o "1-3" \\h \\z \\u', "Right-click to update the table of contents.")
            return

        for entry in entries:
            toc_paragraph = self.doc.add_paragraph(style="TOC 1")
            add_hyperlink(toc_paragraph, f"{entry.number}. {entry.title}", entry.anchor)
            toc_paragraph.paragraph_format.tab_stops.add_tab_stop(
                Pt(config.content_width), WD_TAB_ALIGNMENT.RIGHT, WD_TAB_LEADER.DOTS
            )
            toc_paragraph.add_run("\t")
            add_field(toc_paragraph.add_run(), f"PAGEREF {entry.anchor} \\h")

    def new_page(self, forced=False):
        if forced:
            self._break_pending = True

    def begin_body(self):
        if self.config.page_number_start > 2:
            section = self.doc.add_section(WD_SECTION.NEW_PAGE)
            self._add_page_number(section)
            self._break_pending = False
        else:
            self._break_pending = True

    def add_heading(self, level, text, y=None, anchor=None):
        heading = self.doc.add_heading(text, level=level)
        self._take_break(heading)
        if anchor:
            self._bookmark_id += 1
            add_bookmark(heading, anchor, self._bookmark_id)
        return heading

    def add_paragraph(self, runs, y=None):
        paragraph = self.doc.add_paragraph()
        self._take_break(paragraph)
        return self._add_runs(paragraph, runs)

    def add_bullet(self, runs, y=None):
        paragraph = self.doc.add_paragraph(style="List Bullet")
        self._take_break(paragraph)
        return self._add_runs(paragraph, runs)

    def add_rule(self, y=None):
        paragraph = self.doc.add_paragraph()
        self._take_break(paragraph)
        border = parse_xml(
            f'<w:pBdr {W_NS}><w:bottom w:val="single" w:sz="6" w:space="1" w:color="{self.config.rule_color}"/></w:pBdr>'
        )
        paragraph._p.get_or_add_pPr().append(border)
        return paragraph

    def add_image(self, data, y=None):
        paragraph = self.doc.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        try:
            paragraph.add_run().add_picture(
                BytesIO(data), width=Pt(self.config.diagram_width), height=Pt(self.config.diagram_height)
            )
        except Exception as e:
            paragraph._p.getparent().remove(paragraph._p)
            raise RecoverableAssetError(f"Failed to embed diagram: {e}") from e
        self._take_break(paragraph)
        return paragraph

    def measure_table(self, table):
        return self.metrics.table_estimate(table)

    def add_table(self, table, y=None, available=None, at_page_top=True):
        config = self.config
        if self._break_pending:
            self.doc.add_page_break()
            self._break_pending = False

        rows = table.normalized_rows()
        columns = table.column_count
        doc_table = self.doc.add_table(rows=len(rows), cols=columns)
        doc_table.style = "Table Grid"
        doc_table.alignment = WD_TABLE_ALIGNMENT.CENTER
        doc_table.autofit = False

        width = Pt(config.content_width / columns)
        for column in doc_table.columns:
            for cell in column.cells:
                cell.width = width

        header = doc_table.rows[0]
        header._tr.get_or_add_trPr().append(parse_xml(f'<w:tblHeader {W_NS} w:val="true"/>'))
        for cell, text in zip(header.cells, rows[0]):
            shade_cell(cell, config.table.header_bg)
            paragraph = cell.paragraphs[0]
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = paragraph.add_run(text)
            run.bold = True
            run.font.size = Pt(config.font_sizes.small)
            run.font.color.rgb = _rgb(config.table.header_text)

        for index, (row, values) in enumerate(zip(doc_table.rows[1:], rows[1:])):
            fill = config.table.alt_row if index % 2 == 0 else "FFFFFF"
            for cell, text in zip(row.cells, values):
                shade_cell(cell, fill)
                self._add_runs(cell.paragraphs[0], text, size=config.font_sizes.body)

        spacer = self.doc.add_paragraph()
        spacer.paragraph_format.space_after = Pt(6)
        return self.measure_table(table), None

    def finalize(self):
        buffer = BytesIO()
        self.doc.save(buffer)
        return buffer.getvalue()
