import logging
import re
from dataclasses import dataclass, field
from typing import List

from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from .blocks import BlockKind
from .inline import InlineRun, tokenize

logger = logging.getLogger(__name__)

LINE_HEIGHT_FACTOR = 1.55
HEADING_LINE_FACTOR = 1.25

# (space before, space after) around each heading level, in points
HEADING_SPACING = {
    1: (0, 8 * mm),
    2: (4 * mm, 3 * mm),
    3: (3 * mm, 2.5 * mm),
    4: (2 * mm, 2 * mm),
}
TITLE_RULE_GAP = 2 * mm
TEXT_GAP = 2 * mm
BULLET_INDENT = 6 * mm
RULE_BEFORE = 3 * mm
RULE_AFTER = 5 * mm
DIAGRAM_GAP = 10 * mm
TABLE_GAP = 8 * mm
TABLE_MIN_SPACE = 50 * mm
TABLE_CELL_PADDING = 3

SECTION_KEYWORDS = (
    "business problem",
    "business requirements",
    "objectives",
    "scope",
    "assumptions",
    "stakeholders",
    "current state",
    "future state",
    "user story",
    "appendix",
)
SECTION_ID_RE = re.compile(r"^(?:us|a)\s?\d+", re.IGNORECASE)
NUMBERED_SECTION_RE = re.compile(r"^\d+\s")

_STANDARD_FACES = {
    "Helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "Times-Roman": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "Courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}


def font_face(family, bold=False, italic=False):
    """Standard PDF face for a family; unknown families measure as Helvetica."""
    faces = _STANDARD_FACES.get(family, _STANDARD_FACES["Helvetica"])
    return faces[int(bold) + 2 * int(italic)]


def line_height(size):
    return size * LINE_HEIGHT_FACTOR


def _split_word(word, run, width, face, size):
    pieces = []
    current = ""
    for char in word:
        if current and stringWidth(current + char, face, size) > width:
            pieces.append(InlineRun(current, run.bold, run.italic))
            current = ""
        current += char
    pieces.append(InlineRun(current, run.bold, run.italic))
    return pieces


def wrap_runs(runs, width, family, size):
    """Greedy word wrap of styled runs; returns a list of lines of runs."""
    lines = [[]]
    used = 0.0

    def trim(line):
        while line and not line[-1].text.strip():
            line.pop()

    for run in runs:
        face = font_face(family, run.bold, run.italic)
        for token in re.findall(r"\S+|\s+", run.text):
            token_width = stringWidth(token, face, size)
            if token.isspace():
                if lines[-1]:
                    lines[-1].append(InlineRun(" ", run.bold, run.italic))
                    used += stringWidth(" ", face, size)
                continue
            if lines[-1] and used + token_width > width:
                trim(lines[-1])
                lines.append([])
                used = 0.0
            if token_width > width:
                pieces = _split_word(token, run, width, face, size)
                for piece in pieces[:-1]:
                    lines[-1].append(piece)
                    lines.append([])
                token = pieces[-1].text
                token_width = stringWidth(token, face, size)
                used = 0.0
            lines[-1].append(InlineRun(token, run.bold, run.italic))
            used += token_width
    trim(lines[-1])
    return lines


def should_force_break(level, text):
    """Whether a heading starts a new page under section-break policy."""
    if level == 1:
        return True
    if level != 2:
        return False
    lowered = text.lower()
    if any(keyword in lowered for keyword in SECTION_KEYWORDS):
        return True
    return bool(SECTION_ID_RE.match(text) or NUMBERED_SECTION_RE.match(text))


class BlockMetrics:
    """Vertical space each block kind needs under a given config."""

    def __init__(self, config):
        self.config = config

    def heading_size(self, level):
        sizes = self.config.font_sizes
        return {1: sizes.title, 2: sizes.h1, 3: sizes.h2, 4: sizes.h3}[level]

    def heading_lines(self, level, text):
        size = self.heading_size(level)
        runs = [InlineRun(text, bold=True)]
        return wrap_runs(runs, self.config.content_width, self.config.heading_font, size)

    def heading(self, level, text):
        before, after = HEADING_SPACING[level]
        size = self.heading_size(level)
        lines = len(self.heading_lines(level, text))
        return before + lines * size * HEADING_LINE_FACTOR + after

    def text_lines(self, runs, indent=0.0):
        width = self.config.content_width - indent
        return wrap_runs(runs, width, self.config.body_font, self.config.font_sizes.body)

    def text_block(self, runs, indent=0.0):
        lines = len(self.text_lines(runs, indent))
        return lines * line_height(self.config.font_sizes.body) + TEXT_GAP

    def rule(self):
        return RULE_BEFORE + RULE_AFTER

    def diagram(self):
        return self.config.diagram_height + DIAGRAM_GAP

    def table_estimate(self, table):
        """Row-by-row estimate used where the writer cannot measure tables."""
        columns = max(table.column_count, 1)
        cell_width = self.config.content_width / columns - 2 * TABLE_CELL_PADDING
        size = self.config.font_sizes.body
        total = 0.0
        for row in table.normalized_rows():
            tallest = max(
                len(wrap_runs(tokenize(cell), cell_width, self.config.body_font, size)) for cell in row
            )
            total += tallest * line_height(size) + 2 * TABLE_CELL_PADDING
        return total


@dataclass
class LayoutCursor:
    page_index: int = 0
    y: float = 0.0
    page_has_content: bool = False


@dataclass
class Placement:
    kind: BlockKind
    page_index: int
    y_start: float
    y_end: float


@dataclass
class LayoutEngine:
    """Tracks the vertical cursor for one render pass.

    ``y`` is measured downwards from the top edge of the page. Page-break
    decisions are always taken before a block is drawn.
    """

    page_height: float
    top: float
    bottom: float
    cursor: LayoutCursor = field(default_factory=LayoutCursor)
    placements: List[Placement] = field(default_factory=list)

    @classmethod
    def for_config(cls, config):
        engine = cls(config.page_height, config.page_margins.top, config.page_margins.bottom)
        engine.cursor.y = engine.top
        return engine

    @property
    def limit(self):
        return self.page_height - self.bottom

    @property
    def available(self):
        return self.limit - self.cursor.y

    @property
    def at_page_top(self):
        return not self.cursor.page_has_content

    def new_page(self):
        self.cursor.page_index += 1
        self.cursor.y = self.top
        self.cursor.page_has_content = False
        logger.debug("Starting page %d", self.cursor.page_index + 1)

    def ensure_space(self, required):
        """Break to a new page when ``required`` does not fit; True if it broke."""
        if self.cursor.page_has_content and self.cursor.y + required > self.limit:
            self.new_page()
            return True
        return False

    def force_break(self):
        """Forced break; a page with nothing on it yet is reused."""
        if not self.cursor.page_has_content:
            return False
        self.new_page()
        return True

    def advance(self, height, kind=None):
        start = self.cursor.y
        self.cursor.y += height
        self.cursor.page_has_content = True
        if kind is not None:
            self.placements.append(Placement(kind, self.cursor.page_index, start, self.cursor.y))
        return start
