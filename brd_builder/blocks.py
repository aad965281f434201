import logging
import re
from dataclasses import dataclass
from enum import Enum

from .inline import clean_text

logger = logging.getLogger(__name__)

PLACEHOLDER = "[DIAGRAM_PLACEHOLDER]"


class BlockKind(Enum):
    HEADING1 = "heading1"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    HEADING4 = "heading4"
    BULLET_ITEM = "bullet"
    TABLE_ROW = "table_row"
    HORIZONTAL_RULE = "rule"
    DIAGRAM_PLACEHOLDER = "diagram"
    PARAGRAPH = "paragraph"
    BLANK = "blank"

    @property
    def heading_level(self):
        return _HEADING_LEVELS.get(self)


_HEADING_LEVELS = {
    BlockKind.HEADING1: 1,
    BlockKind.HEADING2: 2,
    BlockKind.HEADING3: 3,
    BlockKind.HEADING4: 4,
}
HEADING_KINDS = {level: kind for kind, level in _HEADING_LEVELS.items()}


@dataclass(frozen=True)
class Block:
    kind: BlockKind
    raw_text: str
    text: str = ""
    cells: tuple = ()


HEADING_RE = re.compile(r"^(#{1,4})(?:[ \t]+(.*))?$")
DIRECTIVE_RES = (
    re.compile(r"^style\s+\S+\s+fill:#[0-9a-fA-F]{3,8}", re.IGNORECASE),
    re.compile(r"^[A-Z]\s+fill:"),
    re.compile(r"^[A-Z]$"),
    re.compile(r"^```"),
)
DASH_CELL_RE = re.compile(r"^:?-+:?$")
BULLET_PREFIXES = ("- ", "* ", "• ")


def _is_directive(line):
    return any(pattern.match(line) for pattern in DIRECTIVE_RES)


def _heading(line):
    match = HEADING_RE.match(line)
    level = len(match.group(1))
    return Block(HEADING_KINDS[level], line, clean_text(match.group(2) or ""))


def _table_row(line):
    cells = []
    for cell in line.split("|"):
        cell = clean_text(cell)
        if cell and not DASH_CELL_RE.match(cell):
            cells.append(cell)
    return Block(BlockKind.TABLE_ROW, line, cells=tuple(cells))


def _bullet(line):
    return Block(BlockKind.BULLET_ITEM, line, line[2:].strip())


# Ordered (predicate, builder) table; the first matching predicate wins.
CLASSIFIERS = (
    (lambda line: not line, lambda line: Block(BlockKind.BLANK, line)),
    (_is_directive, lambda line: None),
    (lambda line: line == PLACEHOLDER, lambda line: Block(BlockKind.DIAGRAM_PLACEHOLDER, line)),
    (lambda line: HEADING_RE.match(line) is not None, _heading),
    (lambda line: len(line) > 1 and line.startswith("|") and line.endswith("|"), _table_row),
    (lambda line: line == "---", lambda line: Block(BlockKind.HORIZONTAL_RULE, line)),
    (lambda line: line.startswith(BULLET_PREFIXES), _bullet),
    (lambda line: True, lambda line: Block(BlockKind.PARAGRAPH, line, line)),
)


def classify_line(line):
    """Classify one line; returns None for lines that must not be rendered."""
    line = line.strip()
    for matches, build in CLASSIFIERS:
        if matches(line):
            return build(line)
    return None


def iter_blocks(markdown):
    for line in markdown.split("\n"):
        block = classify_line(line)
        if block is None:
            logger.debug("Skipping diagram directive line: %r", line)
            continue
        yield block


_SANITIZERS = (
    (re.compile(r"```mermaid[\s\S]*?```"), "\n" + PLACEHOLDER + "\n"),
    (re.compile(r"^\s*style\s+\S+\s+fill:#[0-9a-fA-F]{3,8}.*$", re.IGNORECASE | re.MULTILINE), ""),
    (re.compile(r"^\s*```.*$", re.MULTILINE), ""),
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"!\[[^\]]*\]\([^)]*\)"), ""),
    (re.compile(r"Page\s+\d+\s+of\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"\[Version \d+\.\d+\]", re.IGNORECASE), ""),
    (re.compile(r"\[Control Disclosure\]", re.IGNORECASE), ""),
    (re.compile(r"\*\*\*\*"), ""),
)
_ENTITIES = (("&nbsp;", " "), ("&lt;", "<"), ("&gt;", ">"), ("&amp;", "&"))


def sanitize_markdown(text):
    """Normalise generator output before classification.

    Mermaid fences become diagram placeholders, other code fences and
    leaked diagram styling are dropped, HTML breaks/entities are decoded
    and page/version artefacts are removed.
    """
    text = text.replace("\r\n", "\n")
    for pattern, replacement in _SANITIZERS:
        text = pattern.sub(replacement, text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text.strip()
