from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch, mm

DOCX = "docx"
PDF = "pdf"

PAGE_NUMBER_POSITIONS = ("bottom-left", "bottom-center", "bottom-right")
TOC_MODES = ("static", "field")


@dataclass
class FontSizes:
    title: float = 32
    h1: float = 14
    h2: float = 11
    h3: float = 11
    h4: float = 11
    body: float = 9
    small: float = 9


@dataclass
class PageMargins:
    # points
    top: float = inch
    right: float = inch
    bottom: float = inch
    left: float = inch


@dataclass
class TableColors:
    header_bg: str = "0066CC"
    header_text: str = "FFFFFF"
    border: str = "D0D0D0"
    alt_row: str = "F9F9F9"


@dataclass
class TitleBounds:
    min: int = 3
    max: int = 100


@dataclass
class RenderConfig:
    primary_color: str = "0066CC"
    heading_color: str = "4C94D8"
    text_color: str = "333333"
    rule_color: str = "CCCCCC"
    body_font: str = "Helvetica"
    heading_font: str = "Helvetica"
    font_sizes: FontSizes = field(default_factory=FontSizes)
    page_margins: PageMargins = field(default_factory=PageMargins)
    page_size: tuple = A4
    table: TableColors = field(default_factory=TableColors)
    page_number_position: str = "bottom-center"
    page_number_size: float = 10
    page_number_start: int = 2
    toc_max_entries: int = 15
    toc_mode: str = "static"
    title_bounds: TitleBounds = field(default_factory=TitleBounds)
    default_title: str = "BRD AI Agent Builder"
    subtitle: str = "Business Requirements Document (BRD)"
    disclosure_label: str = "Control Disclosure"
    version_label: str = "[Version 0.1]"
    header_size: float = 11
    title_size: float = 24
    subtitle_size: float = 18
    logo_size: float = 205
    diagram_width: float = 160 * mm
    diagram_height: float = 100 * mm
    force_section_breaks: bool = False

    def __post_init__(self):
        if self.page_number_position not in PAGE_NUMBER_POSITIONS:
            raise ValueError(f"Unknown page number position: {self.page_number_position}")
        if self.toc_mode not in TOC_MODES:
            raise ValueError(f"Unknown TOC mode: {self.toc_mode}")
        if self.title_bounds.min > self.title_bounds.max:
            raise ValueError("title_bounds.min must not exceed title_bounds.max")

    @property
    def page_width(self):
        return self.page_size[0]

    @property
    def page_height(self):
        return self.page_size[1]

    @property
    def content_width(self):
        return self.page_width - self.page_margins.left - self.page_margins.right

    @classmethod
    def from_dict(cls, options, base=None):
        """Build a config from a (possibly camelCase) options mapping.

        Unknown keys are rejected so typos do not silently fall back to
        defaults.
        """
        return _merge(base if base is not None else cls(), options or {})


def docx_profile(**overrides):
    config = RenderConfig(
        body_font="Century Gothic",
        heading_font="Century Gothic",
        font_sizes=FontSizes(title=20, h1=14, h2=12, h3=11, h4=11, body=10, small=9),
        title_bounds=TitleBounds(5, 60),
        default_title="Project Name",
        diagram_width=450,
        diagram_height=300,
        force_section_breaks=True,
    )
    return replace(config, **overrides) if overrides else config


def pdf_profile(**overrides):
    config = RenderConfig()
    return replace(config, **overrides) if overrides else config


def profile_for(fmt):
    if fmt == DOCX:
        return docx_profile()
    if fmt == PDF:
        return pdf_profile()
    raise ValueError(f"Unsupported output format: {fmt}")


def hex_color(value):
    return value.lstrip("#").upper()


_ALIASES = {
    "primaryColor": "primary_color",
    "headingColor": "heading_color",
    "textColor": "text_color",
    "bodyFont": "body_font",
    "headingFont": "heading_font",
    "fontSizes": "font_sizes",
    "pageMargins": "page_margins",
    "headerBg": "header_bg",
    "headerText": "header_text",
    "altRow": "alt_row",
    "pageNumberPosition": "page_number_position",
    "pageNumberStart": "page_number_start",
    "tocMaxEntries": "toc_max_entries",
    "tocMode": "toc_mode",
    "titleBounds": "title_bounds",
    "defaultTitle": "default_title",
    "diagramWidth": "diagram_width",
    "diagramHeight": "diagram_height",
    "forceSectionBreaks": "force_section_breaks",
}


def _merge(target, options: dict):
    known = {f.name for f in fields(target)}
    changes = {}
    for key, value in options.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown config option: {key}")
        current = getattr(target, name)
        if is_dataclass(current) and isinstance(value, dict):
            value = _merge(current, value)
        changes[name] = value
    return replace(target, **changes)


def resolve_config(config: Optional[object], fmt):
    if config is None:
        return profile_for(fmt)
    if isinstance(config, RenderConfig):
        return config
    return RenderConfig.from_dict(config, base=profile_for(fmt))
