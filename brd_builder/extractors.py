import json
import logging
import re
import zipfile
from io import BytesIO
from xml.etree import ElementTree

import extract_msg
import pandas as pd
import pdfplumber
from docx import Document
from openpyxl import load_workbook

from .errors import ExtractionError

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 30000
TRUNCATION_NOTE = "\n\n[Content truncated due to length. Showing first {:,} characters.]"
SEPARATOR = "=" * 50

PPTX_SLIDE_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
DRAWINGML_TEXT = "{http://schemas.openxmlformats.org/drawingml/2006/main}t"

MSG_HEADER_RE = re.compile(r"^(From|To|Cc|Subject|Sent|Date):.*?\n", re.MULTILINE)
MSG_QUOTED_RE = re.compile(r"(?:_{10,}|-{10,})[\s\S]*$")


def extract_content_from_text(data):
    return data.decode("utf-8", errors="replace")


def extract_content_from_json(data):
    text = extract_content_from_text(data)
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except ValueError:
        return text


def extract_content_from_docx(data):
    doc = Document(BytesIO(data))
    content = []

    for paragraph in doc.paragraphs:
        if paragraph.text.strip():
            content.append(paragraph.text.strip())

    for table in doc.tables:
        table_content = []
        for row in table.rows:
            row_text = [cell.text.strip() for cell in row.cells]
            table_content.append(" | ".join(row_text))
        if table_content:
            content.append("TABLE:")
            content.append("\n".join(table_content))

    return "\n".join(content)


def extract_content_from_pdf(data):
    content = []
    with pdfplumber.open(BytesIO(data)) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                content.append(text)

            for table in page.extract_tables():
                if not table:
                    continue
                table_text = [" | ".join(str(cell) if cell else "" for cell in row) for row in table]
                content.append("TABLE:")
                content.append("\n".join(table_text))

    return "\n".join(content)


def extract_content_from_pptx(data):
    try:
        archive = zipfile.ZipFile(BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Not a PowerPoint file: {e}") from e

    slides = []
    with archive:
        for name in archive.namelist():
            match = PPTX_SLIDE_RE.match(name)
            if match:
                slides.append((int(match.group(1)), name))

        content = []
        for number, name in sorted(slides):
            root = ElementTree.fromstring(archive.read(name))
            parts = [node.text for node in root.iter(DRAWINGML_TEXT) if node.text]
            text = re.sub(r"\s+", " ", " ".join(parts)).strip()
            if text:
                content.append(f"--- Slide {number} ---\n{text}")

    logger.debug("Extracted %d slide(s) with text", len(content))
    return "\n".join(content)


def _clean_cell_value(value):
    if value is None:
        return "-"
    text = str(value).strip()
    if text.lower() == "nan":
        return "-"
    return text


def extract_content_from_excel(data, max_rows_per_sheet=70, visible_only=True):
    """Each sheet as a pipe table; hidden sheets are skipped unless asked for."""
    workbook = load_workbook(BytesIO(data))
    try:
        sheet_names = [
            sheet.title
            for sheet in workbook.worksheets
            if not visible_only or sheet.sheet_state == "visible"
        ]
    finally:
        workbook.close()

    content = []
    for sheet_name in sheet_names:
        df = pd.read_excel(BytesIO(data), sheet_name=sheet_name, header=None, engine="openpyxl")
        df = df.dropna(how="all").dropna(axis=1, how="all")
        if df.empty:
            continue

        rows = df.head(max_rows_per_sheet).values.tolist()
        content.append(f"SHEET: {sheet_name}")
        content.extend("| " + " | ".join(_clean_cell_value(cell) for cell in row) + " |" for row in rows)
        if len(df) > max_rows_per_sheet:
            content.append(f"... {len(df) - max_rows_per_sheet} more rows")

    return "\n".join(content)


def extract_content_from_msg(data):
    msg = extract_msg.Message(BytesIO(data))
    try:
        body_content = msg.body or ""
    finally:
        msg.close()

    cleaned_body = MSG_HEADER_RE.sub("", body_content)
    cleaned_body = MSG_QUOTED_RE.sub("", cleaned_body)
    return cleaned_body.strip()


EXTRACTORS = {
    "txt": extract_content_from_text,
    "md": extract_content_from_text,
    "csv": extract_content_from_text,
    "json": extract_content_from_json,
    "pdf": extract_content_from_pdf,
    "docx": extract_content_from_docx,
    "pptx": extract_content_from_pptx,
    "xlsx": extract_content_from_excel,
    "msg": extract_content_from_msg,
}

SUPPORTED_EXTENSIONS = tuple(EXTRACTORS)


def extract(name, data):
    """Plain text of an uploaded requirements document, chosen by file extension."""
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    extractor = EXTRACTORS.get(extension)
    if extractor is None:
        raise ExtractionError(f"Unsupported file type: {extension or name}")

    try:
        content = extractor(data)
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Error processing {name}: {e}") from e

    if not content.strip():
        raise ExtractionError(f"No content extracted from: {name}")
    logger.info("Extracted %d characters from %s", len(content), name)
    return content.strip()


def combine_documents(documents):
    """Join (name, text) pairs with file markers, as sent to the model."""
    parts = []
    for name, text in documents:
        parts.append(f"=== FILE: {name} ===")
        parts.append(text.strip())
        parts.append(SEPARATOR)
    return "\n\n".join(parts)


def truncate_for_prompt(text, limit=MAX_PROMPT_CHARS):
    if len(text) <= limit:
        return text
    logger.warning("Requirements truncated from %d to %d characters", len(text), limit)
    return text[:limit] + TRUNCATION_NOTE.format(limit)
