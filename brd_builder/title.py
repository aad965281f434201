import logging
import re

from .config import TitleBounds

logger = logging.getLogger(__name__)

H1_RE = re.compile(r"^#[ \t]+(.*)$", re.MULTILINE)
EXEC_SUMMARY_RE = re.compile(r"^##\s*Executive Summary\s*$\n+([\s\S]*?)(?=^##\s|\Z)", re.IGNORECASE | re.MULTILINE)
SENTENCE_SPLIT_RE = re.compile(r"[.!?]")

TITLE_PATTERNS = (
    re.compile(r"(?:[Tt]he|[Tt]his)\s+([A-Z][A-Za-z &-]{4,49}?)\s+(?:[Pp]roject|[Ss]ystem|[Pp]latform|[Aa]pplication)\b"),
    re.compile(r"([A-Z][A-Za-z &-]{4,49}?)\s+is\s+(?:a|an|the)\b"),
)

SUMMARY_WINDOW = 500
MAX_SENTENCES = 3


def clean_title(text):
    text = re.sub(r"[#*_`]", "", text).strip()
    text = re.sub(r"Business Requirements Document.*$", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\(BRD\)", "", text, flags=re.IGNORECASE)
    return text.strip(" -:").strip()


def _within(text, bounds):
    return bounds.min <= len(text) <= bounds.max


def extract_title(markdown, fallback, bounds=None):
    """Mine a short project title out of the BRD markdown.

    Uses the first ``# `` heading when its cleaned text fits ``bounds``,
    otherwise looks for "The X project" / "X is a" phrasing in the first
    sentences of the Executive Summary. Falls back to ``fallback``.
    """
    bounds = bounds or TitleBounds()

    match = H1_RE.search(markdown)
    if match:
        title = clean_title(match.group(1))
        if _within(title, bounds):
            logger.debug("Project title taken from H1: %s", title)
            return title

    summary = EXEC_SUMMARY_RE.search(markdown)
    if summary:
        window = " ".join(summary.group(1)[:SUMMARY_WINDOW].split())
        for sentence in SENTENCE_SPLIT_RE.split(window)[:MAX_SENTENCES]:
            for pattern in TITLE_PATTERNS:
                found = pattern.search(sentence)
                if not found:
                    continue
                title = clean_title(found.group(1))
                if _within(title, bounds):
                    logger.debug("Project title taken from Executive Summary: %s", title)
                    return title

    return fallback
