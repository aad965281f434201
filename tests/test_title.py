from brd_builder.config import TitleBounds
from brd_builder.title import clean_title, extract_title

FALLBACK = "Project Name"


def test_title_from_first_h1():
    assert extract_title("# Project Apollo\n\nBody", FALLBACK) == "Project Apollo"


def test_h1_brd_suffix_is_removed():
    markdown = "# Apollo Claims Business Requirements Document (BRD)\n"
    assert extract_title(markdown, FALLBACK) == "Apollo Claims"


def test_empty_h1_falls_back():
    assert extract_title("# \n\nNo summary here.", FALLBACK) == FALLBACK


def test_title_from_executive_summary():
    markdown = (
        "## Executive Summary\n"
        "The Claims Hub project replaces manual intake. It is funded for 2026.\n\n"
        "## 1 Governance\n"
    )
    assert extract_title(markdown, FALLBACK) == "Claims Hub"


def test_title_from_is_a_phrasing():
    markdown = "## Executive Summary\nNova Ledger is a reconciliation tool for finance teams.\n"
    assert extract_title(markdown, FALLBACK) == "Nova Ledger"


def test_h1_outside_bounds_is_ignored():
    markdown = "# Apollo\n"
    assert extract_title(markdown, FALLBACK, TitleBounds(10, 60)) == FALLBACK


def test_no_candidates_returns_fallback():
    assert extract_title("Just a paragraph.", FALLBACK) == FALLBACK


def test_clean_title():
    assert clean_title("**Project `X`**") == "Project X"
