import re

from bloodwise.schemas.lab import NOT_PROVIDED
from bloodwise.services.lab_parser import (
    LINE_GRAMMARS,
    LineGrammar,
    normalize_tokens,
    parse_lab_text,
    section_header,
    tokenize_report,
)


def test_colon_form_with_ref_label():
    tokens = tokenize_report("Hemoglobin: 14.2 g/dL (Ref: 13.5-17.5)")
    assert len(tokens) == 1
    tok = tokens[0]
    assert (tok.name, tok.value, tok.unit, tok.raw_range) == ("Hemoglobin", "14.2", "g/dL", "13.5-17.5")
    assert tok.section == "General"
    assert tok.grammar == "colon"


def test_colon_form_without_range_or_unit():
    tok = tokenize_report("FooMarker: 5 units")[0]
    assert (tok.name, tok.value, tok.unit, tok.raw_range) == ("FooMarker", "5", "units", None)
    tok = tokenize_report("Ferritin: 88")[0]
    assert tok.unit == ""


def test_colon_form_keeps_parenthesised_name():
    tok = tokenize_report("Hemoglobin (Hb): 12.1 g/dL (Reference Range: 12.0-15.5)")[0]
    assert tok.name == "Hemoglobin (Hb)"
    assert tok.raw_range == "12.0-15.5"


def test_spaced_form():
    tok = tokenize_report("Total Cholesterol 210 mg/dL (Ref: <200)")[0]
    assert (tok.name, tok.value, tok.unit, tok.raw_range) == ("Total Cholesterol", "210", "mg/dL", "<200")
    assert tok.grammar == "spaced"
    tok = tokenize_report("Vitamin B12 410 pg/mL (200-900)")[0]
    assert tok.name == "Vitamin B12"
    assert tok.raw_range == "200-900"


def test_range_colon_does_not_hijack_spaced_line():
    tok = tokenize_report("Glucose 130 mg/dL (Ref: 70-99)")[0]
    assert tok.name == "Glucose"
    assert tok.grammar == "spaced"


def test_flag_in_parentheses_is_not_a_range():
    tok = tokenize_report("Glucose: 130 mg/dL (H)")[0]
    assert tok.raw_range is None


def test_unmatched_lines_are_dropped():
    text = "Patient: John Doe\nPage 1 of 2\n\nreviewed by lab staff\nHDL: 55 mg/dL (Ref: >40)"
    tokens = tokenize_report(text)
    assert [t.name for t in tokens] == ["HDL"]


def test_section_headers_tag_following_lines():
    text = (
        "Glucose: 95 mg/dL\n"
        "COMPLETE BLOOD COUNT\n"
        "Hemoglobin: 14.2 g/dL (Ref: 13.5-17.5)\n"
        "LIPID PANEL:\n"
        "LDL: 110 mg/dL (Ref: <130)\n"
    )
    sections = {t.name: t.section for t in tokenize_report(text)}
    assert sections == {"Glucose": "General", "Hemoglobin": "COMPLETE BLOOD COUNT", "LDL": "LIPID PANEL"}


def test_section_header_predicate():
    assert section_header("METABOLIC PANEL") == "METABOLIC PANEL"
    assert section_header("  LIPIDS:  ") == "LIPIDS"
    assert section_header("AB") is None
    assert section_header("Complete Blood Count") is None
    assert section_header("WBC 6.8") is None


def test_normalizer_defaults_and_values(sample_report):
    results = parse_lab_text(sample_report)
    assert list(results) == ["Hemoglobin", "WBC", "Platelets", "Glucose", "Cholesterol", "HDL", "LDL"]
    hgb = results["Hemoglobin"]
    assert hgb.value == 14.2
    assert hgb.ref_range == "13.5-17.5"
    assert results["Glucose"].section == "METABOLIC PANEL"
    assert parse_lab_text("FooMarker: 5 units")["FooMarker"].ref_range == NOT_PROVIDED


def test_duplicate_names_last_write_wins_first_position_kept():
    text = (
        "Glucose: 95 mg/dL (Ref: 70-99)\n"
        "HDL: 55 mg/dL\n"
        "REPEAT\n"
        "Glucose: 101 mg/dL\n"
    )
    results = normalize_tokens(tokenize_report(text))
    assert list(results) == ["Glucose", "HDL"]
    glucose = results["Glucose"]
    assert glucose.value == 101.0
    assert glucose.ref_range == NOT_PROVIDED
    assert glucose.section == "REPEAT"


def test_grammar_list_is_extensible():
    pipe_form = LineGrammar(
        "pipe",
        re.compile(r"^(?P<name>[^|]+?)\s*\|\s*(?P<value>\d+(?:\.\d+)?)\s*\|\s*(?P<unit>\S+)\s*\|\s*(?P<range>\S+)$"),
    )
    results = parse_lab_text("TSH | 2.1 | mIU/L | 0.4-4.0", grammars=(*LINE_GRAMMARS, pipe_form))
    assert results["TSH"].value == 2.1
    assert results["TSH"].ref_range == "0.4-4.0"
    assert parse_lab_text("TSH | 2.1 | mIU/L | 0.4-4.0") == {}


def test_thousands_separator_in_value():
    tok = tokenize_report("WBC: 7,500 /uL (Ref: 4,000-11,000)")[0]
    assert tok.value == "7,500"
    assert tok.unit == "/uL"
    assert tok.raw_range == "4,000-11,000"
    result = parse_lab_text("WBC: 7,500 /uL (Ref: 4,000-11,000)")["WBC"]
    assert result.value == 7500.0


def test_thousands_separator_in_spaced_form():
    result = parse_lab_text("Platelets 250,000 /uL (150,000-450,000)")["Platelets"]
    assert result.value == 250000.0
    assert result.ref_range == "150,000-450,000"
