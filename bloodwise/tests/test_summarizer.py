from bloodwise.schemas.lab import LabResult
from bloodwise.services.classifier import perform_basic_analysis
from bloodwise.services.lab_parser import parse_lab_text
from bloodwise.services.recommendations import (
    CARDIOVASCULAR_BLOCK,
    GLYCEMIC_BLOCK,
    WELLNESS_BLOCK,
    build_recommendations,
)
from bloodwise.services.summarizer import ALL_NORMAL_TEXT, summarize_results


def analyze(text, profile=None):
    return perform_basic_analysis(parse_lab_text(text), profile)


def test_all_normal_summary(sample_report, male_profile):
    summary = summarize_results(analyze(sample_report, male_profile))
    assert summary.text == ALL_NORMAL_TEXT
    assert summary.abnormal_count == 0
    assert summary.abnormal_params == []


def test_abnormal_count_and_order():
    analysis = analyze(
        "LDL: 150 mg/dL (Ref: <130)\n"
        "HDL: 55 mg/dL (Ref: >40)\n"
        "FooMarker: 5 units\n"
        "Cholesterol: 210 mg/dL (Ref: <200)\n"
    )
    summary = summarize_results(analysis)
    # Unknown and Borderline both count as outside the normal range
    assert summary.abnormal_params == ["LDL", "FooMarker", "Cholesterol"]
    assert summary.abnormal_count == 3
    assert summary.text.startswith("We found 3 result(s) outside the normal range. ")
    assert summary.text.endswith("Please consult with your healthcare provider about these findings.")


def test_glucose_clause_before_hemoglobin_clause(female_profile):
    analysis = analyze(
        "Hemoglobin: 10.1 g/dL (Ref: 12.0-15.5)\nGlucose: 160 mg/dL (Ref: 70-99)",
        female_profile,
    )
    text = summarize_results(analysis).text
    glucose_at = text.index("Your glucose level is significantly elevated.")
    hemoglobin_at = text.index("Your hemoglobin is low, which may indicate anemia.")
    assert glucose_at < hemoglobin_at


def test_no_glucose_clause_for_mild_elevation():
    text = summarize_results(analyze("Glucose: 110 mg/dL (Ref: 70-99)")).text
    assert "We found 1 result(s)" in text
    assert "significantly elevated" not in text


def test_recommendations_wellness_when_nothing_fires(sample_report, male_profile):
    assert build_recommendations(analyze(sample_report, male_profile)) == WELLNESS_BLOCK


def test_recommendations_for_unrelated_abnormal_still_wellness():
    assert build_recommendations(analyze("WBC: 15 thousand/uL (Ref: 4.5-11.0)")) == WELLNESS_BLOCK


def test_recommendations_glycemic_block():
    recs = build_recommendations(analyze("Glucose: 130 mg/dL (Ref: 70-99)"))
    assert recs == GLYCEMIC_BLOCK
    assert len(recs) == 3


def test_recommendations_blocks_concatenate_in_order():
    analysis = perform_basic_analysis({
        "Glucose": LabResult(name="Glucose", value=140),
        "LDL": LabResult(name="LDL", value=170, ref_range="<130"),
    })
    recs = build_recommendations(analysis)
    assert recs == CARDIOVASCULAR_BLOCK + GLYCEMIC_BLOCK
    assert len(recs) == 6
