"""Status classification for parsed lab results.

A few analytes carry dedicated thresholds (see config/clinical_rules.yaml);
every other analyte is judged against the range printed on the report.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple

import yaml

from bloodwise.schemas.lab import ClassifiedResult, LabResult, Status
from bloodwise.schemas.profile import UserProfile
from bloodwise.services.reference_ranges import compare_to_range, parse_range

CONFIG_PATH = Path(__file__).parent.parent / "config" / "clinical_rules.yaml"


def load_rules():
    with open(CONFIG_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


RULES = load_rules()

Rule = Callable[[LabResult, Optional[UserProfile]], Tuple[Status, str]]

HEMOGLOBIN_TEXT = {
    Status.NORMAL: "Your hemoglobin level is within normal range.",
    Status.LOW: (
        "Low hemoglobin may indicate anemia. Common causes include iron deficiency, "
        "blood loss, or chronic diseases."
    ),
    Status.HIGH: "Elevated hemoglobin may be due to dehydration, lung disease, or polycythemia.",
}

GLUCOSE_TEXT = {
    Status.NORMAL: "Your glucose level is within normal range.",
    Status.LOW: (
        "Low blood glucose (hypoglycemia) may cause fatigue, dizziness, and confusion. "
        "It can be due to medications, insulin excess, or liver disorders."
    ),
    "diabetes": (
        "Glucose above {threshold:g} mg/dL may indicate diabetes. "
        "Consider follow-up testing and consultation with your doctor."
    ),
    "prediabetes": (
        "Slightly elevated glucose levels may indicate prediabetes. "
        "Lifestyle modifications are recommended."
    ),
}

CHOLESTEROL_TEXT = {
    Status.NORMAL: "Your total cholesterol is within the desirable range.",
    Status.BORDERLINE: (
        "Your cholesterol is borderline high. Consider dietary changes and increased physical activity."
    ),
    Status.HIGH: (
        "High cholesterol increases risk for heart disease. "
        "Consult your healthcare provider about management strategies."
    ),
}

GENERIC_TEXT = {
    Status.NORMAL: "Your {name} level is within normal range.",
    Status.LOW: "Your {name} level is below the reference range.",
    Status.HIGH: "Your {name} level is above the reference range.",
    Status.UNKNOWN: (
        "No usable reference range was found for {name}, so it could not be classified. "
        "Consult with your healthcare provider about this result."
    ),
}


def _hemoglobin(result: LabResult, profile: Optional[UserProfile]) -> Tuple[Status, str]:
    rule = RULES["hemoglobin"]
    cut = rule["male"] if profile is not None and profile.gender == "male" else rule["default"]
    if result.value < cut["low"]:
        status = Status.LOW
    elif result.value > cut["high"]:
        status = Status.HIGH
    else:
        status = Status.NORMAL
    return status, HEMOGLOBIN_TEXT[status]


def _glucose(result: LabResult, profile: Optional[UserProfile]) -> Tuple[Status, str]:
    rule = RULES["glucose"]
    if result.value < rule["low"]:
        return Status.LOW, GLUCOSE_TEXT[Status.LOW]
    if result.value > rule["high"]:
        if result.value > rule["diabetes_above"]:
            return Status.HIGH, GLUCOSE_TEXT["diabetes"].format(threshold=rule["diabetes_above"])
        return Status.HIGH, GLUCOSE_TEXT["prediabetes"]
    return Status.NORMAL, GLUCOSE_TEXT[Status.NORMAL]


def _cholesterol(result: LabResult, profile: Optional[UserProfile]) -> Tuple[Status, str]:
    rule = RULES["cholesterol"]
    if result.value < rule["desirable_below"]:
        status = Status.NORMAL
    elif result.value < rule["high_from"]:
        status = Status.BORDERLINE
    else:
        status = Status.HIGH
    return status, CHOLESTEROL_TEXT[status]


SPECIALIZED_RULES: Dict[str, Rule] = {
    "Hemoglobin": _hemoglobin,
    "Glucose": _glucose,
    "Cholesterol": _cholesterol,
}


def generic_status(result: LabResult) -> Tuple[Status, str]:
    status = compare_to_range(result.value, parse_range(result.ref_range)) or Status.UNKNOWN
    return status, GENERIC_TEXT[status].format(name=result.name)


def classify_result(result: LabResult, profile: Optional[UserProfile] = None) -> ClassifiedResult:
    rule = SPECIALIZED_RULES.get(result.name)
    if rule is not None:
        status, interpretation = rule(result, profile)
    else:
        status, interpretation = generic_status(result)
    return ClassifiedResult(
        **result.model_dump(),
        status=status,
        interpretation=interpretation,
    )


def perform_basic_analysis(
    results: Mapping[str, LabResult],
    profile: Optional[UserProfile] = None,
) -> Dict[str, ClassifiedResult]:
    return {name: classify_result(result, profile) for name, result in results.items()}


__all__ = [
    "RULES",
    "SPECIALIZED_RULES",
    "classify_result",
    "generic_status",
    "perform_basic_analysis",
]
