"""Overall summary of a classified report."""
from __future__ import annotations

from typing import List, Mapping

from bloodwise.schemas.lab import AnalysisSummary, ClassifiedResult, Status
from bloodwise.services.classifier import RULES

ALL_NORMAL_TEXT = "All tested parameters are within normal ranges. Your results look good!"
GLUCOSE_CLAUSE = "Your glucose level is significantly elevated. "
HEMOGLOBIN_CLAUSE = "Your hemoglobin is low, which may indicate anemia. "
CONSULT_TEXT = "Please consult with your healthcare provider about these findings."


def abnormal_params(analysis: Mapping[str, ClassifiedResult]) -> List[str]:
    """Names whose status is anything but Normal, in report order."""
    return [name for name, item in analysis.items() if item.status != Status.NORMAL]


def summary_text(analysis: Mapping[str, ClassifiedResult]) -> str:
    abnormal = abnormal_params(analysis)
    if not abnormal:
        return ALL_NORMAL_TEXT

    text = f"We found {len(abnormal)} result(s) outside the normal range. "
    glucose = analysis.get("Glucose")
    if (
        glucose is not None
        and glucose.status == Status.HIGH
        and glucose.value > RULES["glucose"]["diabetes_above"]
    ):
        text += GLUCOSE_CLAUSE
    hemoglobin = analysis.get("Hemoglobin")
    if hemoglobin is not None and hemoglobin.status == Status.LOW:
        text += HEMOGLOBIN_CLAUSE
    return text + CONSULT_TEXT


def summarize_results(analysis: Mapping[str, ClassifiedResult]) -> AnalysisSummary:
    abnormal = abnormal_params(analysis)
    return AnalysisSummary(
        text=summary_text(analysis),
        abnormal_count=len(abnormal),
        abnormal_params=abnormal,
    )


__all__ = ["abnormal_params", "summary_text", "summarize_results"]
