from typing import List, Mapping

from bloodwise.schemas.lab import ClassifiedResult
from bloodwise.services.summarizer import abnormal_params

CARDIOVASCULAR_BLOCK: List[str] = [
    "Consider a heart-healthy diet rich in fruits, vegetables, whole grains, and lean proteins.",
    "Aim for regular physical activity of at least 150 minutes per week.",
    "Limit saturated and trans fats in your diet.",
]

GLYCEMIC_BLOCK: List[str] = [
    "Maintain a balanced diet low in refined sugars and carbohydrates.",
    "Regular physical activity helps improve insulin sensitivity.",
    "Monitor your carbohydrate intake and consider eating smaller, more frequent meals.",
]

WELLNESS_BLOCK: List[str] = [
    "Continue with a balanced diet and regular exercise.",
    "Schedule regular check-ups with your healthcare provider.",
    "Stay hydrated and get adequate sleep for overall health.",
]


def build_recommendations(analysis: Mapping[str, ClassifiedResult]) -> List[str]:
    """Rule-based lifestyle recommendations.

    - Cholesterol or LDL abnormal -> cardiovascular block
    - Glucose abnormal            -> glycemic block
    - nothing fired               -> general wellness block
    Blocks are concatenated as-is, so a report can yield six sentences.
    """
    abnormal = set(abnormal_params(analysis))
    recommendations: List[str] = []
    if "Cholesterol" in abnormal or "LDL" in abnormal:
        recommendations += CARDIOVASCULAR_BLOCK
    if "Glucose" in abnormal:
        recommendations += GLYCEMIC_BLOCK
    if not recommendations:
        recommendations += WELLNESS_BLOCK
    return recommendations


__all__ = ["build_recommendations", "CARDIOVASCULAR_BLOCK", "GLYCEMIC_BLOCK", "WELLNESS_BLOCK"]
