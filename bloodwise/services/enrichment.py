"""Optional LLM enrichment of the deterministic analysis.

The adapter never raises: transport errors, HTTP errors and unusable replies
all degrade to the basic analysis (or to fixed default insights).
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from bloodwise import settings
from bloodwise.schemas.lab import (
    AnalysisResult,
    AnalysisSummary,
    ClassifiedResult,
    LabResult,
    MedicalInsights,
    Status,
)
from bloodwise.schemas.profile import UserProfile
from bloodwise.services import gemini
from bloodwise.services.summarizer import abnormal_params, summary_text

logger = logging.getLogger("bloodwise")

Generator = Callable[..., Awaitable[str]]

SYSTEM_PROMPT = (
    "You are a medical analysis assistant specialized in blood test interpretation. "
    "Provide factual medical information based on the provided data. Always note that "
    "your analysis is not a substitute for professional medical advice."
)

DEFAULT_INSIGHTS = [
    "Consider discussing these results with your healthcare provider for a complete interpretation.",
    "Regular monitoring of your blood values is recommended for tracking your health over time.",
]
DEFAULT_FOLLOW_UP_QUESTIONS = [
    "When was your last complete physical examination?",
    "Have you noticed any changes in your health recently?",
]

_FENCED_JSON = re.compile(r"```json\s*\n(.*?)```", re.DOTALL)
_BARE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_STATUS_BY_NAME = {s.value.lower(): s for s in Status}


def _results_block(results: Mapping[str, LabResult], analysis: Optional[Mapping[str, ClassifiedResult]] = None) -> str:
    lines = []
    for name, result in results.items():
        line = f"{name}: {result.value:g} {result.unit} (Reference Range: {result.ref_range})"
        if analysis is not None:
            item = analysis.get(name)
            line += f" - Status: {item.status.value if item else Status.UNKNOWN.value}"
        lines.append(line)
    return "\n".join(lines)


def build_analysis_prompt(results: Mapping[str, LabResult], profile: UserProfile) -> str:
    conditions = (
        f"Existing conditions: {profile.existing_conditions}"
        if profile.existing_conditions
        else "No known conditions"
    )
    medications = (
        f"Current medications: {profile.medications}" if profile.medications else "No current medications"
    )
    return (
        f"Please analyze the following blood test results for a {profile.age}-year-old "
        f"{profile.gender} patient:\n\n"
        f"MEDICAL HISTORY:\n{conditions}\n{medications}\n\n"
        f"BLOOD TEST RESULTS:\n{_results_block(results)}\n\n"
        "Please provide the following in JSON format:\n"
        '1. An "analysis" object keyed by test name, each with "status" '
        "(Low, Normal, High, Borderline or Unknown) and \"interpretation\"\n"
        '2. A "summary" paragraph of the overall results\n'
        '3. A "recommendations" array of personalized recommendations\n\n'
        'Format your response as valid JSON with these keys: "analysis", "summary", "recommendations".'
    )


def build_insights_prompt(
    results: Mapping[str, LabResult],
    profile: UserProfile,
    analysis: Mapping[str, ClassifiedResult],
) -> str:
    return (
        "Based on the following blood test results and patient profile, provide detailed "
        "medical insights and follow-up questions.\n\n"
        "PATIENT PROFILE:\n"
        f"Age: {profile.age}\n"
        f"Gender: {profile.gender}\n"
        f"Existing Conditions: {profile.existing_conditions or 'None reported'}\n"
        f"Current Medications: {profile.medications or 'None reported'}\n\n"
        f"BLOOD TEST RESULTS:\n{_results_block(results, analysis)}\n\n"
        "Please provide:\n"
        "1. 4-6 detailed medical insights that consider the patient's profile and test results\n"
        "2. 3-5 relevant follow-up questions for the patient or their healthcare provider\n\n"
        'Format your response as JSON with "insights" and "followUpQuestions" arrays.'
    )


def extract_json(reply: str) -> Any:
    """Pull a JSON document out of a model reply (fenced, embedded or bare)."""
    match = _FENCED_JSON.search(reply or "") or _BARE_OBJECT.search(reply or "")
    if match:
        content = match.group(1) if match.groups() else match.group(0)
    else:
        content = reply
    return json.loads(content)


def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _clean_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _coerce_status(value: Any) -> Optional[Status]:
    if not isinstance(value, str):
        return None
    return _STATUS_BY_NAME.get(value.strip().lower())


def merge_enrichment(basic: AnalysisResult, payload: Any) -> AnalysisResult:
    """Overlay a model payload on the basic result, field by field.

    Only present, non-empty (and for status, valid) values win. Tests the
    model invents are ignored.
    """
    if not isinstance(payload, dict):
        raise ValueError("enrichment payload is not a JSON object")

    ai_analysis = payload.get("analysis")
    if not isinstance(ai_analysis, dict):
        ai_analysis = {}

    merged: Dict[str, ClassifiedResult] = {}
    for name, item in basic.analysis.items():
        ai_item = ai_analysis.get(name)
        update: Dict[str, Any] = {}
        if isinstance(ai_item, dict):
            interpretation = _clean_text(ai_item.get("interpretation"))
            if interpretation:
                update["interpretation"] = interpretation
            status = _coerce_status(ai_item.get("status"))
            if status is not None:
                update["status"] = status
        merged[name] = item.model_copy(update=update) if update else item

    abnormal = abnormal_params(merged)
    summary = AnalysisSummary(
        text=_clean_text(payload.get("summary")) or summary_text(merged),
        abnormal_count=len(abnormal),
        abnormal_params=abnormal,
    )
    recommendations = _clean_list(payload.get("recommendations")) or list(basic.recommendations)
    return AnalysisResult(
        analysis=merged,
        summary=summary,
        recommendations=recommendations,
        source="model",
    )


def default_insights(source: str = "fallback") -> MedicalInsights:
    return MedicalInsights(
        insights=list(DEFAULT_INSIGHTS),
        follow_up_questions=list(DEFAULT_FOLLOW_UP_QUESTIONS),
        source=source,
    )


class EnrichmentAdapter:
    """Best-effort bridge to a text-generation service.

    ``generate`` is an async callable taking a prompt plus ``system`` and
    ``temperature`` keywords and returning the reply text; it defaults to
    the Gemini client.
    """

    def __init__(self, generate: Optional[Generator] = None, enabled: Optional[bool] = None):
        self._generate = generate
        if enabled is None:
            enabled = generate is not None or (
                settings.AI_ENRICHMENT_ENABLED and bool(settings.GEMINI_API_KEY)
            )
        self.enabled = enabled

    async def _ask(self, prompt: str, temperature: float) -> str:
        generate = self._generate or gemini.generate_text
        return await generate(prompt, system=SYSTEM_PROMPT, temperature=temperature)

    async def analyze(
        self,
        results: Mapping[str, LabResult],
        profile: UserProfile,
        basic: AnalysisResult,
    ) -> AnalysisResult:
        if not self.enabled:
            return basic
        logger.info({"function": "enrichment", "stage": "analyze_start", "analyte_count": len(results)})
        try:
            reply = await self._ask(build_analysis_prompt(results, profile), temperature=0.3)
            enriched = merge_enrichment(basic, extract_json(reply))
        except Exception as exc:
            logger.warning({
                "function": "enrichment",
                "stage": "analyze_fallback",
                "error": type(exc).__name__,
                "detail": str(exc)[:200],
            })
            return basic.model_copy(update={"source": "fallback"})
        logger.info({"function": "enrichment", "stage": "analyze_done", "source": enriched.source})
        return enriched

    async def insights(
        self,
        results: Mapping[str, LabResult],
        profile: UserProfile,
        analysis: Mapping[str, ClassifiedResult],
    ) -> MedicalInsights:
        if not self.enabled:
            return default_insights(source="skipped")
        try:
            reply = await self._ask(build_insights_prompt(results, profile, analysis), temperature=0.4)
            payload = extract_json(reply)
            if not isinstance(payload, dict):
                raise ValueError("insights payload is not a JSON object")
        except Exception as exc:
            logger.warning({
                "function": "enrichment",
                "stage": "insights_fallback",
                "error": type(exc).__name__,
                "detail": str(exc)[:200],
            })
            return default_insights()
        return MedicalInsights(
            insights=_clean_list(payload.get("insights")) or list(DEFAULT_INSIGHTS),
            follow_up_questions=(
                _clean_list(payload.get("followUpQuestions")) or list(DEFAULT_FOLLOW_UP_QUESTIONS)
            ),
            source="model",
        )


__all__ = [
    "EnrichmentAdapter",
    "build_analysis_prompt",
    "build_insights_prompt",
    "default_insights",
    "extract_json",
    "merge_enrichment",
]
