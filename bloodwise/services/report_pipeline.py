"""End-to-end blood test report processing helpers."""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from bloodwise.schemas.lab import AnalysisResult, CurrentSession, LabResult, MedicalInsights
from bloodwise.schemas.profile import UserProfile
from bloodwise.services.classifier import perform_basic_analysis
from bloodwise.services.enrichment import EnrichmentAdapter
from bloodwise.services.lab_parser import parse_lab_text
from bloodwise.services.ocr import extract_text_from_bytes
from bloodwise.services.recommendations import build_recommendations
from bloodwise.services.storage import AnalysisStorage
from bloodwise.services.summarizer import summarize_results
from bloodwise.utils.exceptions import MissingExtractedDataError, MissingProfileError

logger = logging.getLogger("bloodwise")


def process_text(text: str, source: str = "text", filename: Optional[str] = None) -> CurrentSession:
    parsed = parse_lab_text(text)
    logger.info({
        "function": "parse_report",
        "source": source,
        "lines": len(text.splitlines()),
        "analyte_count": len(parsed),
    })
    return CurrentSession(
        extracted_text=text,
        parsed_results=parsed,
        source=source,
        filename=filename,
    )


def process_upload(data: bytes, filename: str, content_type: str) -> CurrentSession:
    text, source = extract_text_from_bytes(data, filename, content_type)
    return process_text(text, source=source, filename=filename)


def build_basic_analysis(
    results: Mapping[str, LabResult],
    profile: Optional[UserProfile] = None,
) -> AnalysisResult:
    """Deterministic analysis: classification, summary and recommendations."""
    analysis = perform_basic_analysis(results, profile)
    return AnalysisResult(
        analysis=analysis,
        summary=summarize_results(analysis),
        recommendations=build_recommendations(analysis),
        source="skipped",
    )


async def analyze_blood_results(
    results: Mapping[str, LabResult],
    profile: UserProfile,
    adapter: Optional[EnrichmentAdapter] = None,
) -> AnalysisResult:
    basic = build_basic_analysis(results, profile)
    if adapter is None:
        return basic
    return await adapter.analyze(results, profile, basic)


def _require_inputs(storage: AnalysisStorage) -> tuple:
    session = storage.get_current_analysis()
    if session is None:
        raise MissingExtractedDataError()
    profile = storage.get_user_profile()
    if profile is None:
        raise MissingProfileError()
    return session, profile


async def run_saved_analysis(
    storage: AnalysisStorage,
    adapter: Optional[EnrichmentAdapter] = None,
    title: Optional[str] = None,
) -> AnalysisResult:
    """Analyze the stored session for the stored profile and record it in history."""
    session, profile = _require_inputs(storage)
    result = await analyze_blood_results(session.parsed_results, profile, adapter)
    storage.save_analysis_to_history(result, title=title or session.filename)
    logger.info({
        "function": "analysis",
        "analyte_count": len(result.analysis),
        "abnormal_count": result.summary.abnormal_count,
        "source": result.source,
    })
    return result


async def saved_insights(
    storage: AnalysisStorage,
    adapter: EnrichmentAdapter,
) -> MedicalInsights:
    """Follow-up insights for the stored session, issued after the basic analysis."""
    session, profile = _require_inputs(storage)
    basic = build_basic_analysis(session.parsed_results, profile)
    return await adapter.insights(session.parsed_results, profile, basic.analysis)


__all__ = [
    "process_text",
    "process_upload",
    "build_basic_analysis",
    "analyze_blood_results",
    "run_saved_analysis",
    "saved_insights",
]
