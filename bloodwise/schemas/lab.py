# bloodwise/schemas/lab.py
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

NOT_PROVIDED = "Not provided"
DEFAULT_SECTION = "General"

EnrichmentSource = Literal["model", "fallback", "skipped"]


class Status(str, Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    BORDERLINE = "Borderline"
    UNKNOWN = "Unknown"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class LabResult(_Frozen):
    """One measured analyte as read from the report."""

    name: str
    value: float = Field(..., allow_inf_nan=False)
    unit: str = ""
    ref_range: str = Field(default=NOT_PROVIDED, alias="refRange")
    section: str = DEFAULT_SECTION


class ClassifiedResult(LabResult):
    status: Status
    interpretation: str


class AnalysisSummary(_Frozen):
    text: str
    abnormal_count: int = Field(..., alias="abnormalCount")
    abnormal_params: List[str] = Field(default_factory=list, alias="abnormalParams")


class AnalysisResult(_Frozen):
    """Final object handed to presentation."""

    analysis: Dict[str, ClassifiedResult]
    summary: AnalysisSummary
    recommendations: List[str]
    source: EnrichmentSource = "skipped"


class MedicalInsights(_Frozen):
    insights: List[str]
    follow_up_questions: List[str] = Field(..., alias="followUpQuestions")
    source: EnrichmentSource = "skipped"


class CurrentSession(_Frozen):
    """Extracted text and parsed values of the report being worked on."""

    extracted_text: str = Field(..., alias="extractedText")
    parsed_results: Dict[str, LabResult] = Field(default_factory=dict, alias="parsedResults")
    source: str = "text"
    filename: Optional[str] = None


class HistoryItem(_Frozen):
    id: str
    date: str
    title: str = "Blood Test Results"
    summary: str


class ParseTextIn(BaseModel):
    text: str = Field(..., min_length=1, max_length=20000)
