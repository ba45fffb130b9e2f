# bloodwise/routes/report_routes.py
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from bloodwise import settings
from bloodwise.schemas.lab import AnalysisResult, CurrentSession, HistoryItem, MedicalInsights, ParseTextIn
from bloodwise.services.enrichment import EnrichmentAdapter
from bloodwise.services.report_pipeline import (
    process_text,
    process_upload,
    run_saved_analysis,
    saved_insights,
)
from bloodwise.services.storage import AnalysisStorage, get_storage

logger = logging.getLogger("bloodwise")

router = APIRouter(prefix="/api", tags=["reports"])


def get_enrichment() -> EnrichmentAdapter:
    return EnrichmentAdapter()


def _keep_session(storage: AnalysisStorage, session: CurrentSession) -> CurrentSession:
    if not storage.save_current_analysis(session):
        raise HTTPException(status_code=500, detail="Extracted data could not be saved")
    return session


@router.post("/reports/upload", response_model=CurrentSession, status_code=status.HTTP_201_CREATED)
async def upload_report(
    file: UploadFile = File(...),
    storage: AnalysisStorage = Depends(get_storage),
):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    size_mb = len(data) / (1024 * 1024)
    if size_mb > settings.MAX_FILE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds the {settings.MAX_FILE_MB}MB limit",
        )
    try:
        session = process_upload(data, file.filename or "upload", file.content_type or "")
    except ValueError as exc:
        logger.info({"function": "upload", "filename": file.filename, "error": str(exc)})
        raise HTTPException(status_code=400, detail=f"Upload failed: {exc}")
    return _keep_session(storage, session)


@router.post("/reports/parse", response_model=CurrentSession, status_code=status.HTTP_201_CREATED)
def parse_report(payload: ParseTextIn, storage: AnalysisStorage = Depends(get_storage)):
    return _keep_session(storage, process_text(payload.text))


@router.get("/reports/current", response_model=CurrentSession)
def current_report(storage: AnalysisStorage = Depends(get_storage)):
    session = storage.get_current_analysis()
    if session is None:
        raise HTTPException(status_code=404, detail="No report uploaded yet")
    return session


@router.post("/analysis", response_model=AnalysisResult)
async def analyze(
    storage: AnalysisStorage = Depends(get_storage),
    adapter: EnrichmentAdapter = Depends(get_enrichment),
):
    return await run_saved_analysis(storage, adapter)


@router.post("/analysis/insights", response_model=MedicalInsights)
async def insights(
    storage: AnalysisStorage = Depends(get_storage),
    adapter: EnrichmentAdapter = Depends(get_enrichment),
):
    return await saved_insights(storage, adapter)


@router.get("/history", response_model=List[HistoryItem])
def list_history(storage: AnalysisStorage = Depends(get_storage)):
    return storage.get_recent_analyses()


@router.get("/history/{analysis_id}", response_model=HistoryItem)
def get_history_item(analysis_id: str, storage: AnalysisStorage = Depends(get_storage)):
    item = storage.get_analysis_by_id(analysis_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return item


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
def clear_data(storage: AnalysisStorage = Depends(get_storage)):
    if not storage.clear_all_data():
        raise HTTPException(status_code=500, detail="Stored data could not be cleared")
    return None
