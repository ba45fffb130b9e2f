# bloodwise/routers/profile.py
from fastapi import APIRouter, Depends, HTTPException

from bloodwise.schemas.profile import UserProfile
from bloodwise.services.storage import AnalysisStorage, get_storage

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("/", response_model=UserProfile)
def get_profile(storage: AnalysisStorage = Depends(get_storage)):
    profile = storage.get_user_profile()
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/", response_model=UserProfile)
def upsert_profile(payload: UserProfile, storage: AnalysisStorage = Depends(get_storage)):
    if not storage.save_user_profile(payload):
        raise HTTPException(status_code=500, detail="Profile could not be saved")
    return payload
