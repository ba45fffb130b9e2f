# bloodwise/schemas/profile.py
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    age: int = Field(..., ge=0, le=130)
    gender: Literal["male", "female", "other"] = Field(..., description="male|female|other")
    weight: Optional[float] = Field(default=None, gt=0, description="kg")
    height: Optional[float] = Field(default=None, gt=0, description="cm")
    existing_conditions: Optional[str] = Field(default=None, alias="existingConditions")
    medications: Optional[str] = None
