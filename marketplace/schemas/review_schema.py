from pydantic import BaseModel, ConfigDict, Field, StrictInt
from typing import Optional
from datetime import datetime


class ReviewCreate(BaseModel):
    booking_id: str = Field(..., min_length=1)
    # Strict so JSON true, "4" and 4.0 are refused; range is checked by the engine
    rating: StrictInt = Field(..., description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, max_length=1000, description="Review comment")


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_id: str
    service_id: str
    provider_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
