from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, time
from enum import Enum
from marketplace.schemas.review_schema import ReviewResponse


class Weekday(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"

    @classmethod
    def of(cls, moment: datetime) -> "Weekday":
        return list(cls)[moment.weekday()]


class AvailabilityWindow(BaseModel):
    """Weekly hours a provider declares for a service.

    Stored with every service but only consulted by booking creation when
    ENFORCE_AVAILABILITY_WINDOW is on.
    """

    days: List[Weekday] = Field(default_factory=list)
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def end_time_must_be_after_start_time(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def contains(self, moment: datetime) -> bool:
        if Weekday.of(moment) not in self.days:
            return False
        return self.start_time <= moment.time() < self.end_time


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    provider_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    price: Decimal
    is_active: bool
    availability_window: Optional[AvailabilityWindow] = None
    rating: Decimal
    review_count: int
    created_at: datetime


class ServiceWithReviews(BaseModel):
    service: ServiceResponse
    reviews: List[ReviewResponse]


class Recommendation(BaseModel):
    service: ServiceResponse
    relevance_score: float


class RecommendationList(BaseModel):
    recommendations: List[Recommendation]
