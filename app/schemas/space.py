from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from app.schemas.user import UserSummary
from app.utils.validation_helpers import as_utc


def _unique(values):
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class PricingRule(BaseModel):
    type: str = "hourly"
    rate: float = Field(ge=0)


class SpaceBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    address: Optional[str] = None
    capacity: PositiveInt
    amenities: List[str] = []
    pricing_rules: List[PricingRule] = []

    @field_validator("amenities")
    @classmethod
    def dedupe_amenities(cls, value):
        return _unique(value)


class SpaceCreate(SpaceBase):
    pass


class SpaceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    address: Optional[str] = None
    capacity: Optional[PositiveInt] = None
    amenities: Optional[List[str]] = None
    pricing_rules: Optional[List[PricingRule]] = None
    is_active: Optional[bool] = None

    @field_validator("amenities")
    @classmethod
    def dedupe_amenities(cls, value):
        return _unique(value) if value is not None else value


class SpaceAvailability(BaseModel):
    is_active: bool


class SpaceResponse(SpaceBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    owner: Optional[UserSummary] = None
    is_active: bool
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def attach_utc(cls, value):
        return as_utc(value)


class SpaceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: Optional[str] = None
