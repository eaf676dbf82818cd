from datetime import datetime
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, ConfigDict, NonNegativeInt, field_validator
from app.models.reservation import ReservationStatus
from app.schemas.space import SpaceSummary
from app.schemas.user import UserSummary
from app.utils.validation_helpers import as_utc


class ReservationCreate(BaseModel):
    # Raw values; the lifecycle service checks presence and parses timestamps
    space_id: Optional[str] = None
    start_time: Optional[Union[datetime, str]] = None
    end_time: Optional[Union[datetime, str]] = None
    total_amount: Optional[NonNegativeInt] = None


class ReservationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    space_id: str
    start_time: datetime
    end_time: datetime
    total_amount: int
    status: ReservationStatus
    razorpay_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    paid_amount: Optional[float] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    created_at: datetime
    space: Optional[SpaceSummary] = None
    user: Optional[UserSummary] = None

    @field_validator("start_time", "end_time", "check_in_time", "check_out_time", "created_at")
    @classmethod
    def attach_utc(cls, value):
        return as_utc(value)


class ReservationCreated(BaseModel):
    reservation: ReservationResponse
    order: Optional[Dict[str, Any]] = None
