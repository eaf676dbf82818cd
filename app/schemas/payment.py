from typing import Any, Dict, Optional
from pydantic import BaseModel, PositiveFloat
from app.schemas.reservation import ReservationResponse


class PaymentVerification(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    amount: Optional[float] = None


class PaymentVerified(BaseModel):
    status: str = "success"
    message: str = "Payment verified successfully"
    reservation: ReservationResponse


class RefundRequest(BaseModel):
    reservation_id: str
    payment_id: Optional[str] = None
    amount: Optional[PositiveFloat] = None


class RefundResponse(BaseModel):
    status: str = "success"
    message: str = "Refund processed successfully"
    refund: Dict[str, Any]
