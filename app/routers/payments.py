import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db import get_db
from app.schemas.payment import PaymentVerification, PaymentVerified, RefundRequest, RefundResponse
from app.services.payments import PaymentProvider, PaymentService, get_payment_provider
from app.utils.access import Actor
from app.utils.auth import get_current_user
from app.utils.errors import BadRequestError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
)


@router.post("/verify", response_model=PaymentVerified)
def verify_payment(
    payment: PaymentVerification,
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
    current_user: Actor = Depends(get_current_user),
):
    """
    Verify a gateway callback. A bad signature cancels the reservation.
    """
    payments = PaymentService(db, provider)
    if not payments.verify_signature(payment.order_id, payment.payment_id, payment.signature):
        logger.error(f"Invalid payment signature for order {payment.order_id}")
        payments.reservations.update_payment_status(payment.order_id, payment.payment_id, "failed", current_user)
        raise BadRequestError("Invalid payment signature")
    reservation = payments.apply_successful_payment(
        payment.payment_id, payment.order_id, payment.amount, current_user
    )
    return {"reservation": reservation}


@router.post("/refund", response_model=RefundResponse)
def refund_payment(
    request: RefundRequest,
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
    current_user: Actor = Depends(get_current_user),
):
    """
    Refund a reservation's payment through the gateway and cancel it.
    """
    refund = PaymentService(db, provider).refund(
        request.reservation_id, current_user, payment_id=request.payment_id, amount=request.amount
    )
    return {"refund": refund}
