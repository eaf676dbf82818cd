import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.db import get_db
from app.schemas.payment import PaymentVerification, PaymentVerified
from app.schemas.reservation import ReservationCreate, ReservationCreated, ReservationResponse
from app.services.payments import PaymentProvider, PaymentService, get_payment_provider
from app.services.reservations import ReservationService
from app.utils.access import Actor, Role, require_roles
from app.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reservations",
    tags=["reservations"],
)


@router.post(
    "/",
    response_model=ReservationCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reservation",
    description="Book a space for a time window and open a payment order. Requires the consumer role.",
)
def create_reservation(
    reservation: ReservationCreate,
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
    current_user: Actor = Depends(require_roles(Role.CONSUMER)),
):
    """
    Create a pending reservation and a gateway order for its amount.

    - **space_id**: ID of the space to book.
    - **start_time** / **end_time**: booking window; start must be in the future.
    - **total_amount**: (Optional) explicit amount; otherwise hourly rate times duration.

    Returns the reservation (carrying the order id) and the gateway order.
    """
    logger.debug(f"Creating reservation for user {current_user.id}, space {reservation.space_id}")
    created = ReservationService(db).create(reservation, current_user.id)
    order = PaymentService(db, provider).create_order(created)
    return {"reservation": created, "order": order}


@router.post(
    "/verify-payment",
    response_model=PaymentVerified,
    summary="Verify checkout payment",
    description="Verify the gateway signature and confirm the reservation.",
)
def verify_payment(
    payment: PaymentVerification,
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
    current_user: Actor = Depends(get_current_user),
):
    reservation = PaymentService(db, provider).verify_and_apply(
        payment.order_id, payment.payment_id, payment.signature, payment.amount, current_user
    )
    return {"reservation": reservation}


@router.get(
    "/",
    response_model=List[ReservationResponse],
    summary="List reservations",
    description="Consumers see their own, brand owners those on their spaces, staff today's active ones.",
)
def get_reservations(db: Session = Depends(get_db), current_user: Actor = Depends(get_current_user)):
    return ReservationService(db).find_all(current_user)


@router.get(
    "/today",
    response_model=List[ReservationResponse],
    summary="Today's reservations",
    description="Confirmed and checked-in reservations starting today, earliest first. Staff only.",
)
def get_today_reservations(db: Session = Depends(get_db), current_user: Actor = Depends(require_roles(Role.STAFF))):
    return ReservationService(db).today()


@router.get("/{reservation_id}", response_model=ReservationResponse, summary="Get a reservation by ID")
def get_reservation(reservation_id: str, db: Session = Depends(get_db),
                    current_user: Actor = Depends(get_current_user)):
    return ReservationService(db).find_one(reservation_id, current_user)


@router.patch(
    "/{reservation_id}/cancel",
    response_model=ReservationResponse,
    summary="Cancel a reservation",
    description="Cancel a pending or confirmed reservation at least two hours before it starts.",
)
def cancel_reservation(reservation_id: str, db: Session = Depends(get_db),
                       current_user: Actor = Depends(get_current_user)):
    return ReservationService(db).cancel(reservation_id, current_user)


@router.patch("/{reservation_id}/checkin", response_model=ReservationResponse, summary="Check a guest in")
def check_in(reservation_id: str, db: Session = Depends(get_db),
             current_user: Actor = Depends(require_roles(Role.STAFF))):
    return ReservationService(db).check_in(reservation_id)


@router.patch("/{reservation_id}/checkout", response_model=ReservationResponse, summary="Check a guest out")
def check_out(reservation_id: str, db: Session = Depends(get_db),
              current_user: Actor = Depends(require_roles(Role.STAFF))):
    return ReservationService(db).check_out(reservation_id)
