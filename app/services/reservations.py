import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from app.config import settings
from app.models.reservation import (
    BLOCKING_STATUSES,
    OCCUPYING_STATUSES,
    Reservation,
    ReservationStatus,
)
from app.models.space import Space
from app.schemas.reservation import ReservationCreate
from app.services.spaces import SpaceService
from app.utils.access import Actor, Role, ensure_owner
from app.utils.errors import BadRequestError, NotFoundError
from app.utils.validation_helpers import (
    is_valid_id,
    local_day_bounds,
    round_half_up,
    to_storage,
    utcnow,
)

logger = logging.getLogger(__name__)

# Overlap check and insert run under this lock so two requests in the same
# process cannot both pass the check; the space row is also locked with
# SELECT ... FOR UPDATE on databases that support it.
_booking_lock = threading.Lock()


def parse_instant(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return to_storage(value)
    try:
        return to_storage(datetime.fromisoformat(str(value)))
    except ValueError:
        return None


def calculate_price(space: Space, start: datetime, end: datetime) -> int:
    """Hourly rate of the first pricing rule times the duration, rounded half up."""
    duration_hours = (end - start).total_seconds() / 3600
    rate = space.hourly_rate or settings.DEFAULT_HOURLY_RATE
    return round_half_up(rate * duration_hours)


class ReservationService:
    """Reservation lifecycle: pending -> confirmed -> checked_in -> checked_out."""

    def __init__(self, session: Session):
        self.session = session
        self.spaces = SpaceService(session)

    def _query(self):
        return self.session.query(Reservation).options(
            joinedload(Reservation.space), joinedload(Reservation.user)
        )

    def _get(self, reservation_id: str) -> Reservation:
        reservation = None
        if is_valid_id(reservation_id):
            reservation = self._query().filter(Reservation.id == reservation_id).first()
        if not reservation:
            logger.error(f"Reservation not found: {reservation_id}")
            raise NotFoundError("Reservation not found")
        return reservation

    def _save(self, reservation: Reservation) -> Reservation:
        self.session.commit()
        self.session.refresh(reservation)
        return reservation

    def find_overlapping(self, space_id: str, start: datetime, end: datetime,
                         exclude_id: Optional[str] = None) -> List[Reservation]:
        query = self.session.query(Reservation).filter(
            Reservation.space_id == space_id,
            Reservation.status.in_(BLOCKING_STATUSES),
            Reservation.start_time < end,
            Reservation.end_time > start,
        )
        if exclude_id:
            query = query.filter(Reservation.id != exclude_id)
        return query.all()

    def create(self, data: ReservationCreate, user_id: str) -> Reservation:
        if not data.space_id or not data.start_time or not data.end_time:
            raise BadRequestError("Space ID, start time, and end time are required")

        start = parse_instant(data.start_time)
        end = parse_instant(data.end_time)
        if start is None or end is None:
            logger.error(f"Invalid date format: {data.start_time} / {data.end_time}")
            raise BadRequestError("Invalid date format")
        if start >= end:
            raise BadRequestError("End time must be after start time")
        if start < utcnow():
            raise BadRequestError("Start time cannot be in the past")

        space = self.spaces.get(data.space_id)
        if not space.is_active:
            logger.error(f"Space {space.id} is inactive")
            raise BadRequestError("This space is not available for booking")

        with _booking_lock:
            self.session.query(Space).filter(Space.id == space.id).with_for_update().first()
            if self.find_overlapping(space.id, start, end):
                self.session.rollback()
                logger.error(f"Overlapping reservation for space {space.id}: {start} to {end}")
                raise BadRequestError("This space is already booked for the selected time slot")

            total_amount = data.total_amount or calculate_price(space, start, end)
            reservation = Reservation(
                user_id=user_id,
                space_id=space.id,
                start_time=start,
                end_time=end,
                total_amount=total_amount,
                status=ReservationStatus.PENDING.value,
            )
            self.session.add(reservation)
            self.session.commit()

        self.session.refresh(reservation)
        logger.debug(f"Created reservation {reservation.id} for space {space.id}, amount {total_amount}")
        return reservation

    def update(self, reservation_id: str, **fields) -> Reservation:
        reservation = self._get(reservation_id)
        for key, value in fields.items():
            setattr(reservation, key, value)
        return self._save(reservation)

    def find_all(self, actor: Actor) -> List[Reservation]:
        query = self._query()
        if actor.role is Role.CONSUMER:
            query = query.filter(Reservation.user_id == actor.id)
        elif actor.role is Role.BRAND_OWNER:
            owned = self.session.query(Space.id).filter(Space.owner_id == actor.id)
            query = query.filter(Reservation.space_id.in_(owned.scalar_subquery()))
        elif actor.role is Role.STAFF:
            # Staff only ever see today's active sheet
            day_start, day_end = local_day_bounds()
            query = query.filter(
                Reservation.start_time >= day_start,
                Reservation.start_time < day_end,
                Reservation.status.in_(OCCUPYING_STATUSES),
            )
        reservations = query.order_by(Reservation.created_at.desc()).all()
        logger.debug(f"Retrieved {len(reservations)} reservations for {actor.role.value} {actor.id}")
        return reservations

    def find_one(self, reservation_id: str, actor: Actor) -> Reservation:
        reservation = self._get(reservation_id)
        if actor.role is Role.CONSUMER:
            ensure_owner(actor, reservation.user_id, "You can only view your own reservations")
        elif actor.role is Role.BRAND_OWNER:
            ensure_owner(actor, reservation.space.owner_id, "You can only view reservations for your spaces")
        return reservation

    def find_by_order(self, order_id: str, actor: Optional[Actor] = None) -> Reservation:
        reservation = self._query().filter(Reservation.razorpay_order_id == order_id).first()
        if not reservation:
            logger.error(f"No reservation for order {order_id}")
            raise NotFoundError("Reservation not found")
        if actor is not None:
            ensure_owner(actor, reservation.user_id, "You can only pay for your own reservations")
        return reservation

    def update_payment_status(self, order_id: str, payment_id: str, status: str,
                              actor: Optional[Actor] = None, paid_amount: Optional[float] = None) -> Reservation:
        """
        Settle a pending reservation from a gateway outcome.

        "success" confirms it (re-checking the slot under the booking lock),
        anything else cancels it. Only pending reservations can be settled.
        """
        reservation = self.find_by_order(order_id, actor)
        if reservation.status != ReservationStatus.PENDING.value:
            logger.error(f"Payment {status} for reservation {reservation.id} in state {reservation.status}")
            raise BadRequestError("This reservation is not awaiting payment")

        reservation.payment_id = payment_id
        if status != "success":
            reservation.status = ReservationStatus.CANCELLED.value
            self._save(reservation)
            logger.debug(f"Reservation {reservation.id} payment {status}: now {reservation.status}")
            return reservation

        with _booking_lock:
            self.session.query(Space).filter(Space.id == reservation.space_id).with_for_update().first()
            clashes = self.find_overlapping(
                reservation.space_id, reservation.start_time, reservation.end_time, exclude_id=reservation.id
            )
            if clashes:
                self.session.rollback()
                logger.error(f"Reservation {reservation.id} overlaps {clashes[0].id}, not confirming")
                raise BadRequestError("This space is already booked for the selected time slot")
            reservation.status = ReservationStatus.CONFIRMED.value
            reservation.paid_amount = paid_amount if paid_amount is not None else reservation.total_amount
            self.session.commit()

        self.session.refresh(reservation)
        logger.debug(f"Reservation {reservation.id} payment {status}: now {reservation.status}")
        return reservation

    def cancel(self, reservation_id: str, actor: Actor) -> Reservation:
        reservation = self._get(reservation_id)
        ensure_owner(actor, reservation.user_id, "You can only cancel your own reservations")
        if reservation.status not in (ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value):
            raise BadRequestError("This reservation cannot be cancelled")
        lead = timedelta(minutes=settings.CANCELLATION_LEAD_MINUTES)
        if reservation.start_time < utcnow() + lead:
            logger.error(f"Cancellation too late for reservation {reservation_id}")
            raise BadRequestError(
                f"Reservation can only be cancelled at least {settings.CANCELLATION_LEAD_MINUTES // 60} hours before start time"
            )
        reservation.status = ReservationStatus.CANCELLED.value
        self._save(reservation)
        logger.debug(f"Cancelled reservation {reservation_id}")
        return reservation

    def today(self) -> List[Reservation]:
        day_start, day_end = local_day_bounds()
        return (
            self._query()
            .filter(
                Reservation.start_time >= day_start,
                Reservation.start_time < day_end,
                Reservation.status.in_(OCCUPYING_STATUSES),
            )
            .order_by(Reservation.start_time.asc())
            .all()
        )

    def check_in(self, reservation_id: str) -> Reservation:
        reservation = self._get(reservation_id)
        if reservation.status != ReservationStatus.CONFIRMED.value:
            raise BadRequestError("Only confirmed reservations can be checked in")
        window_opens = reservation.start_time - timedelta(minutes=settings.CHECKIN_WINDOW_MINUTES)
        if utcnow() < window_opens:
            raise BadRequestError(
                f"Check-in is only allowed {settings.CHECKIN_WINDOW_MINUTES} minutes before the reservation time"
            )
        reservation.status = ReservationStatus.CHECKED_IN.value
        reservation.check_in_time = utcnow()
        self._save(reservation)
        logger.debug(f"Checked in reservation {reservation_id}")
        return reservation

    def check_out(self, reservation_id: str) -> Reservation:
        reservation = self._get(reservation_id)
        if reservation.status != ReservationStatus.CHECKED_IN.value:
            raise BadRequestError("Only checked-in reservations can be checked out")
        reservation.status = ReservationStatus.CHECKED_OUT.value
        reservation.check_out_time = utcnow()
        self._save(reservation)
        logger.debug(f"Checked out reservation {reservation_id}")
        return reservation
