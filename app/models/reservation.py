import enum
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Float, String
from sqlalchemy.orm import relationship
from app.db import Base
from app.utils.validation_helpers import new_id, utcnow


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


# Statuses that hold a time slot on a space
BLOCKING_STATUSES = (
    ReservationStatus.PENDING.value,
    ReservationStatus.CONFIRMED.value,
    ReservationStatus.CHECKED_IN.value,
)
# Statuses that make a space unavailable in search and appear on the staff day sheet
OCCUPYING_STATUSES = (
    ReservationStatus.CONFIRMED.value,
    ReservationStatus.CHECKED_IN.value,
)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    space_id = Column(String(36), ForeignKey("spaces.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    total_amount = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value, index=True)
    razorpay_order_id = Column(String, nullable=True, index=True)
    payment_id = Column(String, nullable=True)
    paid_amount = Column(Float, nullable=True)
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    space = relationship("Space", back_populates="reservations")
    user = relationship("User", back_populates="reservations")
