import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import httpx
from sqlalchemy.orm import Session
from app.config import settings
from app.models.reservation import Reservation, ReservationStatus
from app.services.reservations import ReservationService
from app.utils.access import Actor
from app.utils.errors import BadRequestError, UpstreamError

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    """Rupees to paise."""
    return int(round(amount * 100))


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: Optional[str] = None) -> bool:
    """Check a checkout signature: HMAC-SHA256 of "order_id|payment_id"."""
    if not order_id or not payment_id or not signature:
        return False
    expected = compute_signature(order_id, payment_id, secret or settings.RAZORPAY_KEY_SECRET)
    return hmac.compare_digest(expected, signature)


class PaymentProvider(ABC):
    """Hosted payment gateway: order creation and refunds."""

    @abstractmethod
    def create_order(self, amount: float, currency: str, receipt: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def refund(self, payment_id: str, amount: float) -> Dict[str, Any]:
        ...


class RazorpayProvider(PaymentProvider):
    def __init__(self, key_id: str, key_secret: str, base_url: str, timeout: float = 30.0):
        self.auth = (key_id, key_secret)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _post(self, path: str, payload: dict) -> Dict[str, Any]:
        response = httpx.post(
            f"{self.base_url}{path}",
            json=payload,
            auth=self.auth,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def create_order(self, amount: float, currency: str, receipt: str) -> Dict[str, Any]:
        payload = {"amount": to_minor_units(amount), "currency": currency, "receipt": receipt}
        try:
            order = self._post("/orders", payload)
        except httpx.HTTPError as e:
            logger.error(f"Razorpay order creation failed for {receipt}: {e}")
            raise UpstreamError(f"Failed to create order: {e}")
        logger.info(f"Razorpay order {order.get('id')} created for {receipt}")
        return order

    def refund(self, payment_id: str, amount: float) -> Dict[str, Any]:
        payload = {"amount": to_minor_units(amount)}
        try:
            refund = self._post(f"/payments/{payment_id}/refund", payload)
        except httpx.HTTPError as e:
            logger.error(f"Razorpay refund failed for payment {payment_id}: {e}")
            raise UpstreamError(f"Failed to process refund: {e}")
        logger.info(f"Razorpay refund {refund.get('id')} issued for payment {payment_id}")
        return refund


def get_payment_provider() -> PaymentProvider:
    return RazorpayProvider(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_API_BASE_URL,
        timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
    )


class PaymentService:
    """Bridges gateway outcomes into reservation state."""

    def __init__(self, session: Session, provider: PaymentProvider):
        self.session = session
        self.provider = provider
        self.reservations = ReservationService(session)

    def create_order(self, reservation: Reservation, currency: Optional[str] = None) -> Dict[str, Any]:
        order = self.provider.create_order(
            reservation.total_amount,
            currency or settings.DEFAULT_CURRENCY,
            f"receipt_{reservation.id}",
        )
        self.reservations.update(reservation.id, razorpay_order_id=order["id"])
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_signature(order_id, payment_id, signature)

    def apply_successful_payment(self, payment_id: str, order_id: str, amount: Optional[float],
                                 actor: Optional[Actor] = None) -> Reservation:
        reservation = self.reservations.update_payment_status(
            order_id, payment_id, "success", actor=actor, paid_amount=amount
        )
        logger.debug(f"Payment {payment_id} applied to reservation {reservation.id}")
        return reservation

    def verify_and_apply(self, order_id: str, payment_id: str, signature: str, amount: Optional[float],
                         actor: Optional[Actor] = None) -> Reservation:
        self.reservations.find_by_order(order_id, actor)
        if not self.verify_signature(order_id, payment_id, signature):
            logger.error(f"Invalid payment signature for order {order_id}")
            raise BadRequestError("Invalid payment signature")
        return self.apply_successful_payment(payment_id, order_id, amount, actor)

    def refund(self, reservation_id: str, actor: Actor, payment_id: Optional[str] = None,
               amount: Optional[float] = None) -> Dict[str, Any]:
        """
        Refund a confirmed reservation's recorded payment and cancel it.

        The payment id must be the one recorded on the reservation and the
        amount cannot exceed what was paid.
        """
        reservation = self.reservations.find_one(reservation_id, actor)
        if reservation.status != ReservationStatus.CONFIRMED.value:
            logger.error(f"Refund refused for reservation {reservation.id} in state {reservation.status}")
            raise BadRequestError("Only confirmed reservations can be refunded")
        if not reservation.payment_id:
            raise BadRequestError("Reservation has no payment to refund")
        if payment_id and payment_id != reservation.payment_id:
            logger.error(f"Refund of payment {payment_id} refused for reservation {reservation.id}")
            raise BadRequestError("Payment does not belong to this reservation")

        paid = reservation.paid_amount if reservation.paid_amount is not None else reservation.total_amount
        if amount is None:
            amount = paid
        if amount > paid:
            raise BadRequestError("Refund amount exceeds the amount paid")

        refund = self.provider.refund(reservation.payment_id, amount)
        self.reservations.update(reservation.id, status=ReservationStatus.CANCELLED.value)
        logger.info(f"Refunded {amount} for reservation {reservation.id}")
        return refund
