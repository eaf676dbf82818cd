import pytest
from datetime import timedelta
from fastapi import status

from app.models.reservation import Reservation
from app.utils.validation_helpers import local_day_bounds, utcnow
from tests.conf_tests import (
    client,
    clear_db,
    test_db,
    consumer,
    other_consumer,
    owner,
    other_owner,
    staff,
    test_space,
    fake_provider,
    headers_for,
    make_space,
    make_reservation,
    sign,
)


def tomorrow_at(hour, minute=0):
    day = utcnow() + timedelta(days=1)
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def iso(value):
    return f"{value.isoformat()}+00:00"


def booking_payload(space, start, end, **extra):
    return {"space_id": space.id, "start_time": iso(start), "end_time": iso(end), **extra}


# Creation
# pylint: disable-next=redefined-outer-name
def test_create_reservation_prices_two_hours(consumer, test_space):
    payload = booking_payload(test_space, tomorrow_at(9), tomorrow_at(11))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    reservation = data["reservation"]
    assert reservation["total_amount"] == 200
    assert reservation["status"] == "pending"
    assert reservation["user_id"] == consumer.id
    assert reservation["space"]["name"] == test_space.name
    assert data["order"]["amount"] == 20000
    assert data["order"]["receipt"] == f"receipt_{reservation['id']}"
    assert reservation["razorpay_order_id"] == data["order"]["id"]


# pylint: disable-next=redefined-outer-name
def test_create_reservation_explicit_amount_wins(consumer, test_space):
    payload = booking_payload(test_space, tomorrow_at(9), tomorrow_at(11), total_amount=999)
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["reservation"]["total_amount"] == 999


# pylint: disable-next=redefined-outer-name
def test_create_reservation_negative_amount(test_db, consumer, test_space):
    payload = booking_payload(test_space, tomorrow_at(9), tomorrow_at(11), total_amount=-500)
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == 422
    assert test_db.query(Reservation).count() == 0
    assert fake_provider.orders == []


# pylint: disable-next=redefined-outer-name
def test_create_reservation_rounds_half_up(test_db, consumer, owner):
    space = make_space(test_db, owner, rate=125)
    payload = booking_payload(space, tomorrow_at(9), tomorrow_at(9, 30))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["reservation"]["total_amount"] == 63


# pylint: disable-next=redefined-outer-name
def test_create_reservation_default_rate(test_db, consumer, owner):
    space = make_space(test_db, owner, pricing_rules=[])
    payload = booking_payload(space, tomorrow_at(9), tomorrow_at(12))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["reservation"]["total_amount"] == 300


def test_create_reservation_unauthorized():
    response = client.post("/reservations/", json={"space_id": "x"})
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


# pylint: disable-next=redefined-outer-name
def test_create_reservation_requires_consumer(staff, test_space):
    payload = booking_payload(test_space, tomorrow_at(9), tomorrow_at(10))
    response = client.post("/reservations/", json=payload, headers=headers_for(staff))
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.parametrize(
    "override, message",
    [
        ({"start_time": None}, "are required"),
        ({"start_time": "next tuesday"}, "Invalid date format"),
        ({"end_time": "2000-01-01T00:00:00+00:00"}, "End time must be after start time"),
    ],
)
# pylint: disable-next=redefined-outer-name
def test_create_reservation_validation(consumer, test_space, override, message):
    payload = booking_payload(test_space, tomorrow_at(9), tomorrow_at(10))
    payload.update(override)
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert message in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_create_reservation_in_the_past(consumer, test_space):
    start = utcnow() - timedelta(hours=1)
    payload = booking_payload(test_space, start, start + timedelta(hours=2))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "past" in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_create_reservation_inactive_space(test_db, consumer, owner):
    space = make_space(test_db, owner, is_active=False)
    payload = booking_payload(space, tomorrow_at(9), tomorrow_at(10))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "not available" in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_create_reservation_space_not_found(consumer):
    payload = {
        "space_id": "00000000-0000-0000-0000-000000000000",
        "start_time": iso(tomorrow_at(9)),
        "end_time": iso(tomorrow_at(10)),
    }
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_create_reservation_overlapping(test_db, consumer, other_consumer, test_space):
    make_reservation(test_db, other_consumer, test_space, start=tomorrow_at(10), hours=1)
    payload = booking_payload(test_space, tomorrow_at(10, 30), tomorrow_at(11, 30))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "already booked" in response.json()["detail"]


@pytest.mark.parametrize("existing_status", ["pending", "confirmed", "checked_in"])
# pylint: disable-next=redefined-outer-name
def test_blocking_statuses_conflict(test_db, consumer, other_consumer, test_space, existing_status):
    make_reservation(test_db, other_consumer, test_space, start=tomorrow_at(10), hours=2,
                     status=existing_status)
    payload = booking_payload(test_space, tomorrow_at(11), tomorrow_at(13))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.parametrize("existing_status", ["cancelled", "checked_out", "completed"])
# pylint: disable-next=redefined-outer-name
def test_released_statuses_do_not_conflict(test_db, consumer, other_consumer, test_space, existing_status):
    make_reservation(test_db, other_consumer, test_space, start=tomorrow_at(10), hours=2,
                     status=existing_status)
    payload = booking_payload(test_space, tomorrow_at(10), tomorrow_at(12))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_201_CREATED


# pylint: disable-next=redefined-outer-name
def test_adjacent_reservations_do_not_conflict(test_db, consumer, other_consumer, test_space):
    make_reservation(test_db, other_consumer, test_space, start=tomorrow_at(10), hours=1)
    payload = booking_payload(test_space, tomorrow_at(11), tomorrow_at(12))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_201_CREATED


# pylint: disable-next=redefined-outer-name
def test_create_reservation_gateway_failure(test_db, consumer, test_space):
    fake_provider.fail = True
    payload = booking_payload(test_space, tomorrow_at(9), tomorrow_at(10))
    response = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert "Failed to create order" in response.json()["detail"]
    reservation = test_db.query(Reservation).one()
    assert reservation.status == "pending"
    assert reservation.razorpay_order_id is None


# Listing
# pylint: disable-next=redefined-outer-name
def test_consumer_sees_own_reservations(test_db, consumer, other_consumer, test_space):
    first = make_reservation(test_db, consumer, test_space, start=tomorrow_at(8))
    second = make_reservation(test_db, consumer, test_space, start=tomorrow_at(12))
    make_reservation(test_db, other_consumer, test_space, start=tomorrow_at(15))

    response = client.get("/reservations/", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_200_OK
    assert [r["id"] for r in response.json()] == [second.id, first.id]


# pylint: disable-next=redefined-outer-name
def test_brand_owner_sees_reservations_on_own_spaces(test_db, consumer, owner, other_owner, test_space):
    theirs = make_space(test_db, other_owner)
    mine = make_reservation(test_db, consumer, test_space, start=tomorrow_at(8))
    make_reservation(test_db, consumer, theirs, start=tomorrow_at(8))

    response = client.get("/reservations/", headers=headers_for(owner))
    assert response.status_code == status.HTTP_200_OK
    assert [r["id"] for r in response.json()] == [mine.id]


# pylint: disable-next=redefined-outer-name
def test_staff_list_is_restricted_to_today(test_db, consumer, staff, test_space):
    day_start, _ = local_day_bounds()
    today = make_reservation(test_db, consumer, test_space, start=day_start + timedelta(hours=2))
    make_reservation(test_db, consumer, test_space, start=day_start + timedelta(hours=4), status="pending")
    make_reservation(test_db, consumer, test_space, start=day_start + timedelta(days=1, hours=2))

    response = client.get("/reservations/", headers=headers_for(staff))
    assert response.status_code == status.HTTP_200_OK
    assert [r["id"] for r in response.json()] == [today.id]


# pylint: disable-next=redefined-outer-name
def test_today_reservations_ordered_by_start(test_db, consumer, staff, test_space):
    day_start, _ = local_day_bounds()
    late = make_reservation(test_db, consumer, test_space, start=day_start + timedelta(hours=20))
    early = make_reservation(test_db, consumer, test_space, start=day_start + timedelta(hours=1),
                             status="checked_in")
    make_reservation(test_db, consumer, test_space, start=day_start + timedelta(hours=5), status="cancelled")

    response = client.get("/reservations/today", headers=headers_for(staff))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [r["id"] for r in data] == [early.id, late.id]
    assert data[0]["user"]["email"] == consumer.email


# pylint: disable-next=redefined-outer-name
def test_today_reservations_staff_only(consumer):
    response = client.get("/reservations/today", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_403_FORBIDDEN


# pylint: disable-next=redefined-outer-name
def test_get_reservation_authorization(test_db, consumer, other_consumer, owner, other_owner, staff, test_space):
    reservation = make_reservation(test_db, consumer, test_space, start=tomorrow_at(9))
    url = f"/reservations/{reservation.id}"

    assert client.get(url, headers=headers_for(consumer)).status_code == status.HTTP_200_OK
    assert client.get(url, headers=headers_for(owner)).status_code == status.HTTP_200_OK
    assert client.get(url, headers=headers_for(staff)).status_code == status.HTTP_200_OK
    assert client.get(url, headers=headers_for(other_consumer)).status_code == status.HTTP_403_FORBIDDEN
    assert client.get(url, headers=headers_for(other_owner)).status_code == status.HTTP_403_FORBIDDEN


# pylint: disable-next=redefined-outer-name
def test_get_reservation_not_found(consumer):
    response = client.get("/reservations/00000000-0000-0000-0000-000000000000", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_404_NOT_FOUND


# Cancellation
# pylint: disable-next=redefined-outer-name
def test_cancel_with_enough_lead_time(test_db, consumer, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(hours=2, minutes=1))
    response = client.patch(f"/reservations/{reservation.id}/cancel", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "cancelled"


# pylint: disable-next=redefined-outer-name
def test_cancel_too_close_to_start(test_db, consumer, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(hours=1, minutes=59))
    response = client.patch(f"/reservations/{reservation.id}/cancel", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "2 hours" in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_cancel_pending_reservation(test_db, consumer, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(days=1), status="pending")
    response = client.patch(f"/reservations/{reservation.id}/cancel", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_200_OK


# pylint: disable-next=redefined-outer-name
def test_cancel_someone_elses_reservation(test_db, consumer, other_consumer, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(days=1))
    response = client.patch(f"/reservations/{reservation.id}/cancel", headers=headers_for(other_consumer))
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.parametrize("current", ["checked_in", "checked_out", "cancelled"])
# pylint: disable-next=redefined-outer-name
def test_cancel_invalid_state(test_db, consumer, test_space, current):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(days=1), status=current)
    response = client.patch(f"/reservations/{reservation.id}/cancel", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "cannot be cancelled" in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_cancel_not_found(consumer):
    response = client.patch(
        "/reservations/00000000-0000-0000-0000-000000000000/cancel", headers=headers_for(consumer)
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


# Check-in / check-out
# pylint: disable-next=redefined-outer-name
def test_check_in_within_window(test_db, consumer, staff, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(minutes=10))
    response = client.patch(f"/reservations/{reservation.id}/checkin", headers=headers_for(staff))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "checked_in"
    assert data["check_in_time"] is not None


# pylint: disable-next=redefined-outer-name
def test_check_in_too_early(test_db, consumer, staff, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(minutes=30))
    response = client.patch(f"/reservations/{reservation.id}/checkin", headers=headers_for(staff))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "15 minutes" in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_check_in_requires_confirmed(test_db, consumer, staff, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(minutes=5), status="pending")
    response = client.patch(f"/reservations/{reservation.id}/checkin", headers=headers_for(staff))
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_check_in_staff_only(test_db, consumer, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(minutes=5))
    response = client.patch(f"/reservations/{reservation.id}/checkin", headers=headers_for(consumer))
    assert response.status_code == status.HTTP_403_FORBIDDEN


# pylint: disable-next=redefined-outer-name
def test_check_out_requires_checked_in(test_db, consumer, staff, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(minutes=-30))
    response = client.patch(f"/reservations/{reservation.id}/checkout", headers=headers_for(staff))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "checked-in" in response.json()["detail"]


# pylint: disable-next=redefined-outer-name
def test_check_out_success(test_db, consumer, staff, test_space):
    reservation = make_reservation(test_db, consumer, test_space, timedelta(minutes=-30), status="checked_in")
    response = client.patch(f"/reservations/{reservation.id}/checkout", headers=headers_for(staff))
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "checked_out"
    assert data["check_out_time"] is not None


# pylint: disable-next=redefined-outer-name
def test_full_lifecycle(consumer, staff, test_space):
    start = utcnow() + timedelta(minutes=5)
    payload = booking_payload(test_space, start, start + timedelta(hours=1))
    created = client.post("/reservations/", json=payload, headers=headers_for(consumer))
    assert created.status_code == status.HTTP_201_CREATED
    reservation_id = created.json()["reservation"]["id"]
    order_id = created.json()["order"]["id"]
    seen = [created.json()["reservation"]["status"]]

    # No skipping straight to check-in or check-out
    assert client.patch(f"/reservations/{reservation_id}/checkin",
                        headers=headers_for(staff)).status_code == status.HTTP_400_BAD_REQUEST
    assert client.patch(f"/reservations/{reservation_id}/checkout",
                        headers=headers_for(staff)).status_code == status.HTTP_400_BAD_REQUEST

    verified = client.post(
        "/reservations/verify-payment",
        json={"order_id": order_id, "payment_id": "pay_1", "signature": sign(order_id, "pay_1"), "amount": 100},
        headers=headers_for(consumer),
    )
    assert verified.status_code == status.HTTP_200_OK
    seen.append(verified.json()["reservation"]["status"])

    assert client.patch(f"/reservations/{reservation_id}/checkout",
                        headers=headers_for(staff)).status_code == status.HTTP_400_BAD_REQUEST

    checked_in = client.patch(f"/reservations/{reservation_id}/checkin", headers=headers_for(staff))
    seen.append(checked_in.json()["status"])
    checked_out = client.patch(f"/reservations/{reservation_id}/checkout", headers=headers_for(staff))
    seen.append(checked_out.json()["status"])

    assert seen == ["pending", "confirmed", "checked_in", "checked_out"]
