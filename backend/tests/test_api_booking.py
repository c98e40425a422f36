from datetime import datetime, timedelta
from decimal import Decimal

from eventasap.models import BookingStatus, UserType

BASE = "/api/v1/bookings"


def booking_payload(vendor_id, **overrides):
    payload = {
        "vendor_id": vendor_id,
        "event_type": "Wedding",
        "event_date": (datetime.utcnow() + timedelta(days=60)).isoformat(),
        "event_location": "Stellenbosch",
        "budget": "500.00",
        "guests": 80,
    }
    payload.update(overrides)
    return payload


def test_negotiated_booking_flow(api, client_user, vendor_user):
    r = api.as_user(client_user).post(BASE, json=booking_payload(vendor_user.id))
    assert r.status_code == 201
    booking = r.json()
    assert booking["status"] == "PENDING"
    assert Decimal(booking["budget"]) == Decimal("500")
    booking_id = booking["id"]

    r = api.as_user(vendor_user).post(f"{BASE}/{booking_id}/accept", json={"quoted_price": "600.00"})
    assert r.status_code == 200
    assert r.json()["status"] == "ACCEPTED"
    assert Decimal(r.json()["quoted_price"]) == Decimal("600")

    r = api.post(f"{BASE}/{booking_id}/propose-price", json={"amount": "750.00", "reason": "Extra hour"})
    assert r.status_code == 200
    assert r.json()["status"] == "PRICE_PROPOSED"
    assert r.json()["price_adjustment_reason"] == "Extra hour"

    r = api.as_user(client_user).post(f"{BASE}/{booking_id}/approve-price")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "PRICE_APPROVED"
    assert Decimal(body["final_price"]) == Decimal("750")


def test_accept_without_body(api, make_booking, vendor_user):
    booking = make_booking()
    r = api.as_user(vendor_user).post(f"{BASE}/{booking.id}/accept")
    assert r.status_code == 200
    assert r.json()["quoted_price"] is None


def test_create_booking_errors(api, client_user, vendor_user, outsider):
    client = api.as_user(client_user)

    r = client.post(BASE, json=booking_payload(vendor_user.id, budget="0"))
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "INVALID_PRICE"
    assert r.json()["detail"]["field_errors"] == {"budget": "invalid_price"}

    r = client.post(BASE, json=booking_payload(outsider.id))
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"

    r = client.post(BASE, json=booking_payload(vendor_user.id, event_type=""))
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "VALIDATION_ERROR"

    r = api.as_user(vendor_user).post(BASE, json=booking_payload(vendor_user.id))
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "UNAUTHORIZED"


def test_error_codes_map_to_statuses(api, make_booking, client_user, vendor_user, outsider):
    booking = make_booking()

    r = api.as_user(client_user).post(f"{BASE}/{booking.id}/accept")
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "UNAUTHORIZED"

    r = api.as_user(outsider).get(f"{BASE}/{booking.id}")
    assert r.status_code == 403

    r = api.as_user(vendor_user).post(f"{BASE}/{booking.id}/complete")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INVALID_TRANSITION"

    r = api.post(f"{BASE}/9999/decline")
    assert r.status_code == 404

    vendor = api.as_user(vendor_user)
    r = vendor.post(f"{BASE}/{booking.id}/propose-price", json={"amount": "-5"})
    assert r.status_code == 422
    assert r.json()["detail"]["field_errors"] == {"amount": "invalid_price"}

    vendor.post(f"{BASE}/{booking.id}/propose-price", json={"amount": "700"})
    r = vendor.post(f"{BASE}/{booking.id}/propose-price", json={"amount": "800"})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "PROPOSAL_IN_PROGRESS"


def test_reject_closes_negotiation(api, make_booking, client_user, vendor_user):
    booking = make_booking(status=BookingStatus.ACCEPTED)
    api.as_user(vendor_user).post(f"{BASE}/{booking.id}/propose-price", json={"amount": "900"})

    client = api.as_user(client_user)
    r = client.post(f"{BASE}/{booking.id}/reject-price")
    assert r.status_code == 200
    assert r.json()["status"] == "PRICE_REJECTED"
    assert r.json()["adjusted_price"] is None

    # A rejected price closes the negotiation; it is no longer cancellable
    r = client.post(f"{BASE}/{booking.id}/cancel")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INVALID_TRANSITION"


def test_cancel_open_booking(api, make_booking, client_user, vendor_user):
    booking = make_booking(status=BookingStatus.PRICE_APPROVED, final_price=Decimal("550.00"))

    r = api.as_user(vendor_user).post(f"{BASE}/{booking.id}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"

    r = api.as_user(client_user).post(f"{BASE}/{booking.id}/cancel")
    assert r.status_code == 409


def test_list_bookings_with_filters(api, make_booking, client_user, vendor_user):
    make_booking()
    make_booking(status=BookingStatus.ACCEPTED)
    make_booking(status=BookingStatus.CANCELLED)

    r = api.as_user(client_user).get(BASE)
    assert r.status_code == 200
    body = r.json()
    assert body["pagination"] == {"skip": 0, "limit": 20, "total": 3}
    assert body["stats"]["PENDING"] == 1
    assert body["stats"]["PAID"] == 0

    r = api.get(BASE, params={"status": "ACCEPTED"})
    assert [b["status"] for b in r.json()["bookings"]] == ["ACCEPTED"]

    r = api.get(BASE, params={"role": UserType.VENDOR.value})
    assert r.json()["pagination"]["total"] == 0

    r = api.as_user(vendor_user).get(BASE, params={"role": "VENDOR", "limit": 2})
    body = r.json()
    assert body["pagination"]["total"] == 3
    assert len(body["bookings"]) == 2

    r = api.get(BASE, params={"status": "NOPE"})
    assert r.status_code == 422
