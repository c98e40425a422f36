import hashlib
import hmac
import json
import time
from decimal import Decimal

from eventasap.core.config import settings
from eventasap.models import Booking, BookingStatus, LedgerEntry, PaymentStatus

INTENT = "/api/v1/payments/intent"
CONFIRM = "/api/v1/payments/confirm"
WEBHOOK = "/api/v1/payments/webhook"


def signed(event, secret=None, timestamp=None):
    body = json.dumps(event).encode()
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(
        (secret or settings.STRIPE_WEBHOOK_SECRET).encode(),
        f"{ts}.".encode() + body,
        hashlib.sha256,
    ).hexdigest()
    return body, {"Stripe-Signature": f"t={ts},v1={digest}", "Content-Type": "application/json"}


def test_intent_and_confirm_pay_the_booking(api, db, make_booking, client_user, provider):
    booking = make_booking(status=BookingStatus.PRICE_APPROVED, final_price=Decimal("750.00"))
    client = api.as_user(client_user)

    r = client.post(INTENT, json={"booking_id": booking.id, "expected_amount": "750.00"})
    assert r.status_code == 201
    intent = r.json()
    assert intent["client_secret"] == "pi_test_1_secret_abc"
    assert Decimal(intent["amount"]) == Decimal("750")
    assert intent["currency"] == "GBP"

    r = client.post(CONFIRM, json={"payment_id": intent["payment_id"], "provider_status": "SUCCEEDED"})
    assert r.status_code == 200
    assert r.json() == {
        "payment_id": intent["payment_id"],
        "payment_status": "SUCCEEDED",
        "booking_status": "PAID",
    }

    # Repeating the confirmation changes nothing
    r = client.post(CONFIRM, json={"payment_id": intent["payment_id"], "provider_status": "SUCCEEDED"})
    assert r.status_code == 200
    assert db.query(LedgerEntry).count() == 3

    r = client.get("/api/v1/payments")
    payments = r.json()
    assert len(payments) == 1
    assert Decimal(payments[0]["platform_fee"]) == Decimal("225")
    assert Decimal(payments[0]["vendor_payout"]) == Decimal("525")
    assert payments[0]["payout_status"] == "HELD"


def test_intent_errors(api, make_booking, client_user, vendor_user):
    pending = make_booking()
    accepted = make_booking(status=BookingStatus.ACCEPTED)

    r = api.as_user(client_user).post(INTENT, json={"booking_id": pending.id})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "BOOKING_NOT_PAYABLE"

    r = api.post(INTENT, json={"booking_id": accepted.id, "expected_amount": "450.00"})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "AMOUNT_MISMATCH"
    assert r.json()["detail"]["field_errors"] == {"expected_amount": "amount_mismatch"}

    r = api.post(INTENT, json={"booking_id": 9999})
    assert r.status_code == 404

    r = api.as_user(vendor_user).post(INTENT, json={"booking_id": accepted.id})
    assert r.status_code == 403


def test_provider_outage_returns_502(api, make_booking, client_user, provider):
    booking = make_booking(status=BookingStatus.ACCEPTED)
    provider.fail_create = True

    r = api.as_user(client_user).post(INTENT, json={"booking_id": booking.id})

    assert r.status_code == 502
    assert r.json()["detail"]["code"] == "PROVIDER_ERROR"


def test_confirm_is_checked_against_provider(api, db, make_booking, client_user, vendor_user, provider):
    booking = make_booking(status=BookingStatus.ACCEPTED)
    client = api.as_user(client_user)
    payment_id = client.post(INTENT, json={"booking_id": booking.id}).json()["payment_id"]
    provider.remote_status = PaymentStatus.PENDING

    r = client.post(CONFIRM, json={"payment_id": payment_id, "provider_status": "SUCCEEDED"})
    assert r.status_code == 502
    db.expire_all()
    assert db.get(Booking, booking.id).status == BookingStatus.ACCEPTED

    r = api.as_user(vendor_user).post(CONFIRM, json={"payment_id": payment_id, "provider_status": "SUCCEEDED"})
    assert r.status_code == 403

    r = api.as_user(client_user).post(CONFIRM, json={"payment_id": payment_id, "provider_status": "FAILED"})
    assert r.status_code == 200
    assert r.json()["payment_status"] == "FAILED"
    assert r.json()["booking_status"] == "ACCEPTED"


def test_webhook_applies_signed_event_once(api, db, make_booking, client_user):
    booking = make_booking(status=BookingStatus.ACCEPTED)
    client = api.as_user(client_user)
    client.post(INTENT, json={"booking_id": booking.id})
    event = {"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_test_1"}}}

    body, headers = signed(event)
    r = api.post(WEBHOOK, content=body, headers=headers)
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["booking_status"] == "PAID"

    r = api.post(WEBHOOK, content=body, headers=headers)
    assert r.status_code == 200
    assert db.query(LedgerEntry).count() == 3


def test_webhook_rejects_bad_signature(api):
    event = {"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_test_1"}}}

    body, headers = signed(event, secret="whsec_wrong")
    r = api.post(WEBHOOK, content=body, headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"]["field_errors"] == {"signature": "invalid"}

    r = api.post(WEBHOOK, content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 400

    body, headers = signed(event, timestamp=int(time.time()) - 3600)
    assert api.post(WEBHOOK, content=body, headers=headers).status_code == 400


def test_webhook_ignores_unrelated_events(api):
    body, headers = signed({"type": "customer.created", "data": {"object": {"id": "cus_1"}}})
    r = api.post(WEBHOOK, content=body, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"status": "ignored"}

    body, headers = signed({"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_unknown"}}})
    assert api.post(WEBHOOK, content=body, headers=headers).json() == {"status": "ignored"}


def test_webhook_success_for_closed_booking_is_ignored(api, db, make_booking, client_user):
    booking = make_booking(status=BookingStatus.ACCEPTED)
    api.as_user(client_user).post(INTENT, json={"booking_id": booking.id})
    api.as_user(client_user).post(f"/api/v1/bookings/{booking.id}/cancel")

    body, headers = signed({"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_test_1"}}})
    r = api.post(WEBHOOK, content=body, headers=headers)

    assert r.status_code == 200
    assert r.json() == {"status": "ignored", "reason": "BOOKING_NOT_PAYABLE"}
    db.expire_all()
    assert db.get(Booking, booking.id).status == BookingStatus.CANCELLED


def test_webhook_refuses_intent_opened_before_price_change(api, db, make_booking, client_user, vendor_user):
    booking = make_booking(status=BookingStatus.ACCEPTED)
    api.as_user(client_user).post(INTENT, json={"booking_id": booking.id})
    api.as_user(vendor_user).post(f"/api/v1/bookings/{booking.id}/propose-price", json={"amount": "750.00"})
    api.as_user(client_user).post(f"/api/v1/bookings/{booking.id}/approve-price")

    body, headers = signed({"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_test_1"}}})
    r = api.post(WEBHOOK, content=body, headers=headers)

    assert r.status_code == 200
    assert r.json() == {"status": "ignored", "reason": "AMOUNT_MISMATCH"}
    db.expire_all()
    stored = db.get(Booking, booking.id)
    assert stored.status == BookingStatus.PRICE_APPROVED
    assert stored.final_price == Decimal("750.00")
    assert db.query(LedgerEntry).count() == 0
