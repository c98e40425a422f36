from eventasap.models import NotificationType
from eventasap.utils.notifications import create_notification

BASE = "/api/v1/notifications"


def seed(db, user, count=3):
    ids = []
    for n in range(count):
        result = create_notification(db, user.id, NotificationType.BOOKING_REQUEST, f"Request {n}")
        ids.append(result.notification_id)
    return ids


def test_list_newest_first_with_unread_count(api, db, vendor_user, client_user):
    ids = seed(db, vendor_user)
    seed(db, client_user, count=1)
    vendor = api.as_user(vendor_user)

    r = vendor.get(BASE)
    assert r.status_code == 200
    assert [n["id"] for n in r.json()] == list(reversed(ids))
    assert r.json()[0]["title"] == "New Booking Request"

    assert vendor.get(f"{BASE}/unread-count").json() == {"unread": 3}

    r = vendor.get(BASE, params={"skip": 1, "limit": 1})
    assert [n["id"] for n in r.json()] == [ids[1]]


def test_mark_read_and_read_all(api, db, vendor_user):
    ids = seed(db, vendor_user)
    vendor = api.as_user(vendor_user)

    r = vendor.put(f"{BASE}/{ids[0]}/read")
    assert r.status_code == 200
    assert r.json()["is_read"] is True
    assert vendor.get(f"{BASE}/unread-count").json() == {"unread": 2}
    assert len(vendor.get(BASE, params={"unread_only": True}).json()) == 2

    r = vendor.put(f"{BASE}/read-all")
    assert r.status_code == 200
    assert r.json() == {"updated": 2}
    assert vendor.get(f"{BASE}/unread-count").json() == {"unread": 0}


def test_cannot_read_someone_elses_notification(api, db, vendor_user, client_user):
    (note_id,) = seed(db, vendor_user, count=1)

    r = api.as_user(client_user).put(f"{BASE}/{note_id}/read")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"

    r = api.put(f"{BASE}/9999/read")
    assert r.status_code == 404
