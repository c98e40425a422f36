def register(api, email="new@test.com", **extra):
    payload = {
        "email": email,
        "password": "s3cret-pass",
        "first_name": "New",
        "last_name": "User",
        **extra,
    }
    return api.post("/auth/register", json=payload)


def test_register_login_and_me(api):
    r = register(api, email="New@Test.com", user_type="VENDOR", business_name="Beats Ltd")
    assert r.status_code == 201
    body = r.json()
    assert body["email"] == "new@test.com"
    assert body["user_type"] == "VENDOR"
    assert body["is_active"] is True
    assert "password" not in body

    r = api.post("/auth/login", data={"username": "NEW@test.com", "password": "s3cret-pass"})
    assert r.status_code == 200
    token = r.json()
    assert token["token_type"] == "bearer"

    r = api.get("/auth/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert r.status_code == 200
    assert r.json()["business_name"] == "Beats Ltd"


def test_duplicate_email_conflicts(api):
    assert register(api).status_code == 201
    r = register(api)
    assert r.status_code == 409


def test_register_validates_payload(api):
    r = register(api, email="not-an-email")
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert "email" in r.json()["detail"]["field_errors"]


def test_bad_password_is_rejected(api):
    register(api)
    r = api.post("/auth/login", data={"username": "new@test.com", "password": "wrong-pass"})
    assert r.status_code == 401


def test_protected_routes_require_token(api):
    assert api.get("/auth/me").status_code == 401
    assert api.get("/api/v1/bookings").status_code == 401
    r = api.get("/api/v1/bookings", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


def test_healthz(api):
    r = api.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
