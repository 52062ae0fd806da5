"""Signup, login and per-user settings endpoints."""

from airyze.core.security import hash_password, verify_password


def test_signup_returns_user_without_password(client):
    r = client.post(
        "/auth/signup",
        json={"name": "Ayesha", "email": "Ayesha@Test.com", "password": "pw12345", "city": "Karachi"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ayesha@test.com"
    assert body["user"]["city"] == "Karachi"
    assert "password" not in body["user"]


def test_signup_requires_all_fields(client):
    r = client.post("/auth/signup", json={"name": "A", "email": "a@test.com", "password": "pw"})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "All fields are required"}


def test_signup_duplicate_email_is_conflict(client, make_user):
    make_user(email="dup@test.com")
    r = client.post(
        "/auth/signup",
        json={"name": "Again", "email": "dup@test.com", "password": "pw", "city": "Lahore"},
    )
    assert r.status_code == 409
    assert r.json()["error"] == "Email already registered"


def test_login_with_valid_and_invalid_password(client, make_user):
    make_user(email="login@test.com", password="right-pass")

    ok = client.post("/auth/login", json={"email": "login@test.com", "password": "right-pass"})
    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "login@test.com"

    bad = client.post("/auth/login", json={"email": "login@test.com", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "Invalid email or password"

    unknown = client.post("/auth/login", json={"email": "nobody@test.com", "password": "x"})
    assert unknown.status_code == 401


def test_health_profile_round_trip(client, make_user):
    user = make_user()
    profile = {
        "age_group": "60_plus",
        "health_conditions": ["asthma"],
        "activity_level": "light_exercise",
        "primary_city": "Lahore",
    }
    r = client.patch(f"/auth/profile/{user['id']}", json=profile)
    assert r.status_code == 200
    assert r.json() == {"success": True, "health_profile": profile}

    got = client.get(f"/auth/profile/{user['id']}")
    assert got.json()["health_profile"] == profile


def test_health_profile_rejects_unknown_values(client, make_user):
    user = make_user()
    r = client.patch(
        f"/auth/profile/{user['id']}",
        json={"age_group": "ancient", "health_conditions": [], "activity_level": "light_exercise", "primary_city": "X"},
    )
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert "age_group" in r.json()["error"]


def test_profile_for_missing_user_is_404(client):
    assert client.get("/auth/profile/99999").status_code == 404


def test_alert_prefs_defaults_fill_missing_fields(client, make_user):
    user = make_user()
    r = client.patch(f"/auth/alert-prefs/{user['id']}", json={"daily_time": "7:30"})
    assert r.status_code == 200
    assert r.json()["alert_prefs"] == {"on_change": True, "daily_time": "7:30", "instant_button": True}


def test_alert_prefs_rejects_bad_time(client, make_user):
    user = make_user()
    r = client.patch(f"/auth/alert-prefs/{user['id']}", json={"daily_time": "25:00"})
    assert r.status_code == 400
    assert "Invalid daily_time format" in r.json()["error"]


def test_badges_update_and_read(client, make_user):
    user = make_user()
    assert client.get(f"/auth/badges/{user['id']}").json() == {"success": True, "badges": []}

    badges = [
        {"name": "daily_streak_7", "earned": "2026-10-01T10:00:00Z", "progress": 7},
        {"name": "city_explorer", "earned": "2026-10-02T10:00:00Z", "progress": ["Lahore", "Karachi"]},
    ]
    r = client.patch(f"/auth/badges/{user['id']}", json={"badges": badges})
    assert r.status_code == 200
    assert r.json()["badges"] == badges
    assert client.get(f"/auth/badges/{user['id']}").json()["badges"] == badges


def test_badges_require_progress(client, make_user):
    user = make_user()
    r = client.patch(f"/auth/badges/{user['id']}", json={"badges": [{"name": "x", "earned": "now"}]})
    assert r.status_code == 400


def test_track_alert_redirects_to_dashboard(client):
    r = client.get("/auth/track-alert/5", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"].endswith("?alert_opened=true&user_id=5")


def test_require_user_id_on_report_creation(client):
    missing = client.post("/api/user-reports", json={"lat": 1, "lon": 1, "description": "smog"})
    assert missing.status_code == 401
    assert missing.json()["error"] == "Authentication required. Please provide user_id."

    invalid = client.post("/api/user-reports", json={"user_id": "abc", "lat": 1, "lon": 1, "description": "smog"})
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "Invalid user_id provided."

    negative = client.post("/api/user-reports", json={"user_id": -3, "lat": 1, "lon": 1, "description": "smog"})
    assert negative.status_code == 401


def test_password_hashing():
    hashed = hash_password("x" * 100)
    assert verify_password("x" * 100, hashed)
    assert not verify_password("y" * 100, hashed)
    assert not verify_password("secret", "not-a-bcrypt-hash")
