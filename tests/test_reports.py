"""Community reports and report votes."""

import pytest

from airyze.models.report import UserReport
from airyze.services import vote_service


def _create(client, user_id=1, description="Thick smog near the canal", **extra):
    body = {"user_id": user_id, "lat": 31.52, "lon": 74.35, "description": description, **extra}
    r = client.post("/api/user-reports", json=body)
    assert r.status_code == 201, r.text
    return r.json()["report"]


def test_create_report(client):
    report = _create(client, description="  Burning smell downtown  ", photo_url="http://img.test/1.jpg")
    assert report["description"] == "Burning smell downtown"
    assert report["upvotes"] == 0
    assert report["downvotes"] == 0
    assert report["photo_url"] == "http://img.test/1.jpg"


def test_create_report_requires_user(client):
    r = client.post("/api/user-reports", json={"lat": 1, "lon": 1, "description": "x"})
    assert r.status_code == 401
    assert r.json()["error"] == "Authentication required. Please provide user_id."


@pytest.mark.parametrize("body,message", [
    ({"user_id": 1, "lat": 1}, "user_id, lat, lon, and description are required"),
    ({"user_id": 1, "lat": 1, "lon": 1, "description": "   "}, "Description cannot be empty"),
])
def test_create_report_validation(client, body, message):
    r = client.post("/api/user-reports", json=body)
    assert r.status_code == 400
    assert r.json()["error"] == message


def test_list_and_search_reports(client):
    _create(client, description="Dust storm on GT Road")
    _create(client, description="Clear skies at the park")
    all_reports = client.get("/api/user-reports").json()["reports"]
    assert len(all_reports) == 2
    assert all_reports[0]["description"] == "Clear skies at the park"

    found = client.get("/api/user-reports", params={"search": "dust"}).json()["reports"]
    assert [r["description"] for r in found] == ["Dust storm on GT Road"]


def test_vote_toggle_and_switch(client):
    report = _create(client)
    url = f"/api/user-reports/{report['id']}"

    r = client.patch(f"{url}/upvote", json={"user_id": 7})
    assert r.status_code == 200
    assert r.json()["action"] == "added"
    assert r.json()["report"]["upvotes"] == 1

    r = client.post(f"{url}/downvote", json={"user_id": 7})
    assert r.json()["action"] == "switched"
    assert r.json()["report"]["upvotes"] == 0
    assert r.json()["report"]["downvotes"] == 1

    r = client.patch(f"{url}/downvote", json={"user_id": 7})
    assert r.json()["action"] == "removed"
    assert r.json()["report"]["downvotes"] == 0

    vote = client.get(f"{url}/user-vote", params={"user_id": 7}).json()
    assert vote == {"success": True, "vote": None}


def test_votes_from_several_users(client):
    report = _create(client)
    url = f"/api/user-reports/{report['id']}/upvote"
    for user_id in (1, 2, 3):
        client.patch(url, json={"user_id": user_id})
    r = client.patch(f"/api/user-reports/{report['id']}/downvote", json={"user_id": 4})
    assert r.json()["report"]["upvotes"] == 3
    assert r.json()["report"]["downvotes"] == 1

    vote = client.get(f"/api/user-reports/{report['id']}/user-vote", params={"user_id": 2}).json()["vote"]
    assert vote["vote_type"] == "upvote"
    assert vote["user_id"] == 2


def test_vote_on_missing_report(client):
    r = client.patch("/api/user-reports/9999/upvote", json={"user_id": 1})
    assert r.status_code == 404
    assert r.json()["error"] == "Report not found"


def test_vote_requires_user(client):
    report = _create(client)
    r = client.patch(f"/api/user-reports/{report['id']}/upvote", json={})
    assert r.status_code == 401
    r = client.patch(f"/api/user-reports/{report['id']}/upvote", json={"user_id": "abc"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid user_id provided."


@pytest.mark.parametrize("user_id", [1.5, "1.5", -2, True])
def test_vote_rejects_non_integer_user(client, user_id):
    report = _create(client)
    r = client.patch(f"/api/user-reports/{report['id']}/upvote", json={"user_id": user_id})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid user_id provided."


def test_vote_accepts_numeric_string_user(client):
    report = _create(client)
    r = client.patch(f"/api/user-reports/{report['id']}/upvote", json={"user_id": " 3 "})
    assert r.status_code == 200
    vote = client.get(f"/api/user-reports/{report['id']}/user-vote", params={"user_id": 3}).json()["vote"]
    assert vote["user_id"] == 3


def _counts(client, report_id):
    reports = client.get("/api/user-reports").json()["reports"]
    report = next(r for r in reports if r["id"] == report_id)
    return report["upvotes"], report["downvotes"]


def test_concurrent_duplicate_vote_conflicts(client, monkeypatch):
    report = _create(client)
    url = f"/api/user-reports/{report['id']}/upvote"
    assert client.patch(url, json={"user_id": 7}).json()["action"] == "added"

    # a second request that missed the first vote's row hits the unique constraint
    monkeypatch.setattr(vote_service, "get_report_vote", lambda db, report_id, user_id: None)
    r = client.patch(url, json={"user_id": 7})
    assert r.status_code == 409
    assert r.json() == {"success": False, "error": "You've already voted on this report"}
    assert _counts(client, report["id"]) == (1, 0)


def test_vote_counter_never_goes_negative(client, db):
    report = _create(client)
    url = f"/api/user-reports/{report['id']}/upvote"
    client.patch(url, json={"user_id": 7})
    db.get(UserReport, report["id"]).upvotes = 0
    db.commit()

    r = client.patch(url, json={"user_id": 7})
    assert r.status_code == 200
    assert r.json()["action"] == "removed"
    assert r.json()["report"]["upvotes"] == 0
    assert _counts(client, report["id"]) == (0, 0)
