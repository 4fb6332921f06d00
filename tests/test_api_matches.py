import pytest
from conftest import auth_headers

pytestmark = pytest.mark.anyio


async def test_list_and_detail(client, make_user, form_match):
    alice = await make_user(first_name="Alice")
    bob = await make_user(first_name="Bob")
    match = await form_match(alice, bob)

    listing = await client.get("/matches", headers=auth_headers(alice.id))
    assert listing.status_code == 200
    body = listing.json()
    assert body["message"] == "Matches retrieved successfully"
    assert body["pagination"]["total"] == 1
    item = body["data"][0]
    assert item["id"] == match.id
    assert item["user"]["firstName"] == "Bob"
    assert item["hasConversation"] is False
    assert item["messageCount"] == 0

    detail = await client.get(f"/matches/{match.id}", headers=auth_headers(bob.id))
    assert detail.status_code == 200
    assert detail.json()["data"]["match"]["user"]["id"] == alice.id


async def test_detail_errors(client, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    outsider = await make_user()
    match = await form_match(alice, bob)

    forbidden = await client.get(f"/matches/{match.id}", headers=auth_headers(outsider.id))
    missing = await client.get("/matches/98765", headers=auth_headers(alice.id))

    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "You are not part of this match"
    assert missing.status_code == 404
    assert missing.json()["message"] == "Match not found"


async def test_unmatch(client, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    match = await form_match(alice, bob)

    response = await client.request(
        "DELETE", f"/matches/{match.id}", json={"reason": "moved away"}, headers=auth_headers(alice.id)
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Unmatched successfully"

    again = await client.delete(f"/matches/{match.id}", headers=auth_headers(bob.id))
    assert again.status_code == 400
    assert again.json()["message"] == "Match is already inactive"

    ended = await client.get("/matches?status=unmatched", headers=auth_headers(bob.id))
    item = ended.json()["data"][0]
    assert item["status"] == "unmatched"
    assert item["unmatchedBy"] == alice.id
    assert item["unmatchReason"] == "moved away"

    assert (await client.get("/matches", headers=auth_headers(bob.id))).json()["data"] == []


async def test_unmatch_reason_too_long(client, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    match = await form_match(alice, bob)

    response = await client.request(
        "DELETE", f"/matches/{match.id}", json={"reason": "x" * 201}, headers=auth_headers(alice.id)
    )

    assert response.status_code == 400


async def test_block(client, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    match = await form_match(alice, bob)

    response = await client.post(f"/matches/{match.id}/block", headers=auth_headers(alice.id))
    assert response.status_code == 200

    blocked = await client.get("/matches?status=blocked", headers=auth_headers(alice.id))
    assert [m["id"] for m in blocked.json()["data"]] == [match.id]


async def test_stats(client, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    await form_match(alice, bob)
    await form_match(carol, alice)

    response = await client.get("/matches/stats", headers=auth_headers(alice.id))

    assert response.status_code == 200
    assert response.json()["data"]["stats"] == {
        "totalMatches": 2,
        "matchesWithConversation": 0,
        "matchesWithoutConversation": 2,
        "recentMatches": 2,
    }


async def test_invalid_status_filter(client, make_user):
    alice = await make_user()
    response = await client.get("/matches?status=pending", headers=auth_headers(alice.id))
    assert response.status_code == 400


async def test_health_and_metrics(client, make_user):
    alice = await make_user()
    bob = await make_user()
    await client.post("/swipes", json={"swipedUserId": bob.id, "action": "like"}, headers=auth_headers(alice.id))

    health = await client.get("/health/")
    db = await client.get("/health/db")
    redis = await client.get("/health/redis")
    metrics = await client.get("/metrics")

    assert health.json() == {"status": "healthy"}
    assert db.json()["database"] == "connected"
    assert redis.json()["redis"] == "connected"
    assert metrics.status_code == 200
    assert "swipes_total" in metrics.text
