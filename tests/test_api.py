"""
HTTP-level tests: routes, status codes and the {success, data} envelope.
"""
import time

from tests.conftest import DONOR, HALF_ETH, ONE_ETH, OWNER


def create_campaign(client, contract_id=1, **overrides):
    form = {
        "contractId": str(contract_id),
        "owner": OWNER,
        "title": "T",
        "description": "Fund it",
        "target": ONE_ETH,
        "deadline": str(int(time.time()) + 86400),
        "category": "technology",
    }
    form.update(overrides)
    return client.post("/api/campaigns", data=form)


def donate(client, contract_id=1, tx="0x1", amount=HALF_ETH):
    return client.post("/api/campaigns/donation", json={
        "campaignId": contract_id,
        "donator": DONOR,
        "amount": amount,
        "transactionHash": tx,
    })


# ====================
# Campaigns
# ====================

def test_create_then_donate_is_idempotent(client):
    response = create_campaign(client, 1)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Campaign created successfully"
    assert body["data"]["owner"] == OWNER.lower()
    assert body["data"]["amountCollected"] == "0"
    assert body["data"]["contractId"] == 1

    first = donate(client)
    assert first.status_code == 200
    assert first.json()["message"] == "Donation recorded successfully"
    data = first.json()["data"]
    assert data["amountCollected"] == HALF_ETH
    assert data["totalDonations"] == 1

    again = donate(client)
    assert again.status_code == 200
    assert again.json()["message"] == "Donation already recorded"
    data = again.json()["data"]
    assert data["amountCollected"] == HALF_ETH
    assert data["totalDonations"] == 1
    assert len(data["donators"]) == 1


def test_create_requires_contract_id(client):
    response = create_campaign(client, contractId="")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Contract ID is required"}


def test_create_rejects_bad_category(client):
    response = create_campaign(client, category="gambling")
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["errors"]


def test_duplicate_contract_id_returns_existing(client):
    original = create_campaign(client, 3).json()["data"]

    response = create_campaign(client, 3, title="Other")
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["data"]["campaignId"] == original["campaignId"]
    assert body["data"]["title"] == "T"


def test_create_with_image_upload(client, uploader):
    uploader.url = "https://img.example/campaign_1.png"
    response = client.post(
        "/api/campaigns",
        data={"contractId": "1", "owner": OWNER, "title": "T", "target": ONE_ETH},
        files={"image": ("cover.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 201
    assert response.json()["data"]["image"] == "https://img.example/campaign_1.png"
    assert uploader.calls == [("campaign", "cover.png", 1)]


def test_failed_upload_uses_default_image(client, uploader):
    from app.core.config import DEFAULT_CAMPAIGN_IMAGE

    response = client.post(
        "/api/campaigns",
        data={"contractId": "1", "owner": OWNER, "title": "T"},
        files={"image": ("cover.jpg", b"fake", "image/jpeg")},
    )
    assert response.status_code == 201
    assert response.json()["data"]["image"] == DEFAULT_CAMPAIGN_IMAGE


def test_non_image_upload_rejected(client, uploader):
    response = client.post(
        "/api/campaigns",
        data={"contractId": "1", "owner": OWNER, "title": "T"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Only image files are allowed"
    assert uploader.calls == []


def test_list_campaigns(client):
    create_campaign(client, 1, category="health")
    create_campaign(client, 2, category="education")

    body = client.get("/api/campaigns").json()
    assert body["success"] is True
    assert body["count"] == 2
    assert [c["contractId"] for c in body["data"]] == [2, 1]

    health = client.get("/api/campaigns", params={"category": "health"}).json()
    assert health["count"] == 1
    assert health["data"][0]["contractId"] == 1


def test_get_campaign_by_contract_id_and_uuid(client):
    created = create_campaign(client, 4).json()["data"]

    by_contract = client.get("/api/campaigns/4")
    assert by_contract.status_code == 200
    assert by_contract.json()["data"]["campaignId"] == created["campaignId"]

    by_id = client.get(f"/api/campaigns/{created['campaignId']}")
    assert by_id.status_code == 200
    assert by_id.json()["data"]["contractId"] == 4


def test_get_missing_campaign(client):
    assert client.get("/api/campaigns/99").status_code == 404
    response = client.get("/api/campaigns/not-a-campaign")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Campaign not found"}


def test_negative_decimal_donation_rejected(client):
    create_campaign(client, 1)
    donate(client, 1, tx="0x1", amount="100")

    response = donate(client, 1, tx="0x2", amount="-50.5")
    assert response.status_code == 400
    assert response.json()["success"] is False

    data = client.get("/api/campaigns/1").json()["data"]
    assert data["amountCollected"] == "100"
    assert data["totalDonations"] == 1


def test_donation_retry_with_different_hash_case(client):
    create_campaign(client, 1, transactionHash="0xAAAA")
    first = donate(client, 1, tx="0xABCDEF", amount="100")
    again = donate(client, 1, tx="0xabcdef", amount="100")

    assert first.json()["message"] == "Donation recorded successfully"
    assert again.json()["message"] == "Donation already recorded"
    data = again.json()["data"]
    assert data["amountCollected"] == "100"
    assert data["totalDonations"] == 1
    assert data["transactionHash"] == "0xaaaa"


def test_out_of_range_deadline_rejected(client):
    response = create_campaign(client, 1, deadline="99999999999999999999")
    assert response.status_code == 400
    assert response.json()["message"] == "Deadline must be a unix timestamp in seconds"


def test_donation_to_unknown_campaign(client):
    response = donate(client, contract_id=77)
    assert response.status_code == 404


def test_donation_missing_fields(client):
    response = client.post("/api/campaigns/donation", json={"campaignId": 1})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_sync_without_chain_is_upstream_error(client):
    response = client.get("/api/campaigns/sync")
    assert response.status_code == 500
    assert response.json()["message"] == "Chain gateway not configured"


# ====================
# Users
# ====================

def test_unknown_user_profile(client):
    response = client.get("/api/users/0xNOBODY")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User profile not found, returning default data"
    assert body["data"]["address"] == "0xnobody"
    assert body["data"]["totalDonated"] == 0
    assert body["data"]["campaignsCreated"] == []


def test_update_profile(client, uploader):
    uploader.url = "https://img.example/avatar.png"
    response = client.put(
        f"/api/users/{OWNER}",
        data={"name": "Ada", "email": "ada@example.com", "bio": "Builder"},
        files={"avatar": ("me.png", b"fake", "image/png")},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Profile updated successfully"
    assert body["data"]["name"] == "Ada"
    assert body["data"]["avatar"] == "https://img.example/avatar.png"

    profile = client.get(f"/api/users/{OWNER}").json()
    assert "message" not in profile
    assert profile["data"]["email"] == "ada@example.com"


def test_update_profile_rejects_gif_avatar(client):
    response = client.put(
        f"/api/users/{OWNER}",
        data={"name": "Ada"},
        files={"avatar": ("me.gif", b"fake", "image/gif")},
    )
    assert response.status_code == 400


def test_update_profile_invalid_email(client):
    response = client.put(f"/api/users/{OWNER}", data={"email": "nope"})
    assert response.status_code == 400


def test_user_stats_and_campaigns(client):
    create_campaign(client, 1)
    donate(client, 1, tx="0xa")

    stats = client.get(f"/api/users/{DONOR}/stats").json()["data"]
    assert stats["campaignsDonated"] == 1
    assert stats["totalDonated"] == 5e17

    created = client.get(f"/api/users/{OWNER}/campaigns").json()
    assert created["type"] == "created"
    assert created["count"] == 1

    donated = client.get(f"/api/users/{DONOR}/campaigns", params={"type": "donated"}).json()
    assert donated["type"] == "donated"
    assert [c["contractId"] for c in donated["data"]] == [1]

    assert client.get(f"/api/users/{DONOR}/campaigns", params={"type": "liked"}).status_code == 400


# ====================
# System
# ====================

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["database_ok"] is True
    assert body["chain"]["configured"] is False
    assert body["chain"]["state"] == "disconnected"


def test_unknown_route(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}
