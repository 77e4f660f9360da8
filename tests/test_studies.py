# SPDX-License-Identifier: Apache-2.0
"""Integration tests for studies API. Use TestClient, no running server."""
import uuid

from fastapi.testclient import TestClient

from researchhub.main import app
from tests.conftest import bearer

client = TestClient(app)

BLOCKS = [
    {"block_key": "welcome", "block_type": "welcome", "title": "Hi"},
    {"block_key": "question1", "block_type": "open_question", "settings": {"required": True}},
    {"block_key": "thanks", "block_type": "thank_you"},
]


def _owner():
    user_id = f"researcher-{uuid.uuid4()}"
    return user_id, bearer(user_id, "researcher")


def _create(headers, **overrides):
    payload = {"title": "Checkout usability", "description": "Find friction", "is_public": True, "blocks": BLOCKS}
    payload.update(overrides)
    r = client.post("/studies", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_requires_bearer_token():
    r = client.get("/studies")
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Missing bearer token", "kind": "authentication_error"}


def test_rejects_invalid_token():
    r = client.get("/studies", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["kind"] == "authentication_error"


def test_create_study_draft():
    owner_id, headers = _owner()
    data = _create(headers)
    assert data["status"] == "draft"
    assert data["owner_id"] == owner_id
    assert data["accepted_count"] == 0
    assert [b["block_key"] for b in data["blocks"]] == ["welcome", "question1", "thanks"]
    assert data["blocks"][2]["is_terminal"] is True
    assert data["blocks"][1]["settings"] == {"required": True}


def test_participant_cannot_create_study():
    r = client.post("/studies", json={"title": "x"}, headers=bearer(f"p-{uuid.uuid4()}", "participant"))
    assert r.status_code == 403
    assert r.json()["kind"] == "authorization_error"


def test_create_rejects_misplaced_closing_block():
    _, headers = _owner()
    blocks = [{"block_key": "thanks", "block_type": "thank_you"}, {"block_key": "q", "block_type": "open_question"}]
    r = client.post("/studies", json={"title": "Bad", "blocks": blocks}, headers=headers)
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


def test_create_rejects_duplicate_block_keys():
    _, headers = _owner()
    blocks = [{"block_key": "q", "block_type": "open_question"}, {"block_key": "q", "block_type": "yes_no"}]
    r = client.post("/studies", json={"title": "Bad", "blocks": blocks}, headers=headers)
    assert r.status_code == 400


def test_body_validation_uses_envelope():
    _, headers = _owner()
    r = client.post("/studies", json={"title": ""}, headers=headers)
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["kind"] == "validation_error"
    assert "title" in body["error"]


def test_get_study_404():
    r = client.get(f"/studies/{uuid.uuid4()}", headers=_owner()[1])
    assert r.status_code == 404
    assert r.json()["kind"] == "not_found"


def test_draft_hidden_from_participants():
    _, headers = _owner()
    study = _create(headers)
    r = client.get(f"/studies/{study['id']}", headers=bearer(f"p-{uuid.uuid4()}", "participant"))
    assert r.status_code == 403


def test_activate_and_list_visibility():
    _, headers = _owner()
    study = _create(headers)
    participant = bearer(f"p-{uuid.uuid4()}", "participant")
    listed = [s["id"] for s in client.get("/studies", headers=participant).json()["data"]]
    assert study["id"] not in listed
    r = client.post(f"/studies/{study['id']}/status", json={"status": "active"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "active"
    listed = [s["id"] for s in client.get("/studies", headers=participant).json()["data"]]
    assert study["id"] in listed
    mine = [s["id"] for s in client.get("/studies", params={"mine": True}, headers=headers).json()["data"]]
    assert mine == [study["id"]]


def test_activation_needs_blocks():
    _, headers = _owner()
    study = _create(headers, blocks=[])
    r = client.post(f"/studies/{study['id']}/status", json={"status": "active"}, headers=headers)
    assert r.status_code == 400


def test_invalid_status_transition_is_state_error():
    _, headers = _owner()
    study = _create(headers)
    client.post(f"/studies/{study['id']}/status", json={"status": "closed"}, headers=headers)
    r = client.post(f"/studies/{study['id']}/status", json={"status": "active"}, headers=headers)
    assert r.status_code == 409
    assert r.json()["kind"] == "state_error"


def test_only_owner_updates():
    _, headers = _owner()
    study = _create(headers)
    r = client.patch(f"/studies/{study['id']}", json={"title": "Hijacked"}, headers=_owner()[1])
    assert r.status_code == 403
    r = client.patch(f"/studies/{study['id']}", json={"title": "Renamed", "max_participants": 5}, headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["title"] == "Renamed"
    assert r.json()["data"]["max_participants"] == 5


def test_admin_updates_any_study():
    _, headers = _owner()
    study = _create(headers)
    r = client.patch(f"/studies/{study['id']}", json={"is_public": False}, headers=bearer(f"a-{uuid.uuid4()}", "admin"))
    assert r.status_code == 200
    assert r.json()["data"]["is_public"] is False


def test_replace_blocks_only_in_draft():
    _, headers = _owner()
    study = _create(headers)
    new_blocks = [{"block_key": "only", "block_type": "yes_no"}]
    r = client.put(f"/studies/{study['id']}/blocks", json={"blocks": new_blocks}, headers=headers)
    assert r.status_code == 200
    assert [b["block_key"] for b in r.json()["data"]] == ["only"]
    client.post(f"/studies/{study['id']}/status", json={"status": "active"}, headers=headers)
    r = client.put(f"/studies/{study['id']}/blocks", json={"blocks": BLOCKS}, headers=headers)
    assert r.status_code == 409
    r = client.get(f"/studies/{study['id']}/blocks", headers=headers)
    assert [b["block_key"] for b in r.json()["data"]] == ["only"]


def test_audit_trail_verifies():
    _, headers = _owner()
    study = _create(headers)
    client.patch(f"/studies/{study['id']}", json={"description": "More detail"}, headers=headers)
    client.post(f"/studies/{study['id']}/status", json={"status": "active"}, headers=headers)
    r = client.get(f"/studies/{study['id']}/audit_trail", headers=headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert [e["action_type"] for e in data["entries"]] == ["study_created", "study_updated", "study_status_changed"]
    assert data["verification"]["verified"] is True
    assert data["entries"][1]["previous_hash"] == data["entries"][0]["entry_hash"]


def test_security_headers():
    r = client.get("/system/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
