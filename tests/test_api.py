"""HTTP tests: status codes and payload shapes of the workflow endpoints."""

from decimal import Decimal

import pytest

from app.models.audit_log import AuditLog


@pytest.fixture
def workflow(make_stage, make_threshold, make_turn):
    stages = {
        "draft": make_stage("draft", sequence=1, auto_status="DRAFT", is_default=True),
        "inspection": make_stage("inspection", sequence=3),
        "scope_review": make_stage("scope_review", sequence=4, requires_approval=True),
    }
    make_threshold("dfo", 3000, "9999.99")
    make_threshold("ho", 10000)
    turn = make_turn(stage=stages["inspection"], estimated_cost=5500)
    return {"stages": stages, "turn": turn}


# ---------------------------------------------------------------------------
# Auth and health
# ---------------------------------------------------------------------------

def test_health(client):
    assert client.get("/health").json() == {"ok": True, "service": "turns-backend"}


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/approvals"),
        ("post", "/turns/abc/transition"),
        ("get", "/audit-logs"),
        ("get", "/turn-stages"),
    ],
)
def test_requests_without_token_are_unauthorized(anonymous_client, method, path):
    response = getattr(anonymous_client, method)(path)
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Turns
# ---------------------------------------------------------------------------

def test_create_turn_returns_201(client, make_stage, make_property):
    make_stage("draft", sequence=1, auto_status="DRAFT", is_default=True)
    prop = make_property()

    response = client.post("/turns", json={"propertyId": prop.id, "estimatedCost": 1200, "priority": "urgent"})

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "draft"
    assert body["priority"] == "urgent"
    assert body["property"]["address"] == "12 Maple St"


def test_create_turn_for_missing_property_is_404(client):
    response = client.post("/turns", json={"propertyId": 404})
    assert response.status_code == 404
    assert response.json() == {"detail": "Property not found"}


def test_transition_endpoint(client, workflow):
    turn, stages = workflow["turn"], workflow["stages"]

    response = client.post(
        f"/turns/{turn.id}/transition",
        json={"toStageId": stages["scope_review"].id, "reason": "Bids in"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["turn"]["stage_id"] == stages["scope_review"].id
    assert body["turn"]["needs_dfo_approval"] is True
    assert body["stage"]["key"] == "scope_review"
    assert body["transition_history"]["from_stage_id"] == stages["inspection"].id

    history = client.get(f"/turns/{turn.id}/history").json()
    assert len(history) == 1
    assert history[0]["transition_reason"] == "Bids in"


@pytest.mark.parametrize("payload", [None, {}, {"toStageId": "  "}])
def test_transition_without_target_is_400(client, workflow, payload):
    turn = workflow["turn"]
    if payload is None:
        response = client.post(f"/turns/{turn.id}/transition")
    else:
        response = client.post(f"/turns/{turn.id}/transition", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Target stage ID is required"


def test_transition_unknown_ids_are_404(client, workflow):
    stages = workflow["stages"]
    assert client.post("/turns/nope/transition", json={"toStageId": stages["draft"].id}).status_code == 404
    response = client.post(f"/turns/{workflow['turn'].id}/transition", json={"toStageId": "nope"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Stage not found"


def test_get_unknown_turn_is_404(client):
    assert client.get("/turns/nope").status_code == 404


# ---------------------------------------------------------------------------
# Approvals
# ---------------------------------------------------------------------------

def test_request_approvals_201_then_200(client, workflow):
    turn = workflow["turn"]

    first = client.post("/approvals", json={"turnId": turn.id, "amount": 5500})
    assert first.status_code == 201
    created = first.json()
    assert [a["type"] for a in created] == ["dfo"]
    assert Decimal(created[0]["amount"]) == Decimal("5500")
    assert created[0]["requested_by"] == "user-pm"

    second = client.post("/approvals", json={"turnId": turn.id, "amount": 5500})
    assert second.status_code == 200
    assert second.json() == {"message": "No approvals needed for this amount"}


@pytest.mark.parametrize("payload", [{}, {"turnId": "x"}, {"amount": 10}])
def test_request_approvals_missing_fields_is_400(client, payload):
    response = client.post("/approvals", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Turn ID and amount are required"


def test_request_approvals_for_unknown_turn_is_404(client, workflow):
    response = client.post("/approvals", json={"turnId": "missing", "amount": 5500})
    assert response.status_code == 404
    assert response.json() == {"detail": "Turn not found"}


def test_decide_approval_flow(client, workflow):
    turn = workflow["turn"]
    approval_id = client.post("/approvals", json={"turnId": turn.id, "amount": 5500}).json()[0]["id"]

    missing_reason = client.put(f"/approvals/{approval_id}", json={"action": "reject"})
    assert missing_reason.status_code == 400

    rejected = client.put(
        f"/approvals/{approval_id}",
        json={"action": "REJECT", "rejectionReason": "insufficient documentation"},
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["rejection_reason"] == "insufficient documentation"

    again = client.put(f"/approvals/{approval_id}", json={"action": "approve"})
    assert again.status_code == 400
    assert again.json()["detail"] == "Approval has already been processed"

    listed = client.get("/approvals", params={"turn_id": turn.id, "status": "rejected"}).json()
    assert [a["id"] for a in listed] == [approval_id]


def test_decide_without_body_is_400(client):
    assert client.put("/approvals/anything").status_code == 400


def test_cancel_approval(client, workflow):
    turn = workflow["turn"]
    approval_id = client.post("/approvals", json={"turnId": turn.id, "amount": 5500}).json()[0]["id"]

    response = client.delete(f"/approvals/{approval_id}")
    assert response.status_code == 200
    assert response.json() == {"message": "Approval cancelled successfully"}

    turn_body = client.get(f"/turns/{turn.id}").json()
    assert turn_body["needs_dfo_approval"] is False
    assert client.delete(f"/approvals/{approval_id}").status_code == 400
    assert client.delete("/approvals/unknown").status_code == 404


# ---------------------------------------------------------------------------
# Thresholds, stages and audit logs
# ---------------------------------------------------------------------------

def test_threshold_crud(client):
    created = client.post(
        "/approval-thresholds",
        json={"name": "Regional", "minAmount": 500, "maxAmount": 2999.99, "approvalType": "dfo"},
    )
    assert created.status_code == 201
    threshold_id = created.json()["id"]

    updated = client.patch(f"/approval-thresholds/{threshold_id}", json={"maxAmount": 2500})
    assert updated.status_code == 200
    assert Decimal(updated.json()["max_amount"]) == Decimal("2500")

    assert client.delete(f"/approval-thresholds/{threshold_id}").status_code == 200
    active = client.get("/approval-thresholds", params={"include_inactive": False}).json()
    assert active == []
    assert client.delete("/approval-thresholds/999").status_code == 404


def test_create_threshold_missing_fields_is_400(client):
    response = client.post("/approval-thresholds", json={"name": "Incomplete"})
    assert response.status_code == 400


def test_turn_stages_endpoints(client):
    created = client.post("/turn-stages", json={"key": "punch_list", "name": "Punch List", "sequence": 5,
                                                "autoStatus": "IN_PROGRESS"})
    assert created.status_code == 201
    assert created.json()["auto_status"] == "IN_PROGRESS"

    duplicate = client.post("/turn-stages", json={"key": "punch_list", "name": "Again"})
    assert duplicate.status_code == 400

    assert [s["key"] for s in client.get("/turn-stages").json()] == ["punch_list"]


def test_audit_logs_filters(client, workflow, db_session):
    turn, stages = workflow["turn"], workflow["stages"]
    client.post(f"/turns/{turn.id}/transition", json={"toStageId": stages["draft"].id})

    logs = client.get("/audit-logs", params={"turn_id": turn.id, "table_name": "turns"}).json()
    assert len(logs) == 1
    assert logs[0]["action"] == "UPDATE"
    assert logs[0]["user_email"] == "pm@example.com"
    assert logs[0]["metadata"]["to_stage_id"] == stages["draft"].id

    assert client.get("/audit-logs", params={"actor": "nobody@example.com"}).json() == []
    assert client.get("/audit-logs", params={"start_date": "not-a-date"}).status_code == 400
    assert db_session.query(AuditLog).count() >= 1
