"""Tests for the stage transition engine and turn creation."""

import re

import pytest

from app.core.seed import DEFAULT_TURN_STAGES, seed_stages, seed_thresholds
from app.models.approval import Approval
from app.models.audit_log import AuditLog
from app.models.turn import Turn
from app.models.turn_stage import TurnStage
from app.models.turn_stage_history import TurnStageHistory
from app.services.approvals import NO_APPROVALS_NEEDED, ApprovalGate, ApprovalRequestResult
from app.services.errors import NotFoundError, ValidationError
from app.services.stages import StageTransitionEngine, create_stage, default_stage, list_stages


@pytest.fixture
def engine(db_session, audit, notifier, clock):
    gate = ApprovalGate(db_session, audit, notifier, now_ms=clock)
    return StageTransitionEngine(db_session, audit, gate, now_ms=clock)


@pytest.fixture
def stages(make_stage):
    return {
        "draft": make_stage("draft", sequence=1, auto_status="DRAFT", is_default=True),
        "secure_property": make_stage("secure_property", sequence=2, auto_status="PENDING"),
        "inspection": make_stage("inspection", sequence=3),
        "scope_review": make_stage("scope_review", sequence=4, requires_approval=True),
        "change_order": make_stage("change_order", sequence=7, requires_approval=True, auto_status="ON_HOLD"),
    }


# ---------------------------------------------------------------------------
# transition
# ---------------------------------------------------------------------------

def test_first_transition_has_no_from_stage(db_session, engine, stages, make_turn, manager):
    turn = make_turn()

    result = engine.transition(turn.id, stages["secure_property"].id, actor=manager, reason="Keys received")

    history = db_session.query(TurnStageHistory).filter(TurnStageHistory.turn_id == turn.id).all()
    assert len(history) == 1
    assert history[0].from_stage_id is None
    assert history[0].to_stage_id == stages["secure_property"].id
    assert history[0].duration_in_stage is None
    assert history[0].transitioned_by == "pm@example.com"
    assert history[0].transition_reason == "Keys received"

    assert result.turn.stage_id == stages["secure_property"].id
    assert result.turn.status == "secure_property"
    assert result.from_stage_id is None
    assert db_session.query(Approval).count() == 0


def test_transition_records_time_in_previous_stage(db_session, engine, stages, make_turn, clock):
    turn = make_turn(stage=stages["secure_property"], stage_entered_at=clock.now)
    clock.advance(90_000)

    result = engine.transition(turn.id, stages["inspection"].id)

    assert result.duration_in_previous_stage == 90_000
    assert result.history.duration_in_stage == 90_000
    assert result.from_stage_id == stages["secure_property"].id
    assert result.turn.stage_entered_at == clock.now


def test_stage_without_auto_status_keeps_turn_status(engine, stages, make_turn):
    turn = make_turn(stage=stages["secure_property"], status="secure_property")

    result = engine.transition(turn.id, stages["inspection"].id)

    assert result.turn.status == "secure_property"


@pytest.mark.parametrize(
    "stage_key,expected",
    [("draft", "draft"), ("secure_property", "secure_property"), ("change_order", "change_order")],
)
def test_auto_status_drives_turn_status(engine, stages, make_turn, stage_key, expected):
    turn = make_turn(status="in_progress")

    result = engine.transition(turn.id, stages[stage_key].id)

    assert result.turn.status == expected


def test_entering_approval_stage_requests_approvals(db_session, engine, stages, make_turn, make_threshold):
    make_threshold("dfo", 0, 3000)
    make_threshold("ho", 3000)
    turn = make_turn(stage=stages["inspection"], estimated_cost=5500)

    engine.transition(turn.id, stages["scope_review"].id)

    approvals = db_session.query(Approval).filter(Approval.turn_id == turn.id).all()
    assert [a.type for a in approvals] == ["ho"]
    assert approvals[0].notes == "Approval required for stage: Scope Review"
    turn = db_session.get(Turn, turn.id)
    assert turn.needs_ho_approval is True
    assert turn.needs_dfo_approval is False


def test_approval_stage_without_cost_requests_nothing(db_session, engine, stages, make_turn, make_threshold):
    make_threshold("dfo", 0)
    turn = make_turn()

    engine.transition(turn.id, stages["scope_review"].id)

    assert db_session.query(Approval).count() == 0


def test_failed_approval_request_keeps_transition(db_session, audit, stages, make_turn, caplog):
    class FailingGate:
        def request_approvals(self, *args, **kwargs):
            raise RuntimeError("threshold lookup failed")

    turn = make_turn(estimated_cost=5000)
    engine = StageTransitionEngine(db_session, audit, FailingGate())

    result = engine.transition(turn.id, stages["scope_review"].id)

    assert result.turn.stage_id == stages["scope_review"].id
    assert db_session.query(TurnStageHistory).count() == 1
    assert "Failed to create approval request" in caplog.text


def test_reload_failure_after_approval_request_keeps_transition(db_session, audit, stages, make_turn,
                                                              monkeypatch, caplog):
    class QuietGate:
        def request_approvals(self, *args, **kwargs):
            return ApprovalRequestResult(created=[], message=NO_APPROVALS_NEEDED)

    def broken_refresh(*args, **kwargs):
        raise RuntimeError("connection lost")

    turn = make_turn(estimated_cost=5000)
    engine = StageTransitionEngine(db_session, audit, QuietGate())
    monkeypatch.setattr(db_session, "refresh", broken_refresh)

    result = engine.transition(turn.id, stages["scope_review"].id)

    monkeypatch.undo()
    assert result.to_stage_id == stages["scope_review"].id
    assert db_session.query(TurnStageHistory).count() == 1
    assert "Failed to create approval request" in caplog.text


def test_transition_is_audited_with_context(db_session, engine, stages, make_turn, manager):
    turn = make_turn()

    engine.transition(turn.id, stages["secure_property"].id, actor=manager, reason="go")

    log = db_session.query(AuditLog).filter(AuditLog.table_name == "turns").one()
    assert log.action == "UPDATE"
    assert log.turn_id == turn.id
    assert log.property_id == turn.property_id
    assert {"stage_id", "stage_entered_at", "status"} <= set(log.changed_fields)
    assert log.context == "Stage transition: initial to Secure Property"
    assert log.metadata_["reason"] == "go"


def test_transition_requires_target(engine, make_turn):
    turn = make_turn()
    with pytest.raises(ValidationError, match="Target stage ID is required"):
        engine.transition(turn.id, None)


def test_transition_unknown_turn_or_stage(db_session, engine, stages, make_turn):
    with pytest.raises(NotFoundError, match="Turn not found"):
        engine.transition("missing", stages["draft"].id)

    turn = make_turn()
    with pytest.raises(NotFoundError, match="Stage not found"):
        engine.transition(turn.id, "missing")
    assert db_session.query(TurnStageHistory).count() == 0
    assert db_session.query(AuditLog).count() == 0


def test_history_is_ordered_oldest_first(engine, stages, make_turn, clock):
    turn = make_turn()
    engine.transition(turn.id, stages["secure_property"].id)
    clock.advance(1_000)
    engine.transition(turn.id, stages["inspection"].id)

    rows = engine.history(turn.id)

    assert [r.to_stage_id for r in rows] == [stages["secure_property"].id, stages["inspection"].id]
    assert rows[1].from_stage_id == stages["secure_property"].id
    assert rows[1].duration_in_stage == 1_000


# ---------------------------------------------------------------------------
# create_turn
# ---------------------------------------------------------------------------

def test_create_turn_starts_in_default_stage(db_session, engine, stages, make_property, manager, clock):
    prop = make_property()

    turn = engine.create_turn(property_id=prop.id, actor=manager, estimated_cost="4200.50", priority="high")

    assert re.fullmatch(r"TURN-\d{4}-\d{6}", turn.turn_number)
    assert turn.stage_id == stages["draft"].id
    assert turn.stage_entered_at == clock.now
    assert turn.status == "draft"
    assert turn.priority == "high"
    log = db_session.query(AuditLog).filter(AuditLog.record_id == turn.id).one()
    assert log.action == "CREATE"


def test_create_turn_numbers_are_unique(engine, stages, make_property):
    prop = make_property()
    first = engine.create_turn(property_id=prop.id)
    second = engine.create_turn(property_id=prop.id)
    assert first.turn_number != second.turn_number


def test_create_turn_validation(engine, stages, make_property):
    with pytest.raises(NotFoundError, match="Property not found"):
        engine.create_turn(property_id=999)
    prop = make_property()
    with pytest.raises(ValidationError, match="Unknown priority"):
        engine.create_turn(property_id=prop.id, priority="whenever")
    with pytest.raises(NotFoundError, match="Vendor not found"):
        engine.create_turn(property_id=prop.id, vendor_id="no-such-vendor")


# ---------------------------------------------------------------------------
# Stage configuration
# ---------------------------------------------------------------------------

def test_seed_is_idempotent(db_session):
    assert seed_stages(db_session) == len(DEFAULT_TURN_STAGES)
    assert seed_stages(db_session) == 0
    assert seed_thresholds(db_session) == 2
    assert seed_thresholds(db_session) == 0

    keys = [s.key for s in list_stages(db_session)]
    assert keys[0] == "draft"
    assert keys[-1] == "scan_360"
    assert default_stage(db_session).key == "draft"


def test_create_stage_rejects_duplicate_key(db_session, audit, stages):
    with pytest.raises(ValidationError, match="already exists"):
        create_stage(db_session, audit, {"key": "draft", "name": "Draft again"})


def test_create_stage_validates_auto_status(db_session, audit):
    with pytest.raises(ValidationError, match="Unknown auto_status"):
        create_stage(db_session, audit, {"key": "paused", "name": "Paused", "auto_status": "SLEEPING"})

    stage = create_stage(db_session, audit, {"key": "paused", "name": "Paused", "auto_status": "ON_HOLD"})
    assert db_session.get(TurnStage, stage.id).auto_status == "ON_HOLD"


def test_inactive_stages_are_hidden_by_default(db_session, make_stage):
    make_stage("active", sequence=1)
    make_stage("retired", sequence=2, is_active=False)

    assert [s.key for s in list_stages(db_session)] == ["active"]
    assert len(list_stages(db_session, include_inactive=True)) == 2
