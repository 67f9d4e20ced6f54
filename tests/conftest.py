"""Shared test infrastructure for the turn workflow test suite.

Provides:
- db_session: SQLite in-memory session with all tables created
- audit: AuditRecorder writing to the same in-memory database
- notifier: fake Notifier capturing outbound notices
- clock: controllable epoch-ms clock for services
- make_property / make_stage / make_threshold / make_turn / make_user: row factories
- client: FastAPI TestClient with the database, audit, notifier and auth overridden
"""

import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import Base first, then models to register all tables
from app.core.database import Base

import app.models.approval  # noqa: F401
import app.models.approval_threshold  # noqa: F401
import app.models.audit_log  # noqa: F401
import app.models.property  # noqa: F401
import app.models.turn  # noqa: F401
import app.models.turn_stage  # noqa: F401
import app.models.turn_stage_history  # noqa: F401
import app.models.user  # noqa: F401
import app.models.vendor  # noqa: F401

from app.api.deps import get_audit, get_db, get_notifier
from app.core.audit import AuditRecorder
from app.core.auth import ActorContext, User, get_current_user
from app.main import app
from app.models.approval_threshold import ApprovalThreshold
from app.models.property import Property
from app.models.turn import Turn
from app.models.turn_stage import TurnStage
from app.models.user import AppUser


START_MS = 1_760_000_000_000


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database.

    StaticPool keeps a single connection, so the audit recorder's own
    sessions see the same database as the session under test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def audit(session_factory):
    return AuditRecorder(session_factory)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class FakeNotifier:
    """Captures notices instead of sending email."""

    def __init__(self):
        self.requests = []
        self.decisions = []

    def send_approval_request(self, notice):
        self.requests.append(notice)
        return True

    def send_approval_decision(self, notice):
        self.decisions.append(notice)
        return True


class FakeClock:
    def __init__(self, now: int = START_MS):
        self.now = now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager():
    return ActorContext(id="user-pm", email="pm@example.com", role="PROPERTY_MANAGER",
                        ip_address="10.0.0.1", user_agent="pytest")


@pytest.fixture
def approver():
    return ActorContext(id="user-dfo", email="dfo@example.com", role="DFO_APPROVER")


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_property(db_session):
    def _factory(name: str = "Maple Court", address: str = "12 Maple St", **extra) -> Property:
        row = Property(name=name, address=address, city=extra.pop("city", "Austin"),
                       state=extra.pop("state", "TX"), zip=extra.pop("zip", "78701"), **extra)
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _factory


@pytest.fixture
def make_stage(db_session):
    def _factory(key: str, *, sequence: int = 1, requires_approval: bool = False,
                 auto_status: str = None, is_default: bool = False, **extra) -> TurnStage:
        row = TurnStage(
            key=key,
            name=extra.pop("name", key.replace("_", " ").title()),
            sequence=sequence,
            requires_approval=requires_approval,
            auto_status=auto_status,
            is_default=is_default,
            **extra,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _factory


@pytest.fixture
def make_threshold(db_session):
    def _factory(approval_type: str, min_amount, max_amount=None, *, is_active: bool = True,
                 name: str = None) -> ApprovalThreshold:
        row = ApprovalThreshold(
            name=name or f"{approval_type.upper()} {min_amount}",
            approval_type=approval_type,
            min_amount=Decimal(str(min_amount)),
            max_amount=Decimal(str(max_amount)) if max_amount is not None else None,
            is_active=is_active,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _factory


@pytest.fixture
def make_turn(db_session, make_property):
    def _factory(*, property=None, stage=None, estimated_cost=None, stage_entered_at=None, **extra) -> Turn:
        property = property or make_property()
        row = Turn(
            turn_number=f"TURN-TEST-{uuid.uuid4().hex[:8]}",
            property_id=property.id,
            stage_id=stage.id if stage else None,
            estimated_cost=Decimal(str(estimated_cost)) if estimated_cost is not None else None,
            stage_entered_at=stage_entered_at,
            **extra,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _factory


@pytest.fixture
def make_user(db_session):
    def _factory(user_id: str, email: str, role: str, name: str = None) -> AppUser:
        row = AppUser(id=user_id, email=email, role=role, name=name)
        db_session.add(row)
        db_session.commit()
        return row
    return _factory


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
def client(session_factory, audit, notifier):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_audit] = lambda: audit
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_current_user] = lambda: User(
        user_id="user-pm", email="pm@example.com", role="PROPERTY_MANAGER"
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(session_factory, audit, notifier):
    """Client without the auth override: requests carry no bearer token."""
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_audit] = lambda: audit
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
