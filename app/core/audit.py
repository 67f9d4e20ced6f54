"""
Audit trail recording.

Every mutation of a workflow entity is written to ``audit_logs`` with who did
it, the before/after snapshots and the list of changed fields. Recording is
best-effort: a failed audit write is logged and swallowed so the operation it
describes still succeeds.
"""
import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.core.auth import ActorContext, system_actor
from app.models.audit_log import AuditLog
from app.models.enums import AuditAction

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    table_name: str
    record_id: str
    action: AuditAction
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_fields: Optional[List[str]] = None
    property_id: Optional[int] = None
    turn_id: Optional[str] = None
    vendor_id: Optional[str] = None
    context: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = field(default=None)


def snapshot(obj) -> Dict[str, Any]:
    """Column values of an ORM row, keyed by attribute name, detached from the row."""
    state = inspect(obj)
    return {
        attr.key: copy.deepcopy(getattr(obj, attr.key))
        for attr in state.mapper.column_attrs
    }


def calculate_changed_fields(
    old_values: Optional[Dict[str, Any]],
    new_values: Optional[Dict[str, Any]],
) -> List[str]:
    """Keys whose values differ between two snapshots.

    Values are compared structurally, so nested dicts and lists are equal when
    their contents are equal. A key present on only one side counts as changed,
    whatever its value. Empty when either snapshot is None.
    """
    if old_values is None or new_values is None:
        return []
    keys = set(old_values) | set(new_values)
    return sorted(
        k for k in keys
        if k not in old_values or k not in new_values or old_values[k] != new_values[k]
    )


def to_json_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_safe(v) for v in value]
    return value


class AuditRecorder:
    """Writes audit records in a session of its own.

    Constructed once with a session factory and passed to the services that
    mutate workflow state.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        fallback_actor: Optional[ActorContext] = None,
    ):
        self._session_factory = session_factory
        self._fallback_actor = fallback_actor

    def _resolve_actor(self, actor: Optional[ActorContext]) -> ActorContext:
        if actor is not None:
            return actor
        return self._fallback_actor or system_actor()

    def record(self, entry: AuditEntry, actor: Optional[ActorContext] = None) -> None:
        """Persist one audit record. Never raises."""
        try:
            who = self._resolve_actor(actor)
            changed = entry.changed_fields
            if changed is None and entry.old_values is not None and entry.new_values is not None:
                changed = calculate_changed_fields(entry.old_values, entry.new_values)

            row = AuditLog(
                table_name=entry.table_name,
                record_id=str(entry.record_id),
                action=AuditAction(entry.action).value,
                user_id=who.id,
                user_email=who.email,
                user_role=who.role,
                old_values=to_json_safe(entry.old_values),
                new_values=to_json_safe(entry.new_values),
                changed_fields=changed,
                property_id=entry.property_id,
                turn_id=entry.turn_id,
                vendor_id=entry.vendor_id,
                context=entry.context,
                metadata_=to_json_safe(entry.metadata),
                ip_address=who.ip_address,
                user_agent=who.user_agent,
            )
            session = self._session_factory()
            try:
                session.add(row)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
        except Exception:
            logger.exception(
                "Failed to write audit log for %s %s (%s)",
                entry.table_name,
                entry.record_id,
                entry.action,
            )

    @contextmanager
    def tracking(
        self,
        obj,
        *,
        table_name: str,
        record_id: str,
        action: AuditAction = AuditAction.UPDATE,
        actor: Optional[ActorContext] = None,
        **links,
    ) -> Iterator[AuditEntry]:
        """Audit the mutation of ``obj`` performed inside the block.

        The block is expected to commit its change. The before snapshot is
        taken on entry and the after snapshot on a clean exit; if the block
        raises, nothing is recorded. Nothing is recorded either when no column
        changed. The yielded entry can be amended (context, metadata, links)
        before it is written.
        """
        entry = AuditEntry(table_name=table_name, record_id=record_id, action=action, **links)
        entry.old_values = snapshot(obj)
        yield entry
        entry.new_values = snapshot(obj)
        entry.changed_fields = calculate_changed_fields(entry.old_values, entry.new_values)
        if not entry.changed_fields:
            logger.debug("No changes on %s %s, skipping audit", table_name, record_id)
            return
        self.record(entry, actor)

    def log_create(self, table_name: str, record_id: str, data: Dict[str, Any],
                   actor: Optional[ActorContext] = None, context: Optional[str] = None, **links) -> None:
        self.record(
            AuditEntry(table_name=table_name, record_id=record_id, action=AuditAction.CREATE,
                       new_values=data, context=context, **links),
            actor,
        )

    def log_update(self, table_name: str, record_id: str, old_data: Dict[str, Any], new_data: Dict[str, Any],
                   actor: Optional[ActorContext] = None, context: Optional[str] = None, **links) -> None:
        self.record(
            AuditEntry(table_name=table_name, record_id=record_id, action=AuditAction.UPDATE,
                       old_values=old_data, new_values=new_data, context=context, **links),
            actor,
        )

    def log_delete(self, table_name: str, record_id: str, data: Dict[str, Any],
                   actor: Optional[ActorContext] = None, context: Optional[str] = None, **links) -> None:
        self.record(
            AuditEntry(table_name=table_name, record_id=record_id, action=AuditAction.DELETE,
                       old_values=data, context=context, **links),
            actor,
        )
