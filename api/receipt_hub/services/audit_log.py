# receipt_hub/services/audit_log.py
"""
Audit Log Recorder - append-only change and activity logs on receipts.

Handles:
- ChangeLogEntry: one record per executed status transition
- ActivityLogEntry: one human-readable record per changed header field
- JSON encoding for the change_log / activity_log columns

Entries are frozen; the only way to grow a log is ``append_*``, which
returns a new tuple and never touches the entries already recorded.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _status_value(status: Any) -> Optional[str]:
    if status is None:
        return None
    return status.value if hasattr(status, "value") else str(status)


# ============================================================================
# Records
# ============================================================================

@dataclass(frozen=True)
class ChangeLogEntry:
    user: str
    old_status: Optional[str]
    new_status: str
    timestamp: datetime

    def to_json(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "oldStatus": self.old_status,
            "newStatus": self.new_status,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "ChangeLogEntry":
        return cls(
            user=raw.get("user") or "",
            old_status=raw.get("oldStatus"),
            new_status=raw["newStatus"],
            timestamp=_parse_ts(raw["timestamp"]),
        )


@dataclass(frozen=True)
class ActivityLogEntry:
    user: str
    action: str
    timestamp: datetime

    def to_json(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "ActivityLogEntry":
        return cls(
            user=raw.get("user") or "",
            action=raw["action"],
            timestamp=_parse_ts(raw["timestamp"]),
        )


ChangeLog = Tuple[ChangeLogEntry, ...]
ActivityLog = Tuple[ActivityLogEntry, ...]


# ============================================================================
# Append operations
# ============================================================================

def append_change(
    log: Sequence[ChangeLogEntry],
    *,
    user: str,
    old_status: Any,
    new_status: Any,
    at: Optional[datetime] = None,
) -> ChangeLog:
    entry = ChangeLogEntry(
        user=user,
        old_status=_status_value(old_status),
        new_status=_status_value(new_status),
        timestamp=at or _now(),
    )
    return tuple(log) + (entry,)


# field name -> action description; fields missing here produce no entry
ACTIVITY_ACTIONS: Dict[str, str] = {
    "periodic": "{user} changed the check period",
    "note": "{user} changed the note",
    "warehouse": "{user} changed the warehouse",
    "supplier_id": "{user} changed the supplier",
    "date": "{user} changed the check date",
    "status": "{user} changed the status",
    "checker": "{user} changed the checker",
}


def describe_field_change(field: str, user: str) -> Optional[str]:
    template = ACTIVITY_ACTIONS.get(field)
    if template is None:
        return None
    return template.format(user=user)


def append_activities(
    log: Sequence[ActivityLogEntry],
    *,
    fields: Iterable[str],
    user: str,
    at: Optional[datetime] = None,
) -> ActivityLog:
    """
    Append one entry per recognized field name, in the order given.

    Unrecognized names (items, updated_at, ...) are skipped silently.
    """
    ts = at or _now()
    entries: List[ActivityLogEntry] = []
    for field in fields:
        action = describe_field_change(field, user)
        if action is None:
            continue
        entries.append(ActivityLogEntry(user=user, action=action, timestamp=ts))
    return tuple(log) + tuple(entries)


# ============================================================================
# Column encoding
# ============================================================================

def load_change_log(raw: Optional[Iterable[Mapping[str, Any]]]) -> ChangeLog:
    if not raw:
        return ()
    return tuple(ChangeLogEntry.from_json(r) for r in raw)


def load_activity_log(raw: Optional[Iterable[Mapping[str, Any]]]) -> ActivityLog:
    if not raw:
        return ()
    return tuple(ActivityLogEntry.from_json(r) for r in raw)


def dump_log(entries: Iterable[Any]) -> List[Dict[str, Any]]:
    # a fresh list every time so the ORM sees the column as changed
    return [e.to_json() for e in entries]
