from datetime import datetime, timedelta, timezone

from receipt_hub.db_models import ReceiptImportStatus
from receipt_hub.services.audit_log import (
    ActivityLogEntry,
    ChangeLogEntry,
    append_activities,
    append_change,
    dump_log,
    load_activity_log,
    load_change_log,
)

T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)


def test_append_change_keeps_prior_entries():
    first = append_change((), user="An", old_status=ReceiptImportStatus.DRAFT,
                          new_status=ReceiptImportStatus.PROCESSING, at=T0)
    second = append_change(first, user="Binh", old_status=ReceiptImportStatus.PROCESSING,
                           new_status=ReceiptImportStatus.WAITING, at=T0 + timedelta(minutes=5))

    assert len(first) == 1
    assert len(second) == 2
    assert second[0] is first[0]
    assert second[1] == ChangeLogEntry("Binh", "PROCESSING", "WAITING", T0 + timedelta(minutes=5))


def test_change_log_json_shape():
    log = append_change((), user="An", old_status=None, new_status="PENDING", at=T0)

    assert dump_log(log) == [{
        "user": "An",
        "oldStatus": None,
        "newStatus": "PENDING",
        "timestamp": T0.isoformat(),
    }]
    assert load_change_log(dump_log(log)) == log


def test_activities_skip_unknown_fields():
    log = append_activities((), fields=["note", "items", "updated_at", "status"], user="An", at=T0)

    assert [e.action for e in log] == ["An changed the note", "An changed the status"]


def test_activities_append_after_existing():
    existing = (ActivityLogEntry("Chi", "Chi changed the checker", T0),)

    log = append_activities(existing, fields=["periodic"], user="An", at=T0)

    assert log[0] == existing[0]
    assert log[1].action == "An changed the check period"
    assert load_activity_log(dump_log(log)) == log


def test_empty_column_loads_as_empty_log():
    assert load_change_log(None) == ()
    assert load_activity_log([]) == ()
