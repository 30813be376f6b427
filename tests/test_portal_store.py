import pytest

from zenith.cache.expiring import TTL
from zenith.domain.errors import BadRequest
from zenith.domain.permissions import DEFAULT_DEPARTMENTS, allowed_views


def test_employees_are_read_once_then_served_from_cache(store, db):
    store.save_user({"id": "7", "uid": "uid-7", "name": "Giorgi", "role": "Employee"})
    assert store.employees() == [{"id": "7", "uid": "uid-7", "name": "Giorgi", "role": "Employee"}]
    store.employees()
    assert db["users"].reads == 1


def test_saving_a_user_drops_every_users_key(store, cache):
    store.save_user({"id": "1", "name": "A"})
    store.employees()
    store.user("1")
    assert "users:all" in cache and "users:1" in cache

    store.save_user({"id": "1", "name": "B"})
    assert "users:all" not in cache and "users:1" not in cache
    assert store.user("1")["name"] == "B"


def test_delete_user(store):
    store.save_user({"id": "1", "name": "A"})
    store.delete_user("1")
    assert store.employees() == []
    assert store.user("1") is None


def test_attendance_refetched_after_frequent_ttl(store, db, clock):
    store.save_attendance_log({"id": "a1", "employeeId": "7", "date": "2024-05-01"})
    store.attendance_logs()
    clock.advance(TTL.FREQUENT - 1)
    store.attendance_logs()
    assert db["attendance"].reads == 1
    clock.advance(1)
    store.attendance_logs()
    assert db["attendance"].reads == 2


def test_attendance_write_invalidates_only_its_family(store, cache):
    store.save_vacation({"id": "v1", "status": "Pending"})
    store.vacations()
    store.attendance_logs()
    store.save_attendance_log({"id": "a1"})
    assert "vacations:all" in cache
    assert [r["id"] for r in store.attendance_logs()] == ["a1"]
    store.delete_attendance_log("a1")
    assert store.attendance_logs() == []


def test_vacations_roundtrip(store):
    store.save_vacation({"id": "v1", "status": "Pending"})
    assert store.vacations()[0]["status"] == "Pending"
    store.save_vacation({"id": "v1", "status": "Approved"})
    assert store.vacations()[0]["status"] == "Approved"
    store.delete_vacation("v1")
    assert store.vacations() == []


def test_documents_require_a_key(store):
    with pytest.raises(BadRequest):
        store.save_cash_record({"branch": "Gldani"})


def test_branch_balance_defaults_to_zero_and_updates(store, db):
    assert store.branch_balance("Batumi") == 0
    store.update_branch_balance("Batumi", 150.5)
    assert store.branch_balance("Batumi") == 150.5
    assert db["branchBalances"].docs["Batumi"] == {"amount": 150.5, "_id": "Batumi"}


def test_delete_branch_drops_balance_too(store):
    store.set_branches([
        {"name": "Poti", "openTime": "09:30", "lateThreshold": 15},
        {"name": "Gldani", "openTime": "10:00", "lateThreshold": 10},
    ])
    store.update_branch_balance("Poti", 40)
    assert store.branch_balance("Poti") == 40
    assert len(store.branches()) == 2

    store.delete_branch("Poti")
    assert [b["name"] for b in store.branches()] == ["Gldani"]
    assert store.branch_balance("Poti") == 0


def test_positions_and_departments(store):
    assert store.departments() == DEFAULT_DEPARTMENTS
    store.set_departments(["Office"])
    assert store.departments() == ["Office"]

    store.set_positions([{"title": "Shop manager", "department": "Office"}])
    assert store.positions() == [{"title": "Shop manager", "department": "Office"}]
    store.delete_position("Shop manager")
    assert store.positions() == []


def test_cash_history_is_newest_first(store):
    for rid, date in [("c1", "2024-01-02"), ("c2", "2024-03-01"), ("c3", "2024-02-10")]:
        store.save_cash_record({"id": rid, "date": date, "branch": "Poti"})
    assert [r["id"] for r in store.cash_history()] == ["c2", "c3", "c1"]
    store.delete_cash_record("c2")
    assert [r["id"] for r in store.cash_history()] == ["c3", "c1"]


def test_settings_fall_back_to_defaults(store):
    settings = store.settings()
    assert settings["appTitle"] == "Zenith Portal"
    assert "Admin" in settings["rolePermissions"]


def test_settings_missing_permissions_get_defaults(store):
    store.set_settings({"appTitle": "Branch Hub"})
    settings = store.settings()
    assert settings["appTitle"] == "Branch Hub"
    assert allowed_views(settings, "Accountant") == ["dashboard", "profile", "cashier", "accountant"]


def test_stored_permissions_override_defaults(store):
    store.set_settings({"rolePermissions": {"HR": ["dashboard"]}})
    settings = store.settings()
    assert allowed_views(settings, "HR") == ["dashboard"]
    assert "admin" in allowed_views(settings, "Admin")
    with pytest.raises(BadRequest):
        allowed_views(settings, "Intern")


def test_fetch_errors_propagate_and_are_retried(store, db, monkeypatch):
    col = db["positions"]
    real_find = col.find

    def broken(*a, **kw):
        raise ConnectionError("replica set unavailable")

    monkeypatch.setattr(col, "find", broken)
    with pytest.raises(ConnectionError):
        store.positions()

    monkeypatch.setattr(col, "find", real_find)
    assert store.positions() == []


def test_batch_with_a_keyless_document_writes_nothing(store, db):
    store.set_branches([{"name": "Poti"}])
    assert [b["name"] for b in store.branches()] == ["Poti"]

    with pytest.raises(BadRequest):
        store.set_branches([{"name": "Gldani"}, {"openTime": "09:00"}])
    assert list(db["branches"].docs) == ["Poti"]
    assert [b["name"] for b in store.branches()] == ["Poti"]


def test_batch_failing_midway_still_invalidates(store, db, monkeypatch):
    store.set_positions([{"title": "Cashier", "department": "Retail"}])
    assert len(store.positions()) == 1

    col = db["positions"]
    real_replace = col.replace_one
    writes = []

    def flaky_replace(filter, doc, upsert=False):
        if writes:
            raise ConnectionError("primary stepped down")
        writes.append(filter["_id"])
        return real_replace(filter, doc, upsert=upsert)

    monkeypatch.setattr(col, "replace_one", flaky_replace)
    with pytest.raises(ConnectionError):
        store.set_positions([{"title": "Shop manager"}, {"title": "Courier"}])
    monkeypatch.setattr(col, "replace_one", real_replace)

    assert sorted(p["title"] for p in store.positions()) == ["Cashier", "Shop manager"]


def test_set_employees_and_vacations_in_batches(store, cache):
    store.employees()
    store.set_employees([
        {"id": "1", "uid": "uid-1", "name": "Nino", "personalId": "01001"},
        {"id": "2", "name": "Levan", "personalId": "01002"},
    ])
    assert "users:all" not in cache
    assert sorted(u["name"] for u in store.employees()) == ["Levan", "Nino"]
    assert store.user("uid-1")["name"] == "Nino"
    assert store.user("2")["name"] == "Levan"

    store.vacations()
    store.set_vacations([{"id": "v1", "status": "Pending"}, {"id": "v2", "status": "Approved"}])
    assert sorted(v["id"] for v in store.vacations()) == ["v1", "v2"]


def test_user_by_personal_id_is_cached_and_invalidated(store, db):
    store.save_user({"id": "5", "name": "Tamar", "personalId": "61001"})
    assert store.user_by_personal_id("61001")["name"] == "Tamar"
    store.user_by_personal_id("61001")
    assert db["users"].reads == 1
    assert store.user_by_personal_id("99999") is None

    store.save_user({"id": "5", "name": "Tamar B.", "personalId": "61001"})
    assert store.user_by_personal_id("61001")["name"] == "Tamar B."
