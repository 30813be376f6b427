import copy
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..cache.expiring import TTL, ExpiringCache
from ..domain.errors import BadRequest
from ..domain.permissions import DEFAULT_DEPARTMENTS, DEFAULT_ROLE_PERMISSIONS, DEFAULT_SETTINGS
from ..utils.logging import get_logger
from ..utils.perf import trace

log = get_logger(__name__)

USERS = "users"
ATTENDANCE = "attendance"
VACATIONS = "vacations"
BRANCHES = "branches"
BRANCH_BALANCES = "branchBalances"
POSITIONS = "positions"
DEPARTMENTS = "departments"
SETTINGS = "settings"
CASH_HISTORY = "cashHistory"

_NO_ID = {"_id": 0}


class PortalStore:
    """
    Portal collections in MongoDB, read through the shared cache.

    Cache keys are "<collection>:<qualifier>", so a write can drop everything
    it affects with one `invalidate("<collection>:")`.
    """

    def __init__(self, db, cache: ExpiringCache):
        self.db = db
        self.cache = cache

    # ---- helpers ----

    def _all(self, name: str, sort: Optional[tuple] = None) -> List[Dict[str, Any]]:
        def run():
            cur = self.db[name].find({}, _NO_ID)
            if sort:
                cur = cur.sort(*sort)
            return list(cur)
        return trace(f"{name}.find", run)

    def _one(self, name: str, key: str) -> Optional[Dict[str, Any]]:
        return self._first(name, {"_id": key})

    def _first(self, name: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return trace(f"{name}.find_one", lambda: self.db[name].find_one(query, _NO_ID))

    def _put(self, name: str, key: str, doc: Dict[str, Any]) -> None:
        if not key:
            raise BadRequest(f"{name} document requires a key")
        body = {k: v for k, v in doc.items() if k != "_id"}
        trace(f"{name}.replace_one", lambda: self.db[name].replace_one({"_id": key}, {**body, "_id": key}, upsert=True))

    def _delete(self, name: str, key: str) -> None:
        trace(f"{name}.delete_one", lambda: self.db[name].delete_one({"_id": key}))

    def _put_many(self, name: str, docs: Iterable[Dict[str, Any]], key_of: Callable[[Dict[str, Any]], Any]) -> None:
        keyed = [(key_of(doc), doc) for doc in docs]
        missing = [i for i, (key, _) in enumerate(keyed) if not key]
        if missing:
            raise BadRequest(f"{name} documents at positions {missing} require a key")
        try:
            for key, doc in keyed:
                self._put(name, key, doc)
        finally:
            # a batch that failed halfway has still changed the collection
            self.cache.invalidate(f"{name}:")

    # ---- users ----

    def employees(self) -> List[Dict[str, Any]]:
        return self.cache.wrap(f"{USERS}:all", TTL.PROFILES, lambda: self._all(USERS))

    def user(self, uid: str) -> Optional[Dict[str, Any]]:
        return self.cache.wrap(f"{USERS}:{uid}", TTL.PROFILES, lambda: self._one(USERS, uid))

    def user_by_personal_id(self, personal_id: str) -> Optional[Dict[str, Any]]:
        return self.cache.wrap(
            f"{USERS}:personal:{personal_id}", TTL.PROFILES,
            lambda: self._first(USERS, {"personalId": personal_id}),
        )

    def save_user(self, user: Dict[str, Any]) -> None:
        self._put(USERS, user.get("uid") or user.get("id"), user)
        self.cache.invalidate(f"{USERS}:")

    def set_employees(self, employees: Iterable[Dict[str, Any]]) -> None:
        self._put_many(USERS, employees, lambda u: u.get("uid") or u.get("id"))

    def delete_user(self, uid: str) -> None:
        self._delete(USERS, uid)
        self.cache.invalidate(f"{USERS}:")

    # ---- attendance ----

    def attendance_logs(self) -> List[Dict[str, Any]]:
        return self.cache.wrap(f"{ATTENDANCE}:all", TTL.FREQUENT, lambda: self._all(ATTENDANCE))

    def save_attendance_log(self, record: Dict[str, Any]) -> None:
        self._put(ATTENDANCE, record.get("id"), record)
        self.cache.invalidate(f"{ATTENDANCE}:")

    def delete_attendance_log(self, record_id: str) -> None:
        self._delete(ATTENDANCE, record_id)
        self.cache.invalidate(f"{ATTENDANCE}:")

    # ---- vacations ----

    def vacations(self) -> List[Dict[str, Any]]:
        return self.cache.wrap(f"{VACATIONS}:all", TTL.MODERATE, lambda: self._all(VACATIONS))

    def save_vacation(self, vacation: Dict[str, Any]) -> None:
        self._put(VACATIONS, vacation.get("id"), vacation)
        self.cache.invalidate(f"{VACATIONS}:")

    def set_vacations(self, vacations: Iterable[Dict[str, Any]]) -> None:
        self._put_many(VACATIONS, vacations, lambda v: v.get("id"))

    def delete_vacation(self, vacation_id: str) -> None:
        self._delete(VACATIONS, vacation_id)
        self.cache.invalidate(f"{VACATIONS}:")

    # ---- branches & balances ----

    def branches(self) -> List[Dict[str, Any]]:
        return self.cache.wrap(f"{BRANCHES}:all", TTL.STATIC, lambda: self._all(BRANCHES))

    def set_branches(self, branches: Iterable[Dict[str, Any]]) -> None:
        self._put_many(BRANCHES, branches, lambda b: b.get("name"))

    def delete_branch(self, name: str) -> None:
        self._delete(BRANCHES, name)
        self._delete(BRANCH_BALANCES, name)
        self.cache.invalidate(f"{BRANCHES}:")
        self.cache.invalidate(f"{BRANCH_BALANCES}:{name}")

    def branch_balance(self, name: str) -> float:
        def fetch():
            doc = self._one(BRANCH_BALANCES, name)
            return (doc or {}).get("amount") or 0
        return self.cache.wrap(f"{BRANCH_BALANCES}:{name}", TTL.FREQUENT, fetch)

    def update_branch_balance(self, name: str, amount: float) -> None:
        self._put(BRANCH_BALANCES, name, {"amount": amount})
        self.cache.invalidate(f"{BRANCH_BALANCES}:{name}")

    # ---- company structure ----

    def positions(self) -> List[Dict[str, Any]]:
        return self.cache.wrap(f"{POSITIONS}:all", TTL.STATIC, lambda: self._all(POSITIONS))

    def set_positions(self, positions: Iterable[Dict[str, Any]]) -> None:
        self._put_many(POSITIONS, positions, lambda p: p.get("title"))

    def delete_position(self, title: str) -> None:
        self._delete(POSITIONS, title)
        self.cache.invalidate(f"{POSITIONS}:")

    def departments(self) -> List[str]:
        def fetch():
            doc = self._one(DEPARTMENTS, "list")
            return (doc or {}).get("items") or list(DEFAULT_DEPARTMENTS)
        return self.cache.wrap(f"{DEPARTMENTS}:list", TTL.STATIC, fetch)

    def set_departments(self, departments: List[str]) -> None:
        self._put(DEPARTMENTS, "list", {"items": list(departments)})
        self.cache.invalidate(f"{DEPARTMENTS}:")

    # ---- cash desk ----

    def cash_history(self) -> List[Dict[str, Any]]:
        return self.cache.wrap(
            f"{CASH_HISTORY}:all", TTL.FREQUENT, lambda: self._all(CASH_HISTORY, sort=("date", -1))
        )

    def save_cash_record(self, record: Dict[str, Any]) -> None:
        self._put(CASH_HISTORY, record.get("id"), record)
        self.cache.invalidate(f"{CASH_HISTORY}:")

    def delete_cash_record(self, record_id: str) -> None:
        self._delete(CASH_HISTORY, record_id)
        self.cache.invalidate(f"{CASH_HISTORY}:")

    # ---- settings ----

    def settings(self) -> Dict[str, Any]:
        def fetch():
            data = self._one(SETTINGS, "system") or copy.deepcopy(DEFAULT_SETTINGS)
            if not data.get("rolePermissions"):
                data["rolePermissions"] = copy.deepcopy(DEFAULT_ROLE_PERMISSIONS)
            return data
        return self.cache.wrap(f"{SETTINGS}:system", TTL.STATIC, fetch)

    def set_settings(self, settings: Dict[str, Any]) -> None:
        self._put(SETTINGS, "system", settings)
        self.cache.invalidate(f"{SETTINGS}:")
        log.info("system settings updated")
