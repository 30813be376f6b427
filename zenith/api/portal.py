# zenith/api/portal.py
from flask import Blueprint, current_app, jsonify, request

from ..domain.errors import BadRequest, NotFound, StoreUnavailable
from ..domain.permissions import allowed_views
from ..store.portal import PortalStore

bp = Blueprint("portal", __name__)


def _store() -> PortalStore:
    store = current_app.extensions.get("zenith.store")
    if store is None:
        raise StoreUnavailable("document store is not configured")
    return store


def _body_with_id() -> dict:
    body = request.get_json(force=True, silent=True) or {}
    if not isinstance(body, dict) or not body.get("id"):
        raise BadRequest("id is required")
    return body


@bp.get("/employees")
def employees():
    return jsonify(_store().employees())


@bp.get("/employees/<uid>")
def employee(uid: str):
    user = _store().user(uid)
    if user is None:
        raise NotFound(f"No employee {uid}")
    return jsonify(user)


@bp.get("/attendance")
def attendance():
    return jsonify(_store().attendance_logs())


@bp.post("/attendance")
def save_attendance():
    _store().save_attendance_log(_body_with_id())
    return jsonify({"ok": True}), 201


@bp.get("/vacations")
def vacations():
    return jsonify(_store().vacations())


@bp.post("/vacations")
def save_vacation():
    _store().save_vacation(_body_with_id())
    return jsonify({"ok": True}), 201


@bp.get("/branches")
def branches():
    return jsonify(_store().branches())


@bp.get("/branches/<name>/balance")
def branch_balance(name: str):
    return jsonify({"branch": name, "amount": _store().branch_balance(name)})


@bp.put("/branches/<name>/balance")
def update_branch_balance(name: str):
    body = request.get_json(force=True, silent=True) or {}
    try:
        amount = float(body["amount"])
    except (KeyError, TypeError, ValueError):
        raise BadRequest("numeric amount is required")
    _store().update_branch_balance(name, amount)
    return jsonify({"branch": name, "amount": amount})


@bp.get("/positions")
def positions():
    return jsonify(_store().positions())


@bp.get("/departments")
def departments():
    return jsonify(_store().departments())


@bp.get("/cash-history")
def cash_history():
    return jsonify(_store().cash_history())


@bp.post("/cash-history")
def save_cash_record():
    _store().save_cash_record(_body_with_id())
    return jsonify({"ok": True}), 201


@bp.get("/settings")
def settings():
    return jsonify(_store().settings())


@bp.get("/permissions/<role>")
def permissions(role: str):
    return jsonify({"role": role, "views": allowed_views(_store().settings(), role)})
