# zenith/api/cache_admin.py
from flask import Blueprint, current_app, jsonify, request

from ..domain.errors import BadRequest
from ..utils.logging import get_logger

bp = Blueprint("cache_admin", __name__)
log = get_logger(__name__)


def _cache():
    return current_app.extensions["zenith.cache"]


@bp.get("/stats")
def stats():
    return jsonify(_cache().stats())


@bp.post("/invalidate")
def invalidate():
    body = request.get_json(force=True, silent=True) or {}
    pattern = body.get("pattern") if isinstance(body, dict) else None
    if not pattern or not isinstance(pattern, str):
        raise BadRequest("pattern is required")
    removed = _cache().invalidate(pattern)
    log.info(f"cache invalidate pattern={pattern!r} removed={removed}")
    return jsonify({"pattern": pattern, "removed": removed})


@bp.post("/clear")
def clear():
    _cache().clear()
    log.info("cache cleared")
    return jsonify({"ok": True})
