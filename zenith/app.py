# zenith/app.py
import atexit

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .api.cache_admin import bp as cache_bp
from .api.portal import bp as portal_bp
from .cache.expiring import ExpiringCache
from .domain.errors import AppError
from .store.db import get_database
from .store.portal import PortalStore
from .utils.config import settings
from .utils.logging import get_logger

log = get_logger(__name__)


def build_cache() -> ExpiringCache:
    return ExpiringCache(
        sweep_interval=settings.CACHE_SWEEP_INTERVAL,
        coalesce=settings.CACHE_COALESCE,
        copy_values=settings.CACHE_COPY_VALUES,
    )


def create_app(cache: ExpiringCache = None, store: PortalStore = None):
    app = Flask(__name__)

    # one cache per process, handed to everything that reads the store
    if cache is None:
        cache = build_cache()
        cache.start()
        atexit.register(cache.stop)
    if store is None:
        db = get_database(settings.MONGODB_URI)
        store = PortalStore(db, cache) if db is not None else None

    app.extensions["zenith.cache"] = cache
    app.extensions["zenith.store"] = store

    app.register_blueprint(portal_bp, url_prefix="/portal")
    app.register_blueprint(cache_bp, url_prefix="/cache")

    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        log.warning(f"AppError: {err.message}")
        return jsonify({"error": err.message}), err.status_code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        log.exception("Unhandled error")
        return jsonify({"error": "internal_error"}), 500

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=settings.PORT, debug=settings.ENV == "dev")
