from flask import jsonify, render_template, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from catalog.store import CatalogStorageError


class ApiError(Exception):
    """Raised by handlers that answer with a structured JSON error."""
    def __init__(self, message, status_code=400, code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


def fail(message="Bad Request", status=400, code=None):
    err = {"message": message}
    if code:
        err["code"] = code
    return jsonify({"success": False, "error": err}), status


def _wants_json():
    if request.is_json:
        return True
    best = request.accept_mimetypes.best_match(["application/json", "text/html"])
    return best == "application/json" and request.accept_mimetypes[best] > request.accept_mimetypes["text/html"]


def _respond(message, status):
    if _wants_json():
        return fail(message, status=status)
    return render_template("errors/error.html", message=message, status=status), status


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api(e):
        return fail(e.message, status=e.status_code, code=e.code)

    @app.errorhandler(HTTPException)
    def _http(e):
        return _respond(e.description or e.name, e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e):
        app.logger.warning("Integrity error: %s", e.orig if getattr(e, "orig", None) else e)
        return _respond("Duplicate record for this period", 409)

    @app.errorhandler(CatalogStorageError)
    def _storage(e):
        app.logger.error("Catalog storage failure: %s", e)
        return _respond("Failed to save catalog data", 500)

    @app.errorhandler(SQLAlchemyError)
    def _db(e):
        app.logger.exception(e)
        return _respond("Database error", 500)

    @app.errorhandler(Exception)
    def _500(e):
        app.logger.exception(e)
        return _respond("Internal server error", 500)
