# secure_exam/errors.py
from flask import jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Expected failure that maps straight to an HTTP status."""

    def __init__(self, message, status=400, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload or {}


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(err):
        body = {"message": err.message}
        body.update(err.payload)
        return jsonify(body), err.status

    @app.errorhandler(ValidationError)
    def handle_validation_error(err):
        errors = [
            {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
            for e in err.errors()
        ]
        return jsonify({"message": "Validation failed", "errors": errors}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({"message": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        app.logger.exception("Unhandled error: %s", err)
        return jsonify({"message": "Internal server error"}), 500
