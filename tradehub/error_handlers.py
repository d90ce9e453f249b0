"""JSON error handlers for the application."""

from flask import Blueprint, current_app, jsonify

from .errors import AppError, DuplicateResourceError, NotFoundError, ValidationError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_body(error):
    return {"success": False, "error": error.message, "errorKind": error.kind}


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors raised in routes."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return jsonify(_error_body(error)), error.status_code


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return jsonify(_error_body(error)), error.status_code


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return jsonify(_error_body(error)), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return jsonify(_error_body(error)), error.status_code


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"success": False, "error": "Not found", "errorKind": "NotFound"}), 404


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return (
        jsonify(
            {
                "success": False,
                "error": "An unexpected error occurred. Please try again later.",
                "errorKind": "StoreFailure",
            }
        ),
        500,
    )
