"""Error handlers for the application.

The only client is the identity provider's delivery system, so every error is
rendered as JSON.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from usersync.core.exceptions import SyncError


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(SyncError)
    def handle_sync_error(error: SyncError):
        """Render pipeline errors raised outside the dispatcher."""
        if error.status >= 500:
            app.logger.error(f"Sync error: {error}", exc_info=True)
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return jsonify({"error": "Bad Request", "message": _description(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed errors."""
        return jsonify({"error": "Method Not Allowed", "message": _description(error)}), 405

    @app.errorhandler(413)
    def request_too_large(error):
        """Handle payload too large errors."""
        limit = app.config.get("MAX_CONTENT_LENGTH")
        message = "Request payload exceeds maximum allowed size"
        if limit:
            message = f"{message} ({limit} bytes)"
        return jsonify({"error": "Payload Too Large", "message": message}), 413

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        # ALWAYS log the full error (even in production) - logs are secure
        app.logger.error(f"Internal error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500


def _description(error) -> str:
    description = getattr(error, "description", None)
    return str(description) if description else str(error)
