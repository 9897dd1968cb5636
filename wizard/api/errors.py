"""Error handlers for the application."""
from flask import render_template, jsonify, request
from werkzeug.exceptions import HTTPException

from wizard.core.purecloud import PureCloudAPIError, ProductNotAvailableError


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(HTTPException)
    def http_error(error):
        """Render werkzeug HTTP errors as JSON for API calls and a page otherwise."""
        if error.code == 401 and not _wants_json():
            from flask import redirect, url_for
            return redirect(url_for("auth.login"))

        if _wants_json():
            return jsonify({"error": error.name, "message": error.description}), error.code
        return render_template(
            "error.html",
            title=error.name,
            message=error.description,
        ), error.code

    @app.errorhandler(PureCloudAPIError)
    def platform_error(error):
        """The platform API refused a call: report it as a bad gateway."""
        app.logger.error("Platform API error: %s", error)
        if _wants_json():
            return jsonify({
                "error": "Bad Gateway",
                "message": error.message,
                "platform_status": error.status_code,
                "endpoint": error.endpoint,
            }), 502
        return render_template(
            "error.html",
            title="Platform API error",
            message=f"[{error.status_code}] {error.message}",
        ), 502

    @app.errorhandler(ProductNotAvailableError)
    def product_unavailable(error):
        """The premium app is not enabled for the org."""
        if _wants_json():
            return jsonify({"error": "Forbidden", "message": str(error)}), 403
        return render_template("error.html", title="Forbidden", message=str(error)), 403

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return http_error(error)

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)

        if _wants_json():
            return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

        show_details = app.debug or app.config["APP_CONFIG"].demo_mode
        return render_template(
            "error.html",
            title="Internal Server Error",
            message=str(error) if show_details else "An unexpected error occurred",
        ), 500


def _wants_json():
    """Check if the client wants a JSON response."""
    if request.path.startswith("/api/"):
        return True

    return request.accept_mimetypes.accept_json and \
           not request.accept_mimetypes.accept_html
