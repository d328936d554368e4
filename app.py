import os
import logging

from flask import Flask, jsonify, send_from_directory

from config import Config
from extensions import init_extensions
from commands import init_commands
from errors import ServiceError
from logger import console_handler, log_path, rotating_file_handler


# ------------------------------------------------------------------------------------------
#       App factory
# ------------------------------------------------------------------------------------------
def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app)

    # --------------------------------------------------------------------------------------
    # Initialize extensions
    # --------------------------------------------------------------------------------------
    init_extensions(app)

    register_blueprints(app)
    register_error_handlers(app)
    init_commands(app)

    if app.config.get("FLASK_ENV") == "production":
        register_frontend(app)

    app.logger.info(f"BrightPlanet backend started (env={app.config.get('FLASK_ENV')})")
    return app


def setup_logging(app):
    """Rotating file log under logs/, console output while debugging."""
    app.logger.handlers.clear()
    app.logger.addHandler(rotating_file_handler(log_path("app.log", os.environ.get("LOGS_DIR"))))
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = False

    if app.debug:
        app.logger.addHandler(console_handler())

    logging.getLogger('werkzeug').setLevel(logging.WARNING)


def register_blueprints(app):
    from blueprints.api import bp as api_bp
    from blueprints.commission import bp as commission_bp
    from blueprints.rpc import bp as rpc_bp

    app.register_blueprint(api_bp)
    app.register_blueprint(commission_bp)
    app.register_blueprint(rpc_bp)


def register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(500)
    def handle_server_error(e):
        app.logger.error(f"Unhandled server error: {e}")
        return jsonify({"success": False, "error": "Internal server error"}), 500


def register_frontend(app):
    """Serve the built single-page frontend; unknown paths fall back to index.html."""
    build_dir = app.config.get("FRONTEND_BUILD_DIR")

    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def frontend(path):
        if path.startswith(("api/", "rpc/")):
            return jsonify({"success": False, "error": "Not found"}), 404
        if path and os.path.isfile(os.path.join(build_dir, path)):
            return send_from_directory(build_dir, path)
        return send_from_directory(build_dir, "index.html")


# ----------------------
# Create app instance
# ----------------------
app = create_app()

# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug_mode = app.config.get("DEBUG", False)
    app.run(debug=debug_mode, host="0.0.0.0", port=port)
