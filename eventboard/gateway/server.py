"""
API gateway: combines auth, events, and users blueprints.
This is the entrypoint for development and for WSGI servers (create_app).
"""

import atexit
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from dotenv import load_dotenv

from eventboard.database.db_connection import close_db_pool, init_db_pool
from eventboard.errors import install_error_handlers

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        test_config (dict, optional): Config overrides. With TESTING set the
            database pool is not opened, so tests can patch get_db.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    app.config.from_mapping(
        UPLOAD_FOLDER=os.path.abspath(os.getenv("UPLOAD_FOLDER", "uploads")),
        MAX_CONTENT_LENGTH=int(os.getenv("MAX_UPLOAD_MB", 5)) * 1024 * 1024,
    )
    if test_config:
        app.config.update(test_config)

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    CORS(app, resources={
        r"/api/*": {
            "origins": origins,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REGISTER BLUEPRINTS ---
    from eventboard.auth_service.routes import auth_bp
    from eventboard.events_service.routes import events_bp
    from eventboard.users_service.routes import users_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(users_bp, url_prefix="/api/users")

    install_error_handlers(app)

    # --- UPLOADED IMAGES ---
    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename: str):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    if not app.config.get("TESTING"):
        init_db_pool(app.config.get("DATABASE_URL"))
        atexit.register(close_db_pool)

    logging.info("All blueprints registered successfully.")
    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("GATEWAY_PORT", 5000))
    app.run(host="0.0.0.0", port=port)
