# --- tmap_app/app.py ---
import os
import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from tmap_lib.analysis.extractor import TileExtractor
from tmap_lib.compose.composer import MapComposer
from tmap_lib.constants import APP_CONFIG
from tmap_lib.errors import NotFoundError, ProcessingError, ValidationError
from tmap_lib.store import MemoryStore
from .services.config_service import ConfigService


def create_app(config_overrides=None):
    """
    Creates and configs an instance of the Flask application.
    """
    app = Flask(__name__)
    log = logging.getLogger("tmap.api")

    # --- Configuration ---
    app.config.from_mapping(
        CONFIG_PATH=os.path.join(os.path.expanduser("~"), ".tmap", "tmap.cfg"),
        MAX_FILE_SIZE=APP_CONFIG["MAX_FILE_SIZE"],
        SUPPORTED_IMAGE_TYPES=list(APP_CONFIG["SUPPORTED_IMAGE_TYPES"]),
        DEFAULT_TILE_SIZE=APP_CONFIG["DEFAULT_TILE_SIZE"],
        DEFAULT_MAP_SIZE=APP_CONFIG["DEFAULT_MAP_SIZE"],
        EXTRACT_WORKERS=1,
    )

    if config_overrides:
        app.config.from_mapping(config_overrides)
        log.info("Applied runtime configuration overrides.")
    app.config["MAX_CONTENT_LENGTH"] = app.config["MAX_FILE_SIZE"]

    # --- Initialize Services ---
    log.info("Initializing application services...")
    try:
        app.config_service = ConfigService(app.config["CONFIG_PATH"])
        app.limits = app.config_service.get_limits()
        app.storage = MemoryStore()
        app.extractor = TileExtractor(app.limits, workers=app.config["EXTRACT_WORKERS"])
        app.composer = MapComposer(app.storage, app.limits)
        log.info("All services initialized successfully.")
    except Exception as e:
        log.error("Failed to initialize services: %s", e, exc_info=True)
        raise

    # --- Register Blueprints (APIs) ---
    from .api import maps, tiles

    app.register_blueprint(tiles.bp, url_prefix="/api/tiles")
    app.register_blueprint(maps.bp, url_prefix="/api/maps")
    log.info("All API blueprints registered.")

    # --- Global Error Handler ---
    @app.errorhandler(Exception)
    def handle_exception(e):
        """Maps library exceptions onto HTTP status codes and a JSON envelope."""
        if isinstance(e, ValidationError):
            body = {"success": False, "error": str(e)}
            if e.field:
                body["field"] = e.field
            return jsonify(body), 400
        if isinstance(e, NotFoundError):
            return jsonify({"success": False, "error": str(e)}), 404
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "error": e.description}), e.code
        if isinstance(e, ProcessingError):
            log.error("Processing failed: %s", e, exc_info=True)
            return jsonify({"success": False, "error": "Failed to process request."}), 500
        log.exception("An unhandled exception occurred: %s", e)
        return jsonify({"success": False, "error": "An internal server error occurred."}), 500

    @app.route("/health")
    def health_check():
        return "OK"

    return app
