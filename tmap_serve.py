#!/usr/bin/env python3
"""tmap_serve: Main entry point for the tile map web service."""

import os
import logging
import sys
import argparse

from tmap_app.app import create_app
from core.log_utils import setup_logging

# --- CONSTANTS ---
APP_DIR = os.path.join(os.path.expanduser("~"), ".tmap")
CONFIG_PATH = os.path.join(APP_DIR, "tmap.cfg")


def main():
    """Initializes and runs the tmap Flask application."""
    # --- Basic Setup ---
    os.makedirs(APP_DIR, exist_ok=True)
    log = logging.getLogger("tmap")

    # --- Argument Parsing ---
    parser = argparse.ArgumentParser(description="Tile map extraction and generation server.")
    g_srv = parser.add_argument_group("Server Configuration")
    g_srv.add_argument("--host", default="127.0.0.1", help="Bind address. Default: 127.0.0.1")
    g_srv.add_argument("--port", type=int, default=5000, help="Bind port. Default: 5000")
    g_srv.add_argument(
        "--config",
        metavar="FILE",
        default=None,
        help=f"Path to the INI config file. Default: {CONFIG_PATH}",
    )
    g_srv.add_argument(
        "--max-file-size",
        type=int,
        default=None,
        help="Maximum upload size in bytes. Default: 10MB",
    )
    g_srv.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads used for tile analysis per request. Default: 1",
    )

    g_log = parser.add_argument_group("Logging & Output")
    g_log.add_argument(
        "-v", "--verbose", action="store_true", help="Enable INFO logging for progress."
    )
    g_log.add_argument(
        "--color-logs", action="store_true", help="Enable colored logging output."
    )
    g_log.add_argument(
        "--log-file",
        metavar="FILE",
        default=None,
        help="Redirect all logging output to a specified file.",
    )
    g_log.add_argument(
        "-d",
        "--debug",
        dest="debug_topics",
        metavar="TOPICS",
        help="Enable DEBUG logging (all,api,extract,classify,grid,compose,render,store,config).",
    )
    args = parser.parse_args()

    # --- Logging Setup ---
    setup_logging(
        project_name="tmap",
        level=logging.INFO if args.verbose else logging.WARNING,
        color_logs=args.color_logs,
        debug_topics=args.debug_topics,
        log_file=args.log_file,
    )

    config_overrides = {
        key: value
        for key, value in {
            "CONFIG_PATH": args.config,
            "MAX_FILE_SIZE": args.max_file_size,
            "EXTRACT_WORKERS": args.workers,
        }.items()
        if value is not None
    }

    # --- App Creation ---
    try:
        app = create_app(config_overrides)
        log.info("tmap application created successfully.")
        log.info("Config file is located at: %s", app.config["CONFIG_PATH"])
    except Exception as e:
        log.critical("Failed to create the tmap application: %s", e, exc_info=True)
        sys.exit(1)

    # --- Run Server ---
    try:
        log.info("Starting tmap server at http://%s:%d...", args.host, args.port)
        log.info("Press CTRL+C to stop the server.")
        from waitress import serve

        serve(app, host=args.host, port=args.port, channel_timeout=600)
    except KeyboardInterrupt:
        log.info("\nServer stopped by user. Exiting.")
        sys.exit(0)
    except Exception as e:
        log.critical("The Flask server failed to run: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
