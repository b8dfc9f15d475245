#!/usr/bin/env python3
"""
core/log_utils.py: Logging setup shared by the tmap CLI and web server.

This module contains:
- setup_logging: Installs the console/file handlers and enables DEBUG on the
  requested topic loggers (e.g. 'tmap.compose').
- RichLogFormatter: A custom logging formatter for colorful console output.
"""

import logging

PROJECT_TOPICS = {
    "tmap": {
        "main",
        "extract",
        "classify",
        "grid",
        "compose",
        "render",
        "store",
        "api",
        "config",
    },
}


def resolve_topics(project_name: str, debug_topics: str) -> set:
    """Expands a comma-separated topic list (prefixes allowed) to full topics."""
    valid_topics = PROJECT_TOPICS.get(project_name, set())
    user_topics = [t.strip() for t in debug_topics.split(",") if t.strip()]
    if "all" in user_topics:
        return set(valid_topics)
    return {full for u in user_topics for full in valid_topics if full.startswith(u)}


def setup_logging(
    project_name: str = "tmap",
    level=logging.INFO,
    color_logs=False,
    debug_topics=None,
    log_file: str = None,
):
    """Configures logging for the application."""
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        for h in root_logger.handlers[:]:
            root_logger.removeHandler(h)
            h.close()

    # Console Handler (always enabled)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(RichLogFormatter(use_color=color_logs))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)

    # File Handler (optional)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="w")
            # File logs should not be colored
            file_handler.setFormatter(RichLogFormatter(use_color=False))
            root_logger.addHandler(file_handler)
            logging.getLogger(project_name).info("Logging to file: %s", log_file)
        except IOError as e:
            logging.getLogger(project_name).error(
                "Could not open log file %s: %s", log_file, e
            )

    if debug_topics:
        for topic in resolve_topics(project_name, debug_topics):
            logging.getLogger(f"{project_name}.{topic}").setLevel(logging.DEBUG)


# --- CUSTOM LOGGING FORMATTER ---
class RichLogFormatter(logging.Formatter):
    """A custom logging formatter for rich, colorful, and aligned console output.
    Each line is prefixed with a color-coded level and the bolded topic name
    (the logger name after the project prefix).
    Args:
        use_color (bool): If True, ANSI color codes are used. Defaults to False.
    """

    def __init__(self, use_color=False):
        super().__init__()
        if use_color:
            # ANSI escape codes for 256-color terminal
            self.COLORS = {
                logging.DEBUG: "\033[38;5;252m",  # Light Grey
                logging.INFO: "\033[38;5;111m",  # Pastel Blue
                logging.WARNING: "\033[38;5;229m",  # Pale Yellow
                logging.ERROR: "\033[38;5;210m",  # Soft Red
                logging.CRITICAL: "\033[38;5;217m",  # Light Magenta
            }
            self.BOLD = "\033[1m"
            self.RESET = "\033[0m"
        else:
            self.COLORS = {
                level: ""
                for level in [
                    logging.DEBUG,
                    logging.INFO,
                    logging.WARNING,
                    logging.ERROR,
                    logging.CRITICAL,
                ]
            }
            self.BOLD = ""
            self.RESET = ""

    def format(self, record):
        """Formats a log record into a colored, aligned string."""
        if record.__dict__.get("raw"):
            # ASCII map previews are printed untouched.
            return record.getMessage()

        color = self.COLORS.get(record.levelno, self.RESET)
        level_name = record.levelname[:5]

        name_parts = record.name.split(".")
        topic = name_parts[1][:8] if len(name_parts) > 1 else record.name[:8]

        prefix = f"{color}{level_name:<5}{self.RESET}:{self.BOLD}{topic:<8}{self.RESET}: "
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        lines = message.split("\n")
        return "\n".join([f"{prefix}{line}" for line in lines])
