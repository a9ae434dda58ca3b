#!/usr/bin/env python3
"""
core/log_utils.py: Logging setup shared by the pdfrecon library and CLI.
This module contains:
- setup_logging: Configures handlers, silences noisy libraries and enables
  per-topic debug output.
- RichLogFormatter: A custom logging formatter for colorful console output.
- ContextFilter: A logging filter to add contextual data (like the document
  being processed) to log records.
"""

import logging

PROJECT_TOPICS = {
    "pdfrecon": {
        "engine",
        "layout",
        "structure",
        "reconstruct",
        "images",
        "render",
        "source",
        "config",
        "api",
    },
}


def setup_logging(
    project_name: str,
    level=logging.INFO,
    color_logs=False,
    debug_topics=None,
    include_projects: list[str] = None,
    log_file: str = None,
    context_filter: logging.Filter = None,
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
            file_handler.setFormatter(RichLogFormatter(use_color=False, show_time=True))
            root_logger.addHandler(file_handler)
            logging.getLogger(project_name).info("Logging to file: %s", log_file)
        except IOError as e:
            logging.getLogger(project_name).error(
                "Could not open log file %s: %s", log_file, e
            )

    if context_filter is not None:
        for handler in root_logger.handlers:
            handler.addFilter(context_filter)

    # Silence noisy libraries
    for noisy in ("pdfminer", "PIL", "urllib3", "fitz"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if debug_topics:
        projects_to_debug = [project_name] + (include_projects or [])
        user_topics = [t.strip() for t in debug_topics.split(",")]

        for proj in projects_to_debug:
            valid_topics = PROJECT_TOPICS.get(proj, set())
            if "all" in user_topics:
                topics_to_set = valid_topics
            else:
                topics_to_set = {
                    full for u in user_topics for full in valid_topics if full.startswith(u)
                }

            for topic in topics_to_set:
                logging.getLogger(f"{proj}.{topic}").setLevel(logging.DEBUG)


class ContextFilter(logging.Filter):
    """
    A logging filter that injects the name of the document being processed
    into log records. The CLI updates it as it moves between sources.
    """

    def __init__(self, context_str=""):
        super().__init__()
        self.context_str = context_str

    def set_context(self, context_str):
        self.context_str = context_str or ""

    def filter(self, record):
        record.context = self.context_str
        return True


# --- CUSTOM LOGGING FORMATTER ---
class RichLogFormatter(logging.Formatter):
    """A custom logging formatter for aligned, optionally colored output.
    Each line is prefixed with the level, the topic (the logger name after the
    project name) and, when set, the document context.
    Args:
        use_color (bool): If True, ANSI color codes are used. Defaults to False.
        show_time (bool): If True, each line starts with a timestamp. Used for
            log files, where lines are read after the fact.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[38;5;252m",  # Light Grey
        logging.INFO: "\033[38;5;111m",  # Pastel Blue
        logging.WARNING: "\033[38;5;229m",  # Pale Yellow
        logging.ERROR: "\033[38;5;210m",  # Soft Red
        logging.CRITICAL: "\033[38;5;217m",  # Light Magenta
    }
    TOPIC_WIDTH = 7

    def __init__(self, use_color=False, show_time=False):
        super().__init__(datefmt="%H:%M:%S")
        self.use_color = use_color
        self.show_time = show_time
        self.BOLD = "\033[1m" if use_color else ""
        self.RESET = "\033[0m" if use_color else ""

    def format(self, record):
        """Formats a log record into an aligned string, one prefix per line."""
        color = self.LEVEL_COLORS.get(record.levelno, "") if self.use_color else ""
        level_name = record.levelname[:5]

        name_parts = record.name.split(".")
        topic = name_parts[1] if len(name_parts) > 1 else record.name
        topic = topic[: self.TOPIC_WIDTH]

        context = getattr(record, "context", "")
        context_str = f"[{context}]" if context else ""
        time_str = f"{self.formatTime(record, self.datefmt)} " if self.show_time else ""

        prefix = (
            f"{time_str}{color}{level_name:<5}{self.RESET}:"
            f"{self.BOLD}{topic:<{self.TOPIC_WIDTH}}{self.RESET}{context_str}: "
        )
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return "\n".join(f"{prefix}{line}" for line in message.split("\n"))
