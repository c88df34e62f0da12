"""Logging configuration."""
import logging
from rich.logging import RichHandler

ROOT_LOGGER = "tradecycle"


class DatabaseLogHandler(logging.Handler):
    """Mirror log records into the system_logs table.

    The category comes from ``extra={"category": ...}`` when given, otherwise
    from the first component below the root logger name
    (``tradecycle.orchestrator.loop`` -> ``ORCHESTRATOR``).
    """

    def __init__(self, sink, level=logging.INFO):
        super().__init__(level)
        self.sink = sink

    @staticmethod
    def category_for(record):
        category = getattr(record, "category", None)
        if category:
            return str(getattr(category, "value", category))
        parts = record.name.split(".")
        if len(parts) > 1 and parts[0] == ROOT_LOGGER:
            return parts[1].upper()
        return "SYSTEM"

    def emit(self, record):
        try:
            context = getattr(record, "context", None)
            if record.exc_info and record.exc_info[1] is not None:
                context = dict(context or {})
                context["exception"] = repr(record.exc_info[1])
            self.sink.append_log(
                record.levelname,
                self.category_for(record),
                record.getMessage(),
                context,
            )
        except Exception:
            self.handleError(record)


def setup_logging(level="INFO", log_file=None, db=None):
    """Configure logging with rich console, optional file handler and DB sink."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(numeric_level)

    if not any(not isinstance(h, DatabaseLogHandler) for h in root.handlers):
        console_handler = RichHandler(level=numeric_level, rich_tracebacks=True, markup=False)
        root.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            file_handler.setFormatter(file_formatter)
            root.addHandler(file_handler)

    if db is not None:
        for handler in [h for h in root.handlers if isinstance(h, DatabaseLogHandler)]:
            root.removeHandler(handler)
        root.addHandler(DatabaseLogHandler(db, level=max(numeric_level, logging.INFO)))

    return root
