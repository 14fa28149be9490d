import logging

from pythonjsonlogger import jsonlogger

from codex.config import LOG_LEVEL, SERVICE_NAME


class ContextDefaultsFilter(logging.Filter):
    """Fill the domain context keys so every JSON line has the same schema."""

    CONTEXT_KEYS = ("user_id", "contest_id", "problem_id", "submission_id", "promo_id", "blog_id")

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        for key in self.CONTEXT_KEYS:
            if not hasattr(record, key):
                setattr(record, key, None)
        if not hasattr(record, "service"):
            record.service = self.service_name
        return True


def setup_logging() -> None:
    """Configure root logger to output structured JSON logs to stdout."""
    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)

    handler = logging.StreamHandler()
    fmt = (
        "%(asctime)s %(levelname)s %(name)s %(message)s service=%(service)s "
        "user_id=%(user_id)s contest_id=%(contest_id)s problem_id=%(problem_id)s "
        "submission_id=%(submission_id)s promo_id=%(promo_id)s blog_id=%(blog_id)s"
    )
    formatter = jsonlogger.JsonFormatter(
        fmt,
        rename_fields={
            "levelname": "level",
            "asctime": "time",
        },
    )
    handler.setFormatter(formatter)
    handler.addFilter(ContextDefaultsFilter(SERVICE_NAME))

    root.handlers.clear()
    root.addHandler(handler)
    logging.captureWarnings(True)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True
