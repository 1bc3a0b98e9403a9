import logging
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from phutho_rate.core.config import settings


class RateJsonFormatter(JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    root = logging.getLogger()
    json_output = settings.LOG_JSON if json_output is None else json_output

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(RateJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    # idempotent when the app module is imported more than once (tests, reloader)
    for existing in list(root.handlers):
        if getattr(existing, "_phutho_rate", False):
            root.removeHandler(existing)
    handler._phutho_rate = True
    root.addHandler(handler)
    root.setLevel(level or settings.LOG_LEVEL)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
