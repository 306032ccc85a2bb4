import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from pythonjsonlogger import jsonlogger

from app.core.config import settings

# Per-request context picked up by every log line
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
employee_id_var: ContextVar[Optional[int]] = ContextVar("employee_id", default=None)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines carrying the request id, the authenticated employee and the civil time."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        employee_id = employee_id_var.get()
        if employee_id is not None:
            log_record["employee_id"] = employee_id

        if not log_record.get("timestamp"):
            created = datetime.fromtimestamp(record.created, tz=timezone.utc)
            log_record["timestamp"] = created.isoformat()
            log_record["civil_time"] = created.astimezone(ZoneInfo(settings.timezone)).isoformat()

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname


def setup_logging():
    logger = logging.getLogger()
    # Idempotent: the app module may be imported more than once under test
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in logger.handlers):
        return
    log_handler = logging.StreamHandler()
    formatter = CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)")
    log_handler.setFormatter(formatter)
    logger.addHandler(log_handler)
    logger.setLevel(logging.INFO)

    # Suppress verbose logs from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
