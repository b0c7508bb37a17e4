"""
MyTeacher - Logging

Plain text in development, one JSON object per line in production. Every
record carries the request id, the acting staff user and, where a handler
binds one, the student whose record is being touched.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from myteacher.core.config import settings

_request_id: ContextVar[str] = ContextVar("request_id", default="")
_user_id: ContextVar[str] = ContextVar("user_id", default="")
_student_id: ContextVar[str] = ContextVar("student_id", default="")

_CONTEXT_VARS = {"request_id": _request_id, "user_id": _user_id, "student_id": _student_id}

# LogRecord attributes that are not "extra" fields
_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def bind_context(**values: Optional[str]) -> None:
    """Bind request_id / user_id / student_id for the current task"""
    for key, value in values.items():
        _CONTEXT_VARS[key].set(str(value) if value else "")


def clear_context() -> None:
    for var in _CONTEXT_VARS.values():
        var.set("")


def current_context() -> Dict[str, str]:
    return {key: var.get() for key, var in _CONTEXT_VARS.items() if var.get()}


class JSONFormatter(logging.Formatter):
    """Structured output for log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(current_context())

        if record.exc_info and record.exc_info[0]:
            exc_type, exc, tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "traceback": traceback.format_exception(exc_type, exc, tb),
            }

        entry.update({k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS and not k.startswith("_")})
        return json.dumps(entry, default=str)


class ContextFormatter(logging.Formatter):
    """Development format with the bound request and user ids"""

    def format(self, record: logging.LogRecord) -> str:
        context = current_context()
        record.request_id = context.get("request_id", "-")
        record.user_id = context.get("user_id", "-")
        return super().format(record)


class MyTeacherLogger(logging.Logger):
    """Logger with helpers for the events operators search for"""

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float, **fields) -> None:
        level = logging.ERROR if status_code >= 500 else logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} ({duration_ms:.1f}ms)",
            extra={"event_type": "http_request", "http_status": status_code, "duration_ms": duration_ms, **fields},
        )

    def log_slow_request(self, method: str, path: str, duration_ms: float, threshold_ms: float) -> None:
        self.warning(
            f"Slow request {method} {path}: {duration_ms:.0f}ms (threshold {threshold_ms:.0f}ms)",
            extra={"event_type": "slow_request", "duration_ms": duration_ms},
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **fields) -> None:
        message = f"Auth {event} {'ok' if success else 'failed'}"
        if user_email:
            message += f" for {user_email}"
        if reason:
            message += f": {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={"event_type": "auth", "auth_event": event, "auth_success": success, **fields},
        )

    def log_audit_event(self, action: str, entity_type: str, entity_id: Optional[str],
                        actor_id: Optional[str] = None, student_id: Optional[str] = None) -> None:
        """Mirror of an AuditLog row for log search; the table stays the system of record"""
        self.info(
            f"Audit {action} {entity_type}:{entity_id or '-'} by {actor_id or 'system'}",
            extra={"event_type": "audit", "audit_action": action, "audited_student_id": student_id},
        )

    def log_enforcement(self, meeting_id: str, action: str, errors: Iterable[Dict[str, str]]) -> None:
        """A close or implement attempt blocked by compliance rules"""
        codes = [e.get("code") for e in errors]
        self.warning(
            f"Compliance blocked {action} of meeting {meeting_id}: {', '.join(codes) or 'no codes'}",
            extra={"event_type": "enforcement", "meeting_id": meeting_id, "error_codes": codes},
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None, **fields) -> None:
        self.error(
            f"{context or 'unhandled'} failed: {type(error).__name__}: {error}",
            exc_info=error,
            extra={"event_type": "error", "error_type": type(error).__name__, **fields},
        )


def setup_logging() -> MyTeacherLogger:
    logging.setLoggerClass(MyTeacherLogger)
    log = logging.getLogger("myteacher")
    log.__class__ = MyTeacherLogger
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    log.propagate = False
    log.handlers.clear()

    json_output = settings.ENVIRONMENT == "production"
    if json_output:
        file_formatter = console_formatter = JSONFormatter()
    else:
        file_formatter = ContextFormatter(
            "%(asctime)s %(levelname)-8s [%(request_id)s] [%(user_id)s] %(module)s:%(lineno)d %(message)s"
        )
        console_formatter = ContextFormatter("%(levelname)-8s [%(request_id)s] %(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(console_formatter)
    log.addHandler(console)

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=10 if json_output else 5)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        log.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "anthropic", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    log.debug(f"Logging ready (environment={settings.ENVIRONMENT}, json={json_output})")
    return log


logger: MyTeacherLogger = setup_logging()
