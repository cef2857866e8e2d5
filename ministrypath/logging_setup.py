import structlog
import sys
from typing import Any, Dict, Optional
from datetime import datetime, date
from contextvars import ContextVar
from . import database
from .models import LogEntry

user_id_ctx: ContextVar[Optional[int]] = ContextVar("user_id", default=None)
user_email_ctx: ContextVar[Optional[str]] = ContextVar("user_email", default=None)
path_ctx: ContextVar[Optional[str]] = ContextVar("path", default=None)
method_ctx: ContextVar[Optional[str]] = ContextVar("method", default=None)
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Keys stored in dedicated LogEntry columns rather than the JSON context
RESERVED_KEYS = {"event", "status_code", "exception", "user_id", "user_email", "request_id"}


def mask_email(email: str) -> str:
    """
    Mask an email address to protect PII.
    Example: 'johndoe@example.com' -> 'j***@example.com'
    """
    if not email or "@" not in email:
        return email

    local_part, domain = email.split("@", 1)
    if len(local_part) <= 1:
        masked_local = "*" * 3
    else:
        masked_local = local_part[0] + "***"
    return f"{masked_local}@{domain}"


def _json_safe(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    return str(value)


def pii_masking_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mask PII fields in the event dict.
    Must run AFTER merge_contextvars so that it catches context-injected values too.
    """
    if "user_email" in event_dict and isinstance(event_dict["user_email"], str):
        event_dict["user_email"] = mask_email(event_dict["user_email"])

    return event_dict


def db_logger_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Persist the event as a LogEntry row.

    Anonymous INFO events (public catalog reads, health checks) are skipped.
    """
    u_id = event_dict.get("user_id") or user_id_ctx.get()
    u_email = event_dict.get("user_email") or mask_email(user_email_ctx.get())
    level = method_name.upper()

    if u_id is None and u_email is None and level == "INFO":
        return event_dict

    # Uses the current SessionLocal from the database module (tests swap it out)
    try:
        with database.SessionLocal() as db:
            log_entry = LogEntry(
                timestamp=datetime.utcnow(),
                level=level,
                event=event_dict.get("event"),
                user_id=u_id,
                user_email=u_email,
                path=path_ctx.get(),
                method=method_ctx.get(),
                status_code=event_dict.get("status_code"),
                request_id=event_dict.get("request_id") or request_id_ctx.get(),
                exception=event_dict.get("exception"),
                context=_json_safe({k: v for k, v in event_dict.items() if k not in RESERVED_KEYS})
            )
            db.add(log_entry)
            db.commit()
    except Exception as e:
        # Writing through the logger here would recurse
        sys.stderr.write(f"Failed to write log to DB: {str(e)}\n")

    return event_dict


def setup_logging():
    """Configure structlog. Can be called manually if needed to reconfigure."""
    processors = [
        structlog.contextvars.merge_contextvars,
        pii_masking_processor,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        db_logger_processor,
    ]

    if sys.stderr.isatty():
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def clear_request_context():
    """Reset per-request logging context (called at the start of each request)."""
    structlog.contextvars.clear_contextvars()
    user_id_ctx.set(None)
    user_email_ctx.set(None)


# Configure on import so loggers created later pick up the processors
setup_logging()

logger = structlog.get_logger()
