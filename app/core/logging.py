"""Logging setup for the API and its background jobs."""

import logging
import sys
from typing import Any

from app.core.config import settings

# Context attributes copied from ``extra=`` into structured output
CONTEXT_FIELDS = ("action", "user_id", "appointment_id", "provider_id")


class StructuredFormatter(logging.Formatter):
    """Single-line key=value formatter for non-dev environments."""

    def format(self, record: logging.LogRecord) -> str:
        fields = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                fields[name] = value

        if record.exc_info:
            fields["exc"] = self.formatException(record.exc_info)

        return " ".join(f"{k}={v}" for k, v in fields.items())


def setup_logging(level: str | None = None) -> None:
    """Route all logging to stdout.

    Development gets a readable line format; every other environment gets
    ``StructuredFormatter``.
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if settings.is_dev:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.setLevel(log_level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # Third-party chatter
    for name, quiet_level in (
        ("uvicorn.access", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("passlib", logging.ERROR),
    ):
        logging.getLogger(name).setLevel(quiet_level)


class AuditLogger:
    """Records booking lifecycle events on the ``audit`` logger."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("audit")

    def log(
        self,
        action: str,
        actor_id: int | None,
        entity_type: str,
        entity_id: int | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        extra: dict[str, Any] = {"action": action, "user_id": actor_id}
        if entity_type == "appointment":
            extra["appointment_id"] = entity_id
        if metadata and "provider_id" in metadata:
            extra["provider_id"] = metadata["provider_id"]

        self.logger.info(
            f"{action} {entity_type}:{entity_id} by user:{actor_id} {metadata or {}}",
            extra=extra,
        )


audit_logger = AuditLogger()
