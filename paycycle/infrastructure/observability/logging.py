"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from paycycle.config import settings

logger = logging.getLogger("paycycle")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure root logging: JSON lines by default, plain text for local debugging"""
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if (fmt or settings.log_format) == "json":
        formatter: logging.Formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_recalculation(scope: str, entry_count: int, changed_count: int) -> None:
    """Log a batch re-projection outcome"""
    logger.info(
        "Recalculation completed",
        extra={
            "step": "recalculate",
            "scope": scope,
            "entry_count": entry_count,
            "changed_count": changed_count,
        },
    )


def log_skipped_items(view: str, skipped: int, total: int) -> None:
    """Log malformed items dropped by an aggregation"""
    logger.warning(
        "Skipped malformed items",
        extra={"step": "aggregate", "view": view, "skipped": skipped, "total": total},
    )


def log_slow_aggregation(view: str, item_count: int, duration_ms: float) -> None:
    logger.warning(
        "Slow aggregation",
        extra={"step": "aggregate", "view": view, "item_count": item_count, "duration_ms": duration_ms},
    )


def log_fix_application(
    instrument_count: int,
    entry_count: int,
    phase: str,
    error: Optional[str] = None,
) -> None:
    """Log the outcome of a configuration fix application"""
    if error is None:
        logger.info(
            "Fix application completed",
            extra={
                "step": "apply_fixes",
                "phase": phase,
                "instrument_count": instrument_count,
                "entry_count": entry_count,
            },
        )
    else:
        logger.error(
            "Fix application failed",
            extra={
                "step": "apply_fixes",
                "phase": phase,
                "instrument_count": instrument_count,
                "entry_count": entry_count,
                "error": error,
            },
        )
