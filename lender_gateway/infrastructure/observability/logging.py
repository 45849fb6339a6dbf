"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "lender-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_submission(
    application_id: str,
    priority: str,
    lender_ids: List[str],
    submitted_lenders: List[str],
    duration_ms: float,
) -> None:
    """Log structured fan-out outcome for analysis"""
    logging.getLogger("lender_gateway.orchestrator").info(
        "Submission completed",
        extra={
            "application_id": application_id,
            "step": "fanout_complete",
            "priority": priority,
            "lenders_targeted": lender_ids,
            "lenders_submitted": submitted_lenders,
            "duration_ms": duration_ms,
        },
    )


def log_lender_outcome(application_id: str, lender_id: str, status: str, duration_ms: float) -> None:
    """Log one lender's decision"""
    logging.getLogger("lender_gateway.orchestrator").info(
        "Lender responded",
        extra={
            "application_id": application_id,
            "lender_id": lender_id,
            "step": "lender_response",
            "status": status,
            "duration_ms": duration_ms,
        },
    )
