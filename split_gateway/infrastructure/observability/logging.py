"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger.json import JsonFormatter

from split_gateway.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_split_created(
    request_id: str,
    owner_id: str,
    split_id: str,
    method: str,
    participant_count: int,
    duration_ms: float,
) -> None:
    """Log structured split creation for analysis"""
    logging.info(
        "Split created",
        extra={
            "request_id": request_id,
            "user_id": owner_id,
            "step": "split_created",
            "split_id": split_id,
            "method": method,
            "participant_count": participant_count,
            "duration_ms": duration_ms,
        },
    )


def log_allocation_rejected(request_id: str, user_id: str, method: str, reason: str, detail: str) -> None:
    """Log an allocation that failed validation and was not saved"""
    logging.warning(
        "Allocation rejected",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "allocation_rejected",
            "method": method,
            "reason": reason,
            "detail": detail,
        },
    )


def log_settlement_change(
    request_id: str,
    user_id: str,
    split_id: str,
    participant_id: str,
    status: str,
    actor: str,
) -> None:
    logging.info(
        "Settlement status changed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "settlement_change",
            "split_id": split_id,
            "participant_id": participant_id,
            "status": status,
            "actor": actor,
        },
    )


def log_split_deleted(request_id: str, user_id: str, split_id: str) -> None:
    logging.info(
        "Split deleted",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "split_deleted",
            "split_id": split_id,
        },
    )


def log_transaction_deleted(request_id: str, user_id: str, transaction_id: str, split_count: int) -> None:
    logging.info(
        "Transaction deleted",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "transaction_deleted",
            "transaction_id": transaction_id,
            "split_count": split_count,
        },
    )
