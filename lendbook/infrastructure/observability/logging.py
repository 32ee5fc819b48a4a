"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from lendbook.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
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


def log_ledger_operation(
    operation: str,
    agreement_id: Any,
    installment_id: Optional[Any] = None,
    status: Optional[str] = None,
    agreement_closed: Optional[bool] = None,
    amount_cents: Optional[int] = None,
) -> None:
    """Log structured outcome of a committed ledger operation"""
    logging.getLogger("lendbook.ledger").info(
        "Ledger operation committed",
        extra={
            "step": "ledger_commit",
            "operation": operation,
            "agreement_id": str(agreement_id) if agreement_id else None,
            "installment_id": str(installment_id) if installment_id else None,
            "installment_status": status,
            "agreement_closed": agreement_closed,
            "amount_cents": amount_cents,
        },
    )


def log_profile_calculated(
    debtor_id: Any,
    score: int,
    risk_level: str,
    on_time_payment_rate: float,
    overdue_count: int,
    duration_ms: float,
) -> None:
    """Log structured credit profile outcome for analysis"""
    logging.getLogger("lendbook.credit").info(
        "Credit profile calculated",
        extra={
            "step": "credit_profile",
            "debtor_id": str(debtor_id),
            "score": score,
            "risk_level": risk_level,
            "on_time_payment_rate": on_time_payment_rate,
            "overdue_count": overdue_count,
            "duration_ms": duration_ms,
        },
    )
