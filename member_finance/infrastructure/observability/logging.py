"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from member_finance.config import settings


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


def log_loan_transition(
    request_id: str,
    loan_id: str,
    action: str,
    from_status: str,
    to_status: str,
    actor_id: str,
) -> None:
    """Log a committed loan status change"""
    logging.info(
        "Loan transition",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "step": "loan_transition",
            "action": action,
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
        },
    )


def log_transaction_recorded(
    request_id: str,
    transaction_id: int,
    user_id: str,
    txn_type: str,
    amount: Decimal,
    actor_id: str,
) -> None:
    """Log a committed ledger entry"""
    logging.info(
        "Transaction recorded",
        extra={
            "request_id": request_id,
            "transaction_id": transaction_id,
            "user_id": user_id,
            "step": "ledger_append",
            "transaction_type": txn_type,
            "amount": str(amount),
            "actor_id": actor_id,
        },
    )
