"""
Logging configuration for operator registration.

Provides structured JSON logging and typed registration events.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

# Context variable for run ID tracking
run_id_var: ContextVar[str] = ContextVar('run_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per record so a registration run can be
    followed in a log aggregator.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = run_id_var.get()
        if run_id:
            log_data["run_id"] = run_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class RegistrationEventLogger:
    """
    Logger for registration milestones.

    Each method emits one event with its fields attached to the record,
    so the JSON formatter renders them as top-level keys.
    """

    def __init__(self, name: str = "avs_operator.events"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, message: str, **fields: Any) -> None:
        extra_fields = {"event_type": event_type, **fields}
        self._logger.log(
            level,
            "%s: %s",
            event_type,
            message,
            extra={"extra_fields": extra_fields},
        )

    def core_registered(self, operator: str, tx_hash: str) -> None:
        self._log(
            logging.INFO,
            "CORE_REGISTERED",
            "Operator registered to core contracts",
            operator=operator,
            tx_hash=tx_hash,
        )

    def core_registration_skipped(self, operator: str, error: BaseException) -> None:
        self._log(
            logging.WARNING,
            "CORE_REGISTRATION_SKIPPED",
            f"Error in registering as operator: {error}",
            operator=operator,
            error_type=type(error).__name__,
            error=str(error),
        )

    def directory_initialized(self, operator: str, nonce: int, tx_hash: str) -> None:
        self._log(
            logging.INFO,
            "DIRECTORY_INITIALIZED",
            "AVS directory initialized",
            operator=operator,
            nonce=nonce,
            tx_hash=tx_hash,
        )

    def digest_computed(self, digest: str, salt: str, expiry: int) -> None:
        self._log(
            logging.INFO,
            "DIGEST_COMPUTED",
            f"Digest to sign: {digest}",
            digest=digest,
            salt=salt,
            expiry=expiry,
        )

    def digest_signed(self, operator: str, digest: str) -> None:
        self._log(
            logging.INFO,
            "DIGEST_SIGNED",
            "Digest signed with operator key",
            operator=operator,
            digest=digest,
        )

    def operator_registered(self, operator: str, service_manager: str, tx_hash: str) -> None:
        self._log(
            logging.INFO,
            "OPERATOR_REGISTERED",
            "Operator registered on AVS successfully",
            operator=operator,
            service_manager=service_manager,
            tx_hash=tx_hash,
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    stream=None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        stream: Output stream (default: stderr)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def set_run_id(run_id: Optional[str] = None) -> str:
    """
    Set the run ID for the current context.

    Returns:
        The run ID that was set
    """
    if run_id is None:
        run_id = str(uuid.uuid4())
    run_id_var.set(run_id)
    return run_id


# Global event logger instance
events = RegistrationEventLogger()
