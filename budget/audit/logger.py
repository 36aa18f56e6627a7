"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. A trail for silent adjustments, which never appear in history
2. Debugging capability
3. Visibility of persistence failures

The audit logger:
- Is synchronous, like every ledger operation
- Gracefully handles failures (a broken audit sink never breaks the ledger)
"""

from typing import Optional

import structlog

from budget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from budget.models.ledger import Transaction
from budget.services.storage import AuditSinkInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit sink, if one is configured
    """

    def __init__(
        self,
        sink: Optional[AuditSinkInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Backend for persisting events.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("budget.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                return self._sink.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_transaction(self, tx: Transaction, recorded: bool) -> None:
        """Log a new transaction, recorded or silent."""
        build = (
            AuditEventBuilder.transaction_recorded
            if recorded
            else AuditEventBuilder.silent_adjustment_applied
        )
        self.log(build(
            transaction_id=tx.id,
            amount_cents=tx.amount_cents,
            from_envelope_id=tx.from_envelope_id,
            to_envelope_id=tx.to_envelope_id,
        ))

    def log_rejected(self, action: str, reason: str) -> None:
        self.log(AuditEventBuilder.operation_rejected(action=action, reason=reason))

    def log_cancelled(self, action: str) -> None:
        self.log(AuditEventBuilder.user_cancelled(action=action))

    def log_save_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(error_message=error_message))
