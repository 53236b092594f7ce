"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of who changed the household data
2. Debugging capability when a remote write fails
3. A record of partially applied writes that need attention

The audit logger:
- Always writes a structured (JSON) log line
- Optionally appends the event to the auditLog collection
- Never lets an audit write failure break the main flow
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from kakeibo.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from kakeibo.models.expense import Collection
from kakeibo.models.validation import ValidationIssue
from kakeibo.services.storage.interface import DocumentStoreInterface, StorageError


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    logging.basicConfig(format="%(message)s", level=level.upper())
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
            structlog.processors.JSONRenderer(ensure_ascii=False),
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
    2. The auditLog collection (when a store is given)
    """

    def __init__(self, store: Optional[DocumentStoreInterface] = None):
        """
        Initialize audit logger.

        Args:
            store: Document store for persistence.
                   If None, only logs locally.
        """
        self._store = store
        self._logger = structlog.get_logger("kakeibo.audit")

    @property
    def persists(self) -> bool:
        return self._store is not None

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the store if configured.

        Returns True if the store write succeeded (or no store configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store is None:
            return True

        try:
            await self._store.add(Collection.AUDIT_LOG, event.to_document())
        except StorageError as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False
        return True

    async def log_created(
        self,
        entity_type: str,
        entity_id: str,
        details: dict[str, Any],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_created(
            entity_type, entity_id, details,
            user_id=user_id, correlation_id=correlation_id,
        ))

    async def log_updated(
        self,
        entity_type: str,
        entity_id: str,
        fields: list[str],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_updated(
            entity_type, entity_id, fields,
            user_id=user_id, correlation_id=correlation_id,
        ))

    async def log_deleted(
        self,
        entity_type: str,
        entity_id: str,
        details: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_deleted(
            entity_type, entity_id, details,
            user_id=user_id, correlation_id=correlation_id,
        ))

    async def log_order_updated(
        self,
        entity_type: str,
        ordered_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.order_updated(
            entity_type, ordered_ids, correlation_id=correlation_id,
        ))

    async def log_defaults_seeded(
        self,
        entity_type: str,
        created_names: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.defaults_seeded(
            entity_type, created_names, correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[ValidationIssue],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected input."""
        await self.log(AuditEventBuilder.validation_failed(
            entity_type,
            [issue.model_dump() for issue in issues],
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_load_failed(
        self,
        collection: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.load_failed(
            collection, error_message, user_id=user_id,
        ))

    async def log_save_failed(
        self,
        entity_type: str,
        action: str,
        error_message: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            entity_type, action, error_message,
            entity_id=entity_id, user_id=user_id, correlation_id=correlation_id,
        ))

    async def log_partial_write(
        self,
        entity_type: str,
        entity_id: str,
        completed_ids: list[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a multi-step write that was left half applied."""
        await self.log(AuditEventBuilder.partial_write(
            entity_type, entity_id, completed_ids, error_message,
            correlation_id=correlation_id,
        ))

    async def log_signed_in(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.signed_in(user_id))

    async def log_signed_out(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.signed_out(user_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a cascade delete).
    Pass it through all subsequent operations.
    """
    return uuid4()
