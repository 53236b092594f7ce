"""
Audit Models for Kakeibo

Each write a household member makes (and each failed load or save)
becomes an AuditEvent. Events go to the structured log and, when
enabled, are appended to the auditLog collection.

The auditLog collection is append-only: nothing in the app updates
or deletes an event.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every user action that writes has its own event type.
    """
    # Session
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"

    # Taxonomy
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    TAG_CREATED = "tag_created"
    TAG_UPDATED = "tag_updated"
    TAG_DELETED = "tag_deleted"
    PAYMENT_METHOD_CREATED = "payment_method_created"
    PAYMENT_METHOD_UPDATED = "payment_method_updated"
    PAYMENT_METHOD_DELETED = "payment_method_deleted"
    ORDER_UPDATED = "order_updated"
    DEFAULTS_SEEDED = "defaults_seeded"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Profile
    PROFILE_UPDATED = "profile_updated"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"
    PARTIAL_WRITE = "partial_write"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry of the audit trail.

    Serialized twice: flat for the log line, camelCase for the store.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'category', 'tag', 'expense')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="uid of the signed-in user, when known"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all writes of one cascade delete)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Short English summary for the log reader"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload, e.g. the created name or the reordered ids"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_document(self) -> dict:
        """
        Convert to a document for the auditLog collection.

        Details are JSON-encoded so every backend can store them as one field.
        """
        import json

        return {
            "eventId": str(self.event_id),
            "timestamp": self.timestamp,
            "eventType": self.event_type.value,
            "severity": self.severity.value,
            "entityType": self.entity_type or "",
            "entityId": self.entity_id or "",
            "userId": self.user_id or "",
            "correlationId": str(self.correlation_id) if self.correlation_id else "",
            "description": self.description,
            "detailsJson": json.dumps(self.details, ensure_ascii=False, default=str),
            "errorMessage": self.error_message or "",
            "isUserAction": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("category", category_id, name, ...)
        event = AuditEventBuilder.save_failed("expense", error, ...)
    """

    _CREATED = {
        "category": AuditEventType.CATEGORY_CREATED,
        "tag": AuditEventType.TAG_CREATED,
        "payment_method": AuditEventType.PAYMENT_METHOD_CREATED,
        "expense": AuditEventType.EXPENSE_CREATED,
    }
    _UPDATED = {
        "category": AuditEventType.CATEGORY_UPDATED,
        "tag": AuditEventType.TAG_UPDATED,
        "payment_method": AuditEventType.PAYMENT_METHOD_UPDATED,
        "expense": AuditEventType.EXPENSE_UPDATED,
        "profile": AuditEventType.PROFILE_UPDATED,
    }
    _DELETED = {
        "category": AuditEventType.CATEGORY_DELETED,
        "tag": AuditEventType.TAG_DELETED,
        "payment_method": AuditEventType.PAYMENT_METHOD_DELETED,
        "expense": AuditEventType.EXPENSE_DELETED,
    }

    @staticmethod
    def signed_in(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User signed in",
            is_user_action=True,
        )

    @staticmethod
    def signed_out(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_OUT,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User signed out",
            is_user_action=True,
        )

    @classmethod
    def entity_created(
        cls,
        entity_type: str,
        entity_id: str,
        details: dict[str, Any],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=cls._CREATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entity_type} created",
            details=details,
            is_user_action=True,
        )

    @classmethod
    def entity_updated(
        cls,
        entity_type: str,
        entity_id: str,
        fields: list[str],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=cls._UPDATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entity_type} updated: {', '.join(fields)}",
            details={"fields": fields},
            is_user_action=True,
        )

    @classmethod
    def entity_deleted(
        cls,
        entity_type: str,
        entity_id: str,
        details: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=cls._DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entity_type} deleted",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def order_updated(
        entity_type: str,
        ordered_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORDER_UPDATED,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type} order updated ({len(ordered_ids)} items)",
            details={"ordered_ids": ordered_ids},
            is_user_action=True,
        )

    @staticmethod
    def defaults_seeded(
        entity_type: str,
        created_names: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULTS_SEEDED,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Seeded {len(created_names)} default {entity_type} entries",
            details={"created": created_names},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entity_type} input rejected with {len(issues)} issue(s)",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def load_failed(
        collection: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection,
            user_id=user_id,
            description=f"Failed to load {collection}",
            error_message=error_message,
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        action: str,
        error_message: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Failed to {action} {entity_type}",
            details={"action": action},
            error_message=error_message,
        )

    @staticmethod
    def partial_write(
        entity_type: str,
        entity_id: str,
        completed_ids: list[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_WRITE,
            severity=AuditSeverity.CRITICAL,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type} write left partially applied",
            details={"completed_ids": completed_ids},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
            correlation_id=correlation_id,
        )
