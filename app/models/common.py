import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import DateTime, String, text

def utcnow():
    return datetime.now(timezone.utc)

class EntityStatus(str, enum.Enum):
    ENABLE = "ENABLE"
    DISABLE = "DISABLE"
    DELETE = "DELETE"

# Statuses visible to default list/find/count operations.
VISIBLE_STATUSES = (EntityStatus.ENABLE.value, EntityStatus.DISABLE.value)

# Partial unique indexes cover live rows only.
NOT_DELETED = text("status <> 'DELETE'")

class UUIDMixin:
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class LifecycleMixin:
    status: Mapped[str] = mapped_column(String(16), default=EntityStatus.ENABLE.value, nullable=False)
    updated_by: Mapped[str] = mapped_column(String(255), default="", nullable=False)
