import enum
import uuid

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import NOT_DELETED, LifecycleMixin, TimestampMixin, UUIDMixin


class FirmwareField(str, enum.Enum):
    ID = "id"
    MODEL_ID = "model_id"
    NAME = "name"
    STATUS = "status"


class Firmware(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "firmwares"
    __table_args__ = (
        Index("uq_firmwares_name_live", "name", unique=True, postgresql_where=NOT_DELETED, sqlite_where=NOT_DELETED),
    )

    ENTITY_NAME = "Firmware"
    Field = FirmwareField
    COLUMNS = {
        FirmwareField.ID: "id",
        FirmwareField.MODEL_ID: "model_id",
        FirmwareField.NAME: "name",
        FirmwareField.STATUS: "status",
    }

    model_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("models.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(Text, default="", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
