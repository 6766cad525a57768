import enum
import uuid

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import NOT_DELETED, LifecycleMixin, TimestampMixin, UUIDMixin

DEFAULT_DOWNLOAD_PERIOD = "00:00~00:00"


class GroupField(str, enum.Enum):
    ID = "id"
    MODEL_ID = "model_id"
    FIRMWARE_ID = "firmware_id"
    NAME = "name"
    STATUS = "status"


class Group(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "groups"
    __table_args__ = (
        Index(
            "uq_groups_model_name_live",
            "model_id",
            "name",
            unique=True,
            postgresql_where=NOT_DELETED,
            sqlite_where=NOT_DELETED,
        ),
    )

    ENTITY_NAME = "Group"
    Field = GroupField
    COLUMNS = {
        GroupField.ID: "id",
        GroupField.MODEL_ID: "model_id",
        GroupField.FIRMWARE_ID: "firmware_id",
        GroupField.NAME: "name",
        GroupField.STATUS: "status",
    }

    model_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("models.id"), nullable=False, index=True)
    firmware_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("firmwares.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    download_period: Mapped[str] = mapped_column(String(11), default=DEFAULT_DOWNLOAD_PERIOD, nullable=False)
