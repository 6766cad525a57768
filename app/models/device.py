import enum
import uuid

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import NOT_DELETED, LifecycleMixin, TimestampMixin, UUIDMixin


class DeviceField(str, enum.Enum):
    ID = "id"
    MAC_ADDRESS = "mac_address"
    MODEL_ID = "model_id"
    GROUP_ID = "group_id"
    STATUS = "status"


class Device(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "devices"
    __table_args__ = (
        Index(
            "uq_devices_mac_address_live",
            "mac_address",
            unique=True,
            postgresql_where=NOT_DELETED,
            sqlite_where=NOT_DELETED,
        ),
    )

    ENTITY_NAME = "Device"
    Field = DeviceField
    COLUMNS = {
        DeviceField.ID: "id",
        DeviceField.MAC_ADDRESS: "mac_address",
        DeviceField.MODEL_ID: "model_id",
        DeviceField.GROUP_ID: "group_id",
        DeviceField.STATUS: "status",
    }

    mac_address: Mapped[str] = mapped_column(String(12), nullable=False)
    endpoint_id: Mapped[str] = mapped_column(String(64), nullable=False)
    model_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("models.id"), nullable=False, index=True)
    group_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("groups.id"), nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
