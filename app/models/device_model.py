import enum

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import NOT_DELETED, LifecycleMixin, TimestampMixin, UUIDMixin


class DeviceModelField(str, enum.Enum):
    ID = "id"
    NAME = "name"
    STATUS = "status"


class DeviceModel(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "models"
    __table_args__ = (
        Index("uq_models_name_live", "name", unique=True, postgresql_where=NOT_DELETED, sqlite_where=NOT_DELETED),
    )

    ENTITY_NAME = "Model"
    Field = DeviceModelField
    COLUMNS = {
        DeviceModelField.ID: "id",
        DeviceModelField.NAME: "name",
        DeviceModelField.STATUS: "status",
    }

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    manufacturer: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
