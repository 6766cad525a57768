import enum

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import NOT_DELETED, LifecycleMixin, TimestampMixin, UUIDMixin


class ParameterField(str, enum.Enum):
    ID = "id"
    PATH = "path"
    STATUS = "status"


class Parameter(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "parameters"
    __table_args__ = (
        Index("uq_parameters_path_live", "path", unique=True, postgresql_where=NOT_DELETED, sqlite_where=NOT_DELETED),
    )

    ENTITY_NAME = "Parameter"
    Field = ParameterField
    COLUMNS = {
        ParameterField.ID: "id",
        ParameterField.PATH: "path",
        ParameterField.STATUS: "status",
    }

    path: Mapped[str] = mapped_column(String(512), nullable=False)
    data_type: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
