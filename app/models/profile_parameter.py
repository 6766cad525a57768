import enum
import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.models.common import LifecycleMixin, TimestampMixin, UUIDMixin
from app.models.parameter import Parameter


class ProfileParameterField(str, enum.Enum):
    ID = "id"
    PROFILE_ID = "profile_id"
    PARAMETER_ID = "parameter_id"
    STATUS = "status"


class ProfileParameter(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "profile_parameters"

    ENTITY_NAME = "Profile parameter"
    Field = ProfileParameterField
    COLUMNS = {
        ProfileParameterField.ID: "id",
        ProfileParameterField.PROFILE_ID: "profile_id",
        ProfileParameterField.PARAMETER_ID: "parameter_id",
        ProfileParameterField.STATUS: "status",
    }

    profile_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)
    parameter_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("parameters.id"), nullable=False, index=True)
    default_value: Mapped[str] = mapped_column(Text, default="", nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    parameter: Mapped[Parameter] = relationship(Parameter, lazy="joined", viewonly=True)
