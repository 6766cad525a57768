import enum

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.models.common import NOT_DELETED, LifecycleMixin, TimestampMixin, UUIDMixin
from app.models.profile_parameter import ProfileParameter


class ProfileField(str, enum.Enum):
    ID = "id"
    NAME = "name"
    STATUS = "status"


class Profile(Base, UUIDMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "profiles"
    __table_args__ = (
        Index("uq_profiles_name_live", "name", unique=True, postgresql_where=NOT_DELETED, sqlite_where=NOT_DELETED),
    )

    ENTITY_NAME = "Profile"
    Field = ProfileField
    COLUMNS = {
        ProfileField.ID: "id",
        ProfileField.NAME: "name",
        ProfileField.STATUS: "status",
    }

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    msg_type: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    return_commands: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    return_events: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    return_params: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    return_unique_key_sets: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_partial: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    send_resp: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    first_level_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    max_depth: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tags: Mapped[list[str]] = mapped_column(
        JSON().with_variant(ARRAY(String), "postgresql"), default=list, nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    profile_parameters: Mapped[list[ProfileParameter]] = relationship(
        ProfileParameter,
        order_by=ProfileParameter.created_at,
        viewonly=True,
    )
