"""init
Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

NOT_DELETED = sa.text("status <> 'DELETE'")


def _audit_columns():
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ENABLE"),
        sa.Column("updated_by", sa.String(length=255), nullable=False, server_default=""),
    ]


def _live_unique_index(name, table, *columns):
    op.create_index(name, table, list(columns), unique=True, postgresql_where=NOT_DELETED, sqlite_where=NOT_DELETED)


def upgrade():
    op.create_table(
        "models",
        *_audit_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("vendor_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("manufacturer", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
    )
    _live_unique_index("uq_models_name_live", "models", "name")

    op.create_table(
        "firmwares",
        *_audit_columns(),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("models.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_firmwares_model_id", "firmwares", ["model_id"])
    _live_unique_index("uq_firmwares_name_live", "firmwares", "name")

    op.create_table(
        "groups",
        *_audit_columns(),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("models.id"), nullable=False),
        sa.Column("firmware_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("firmwares.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("download_period", sa.String(length=11), nullable=False, server_default="00:00~00:00"),
    )
    op.create_index("ix_groups_model_id", "groups", ["model_id"])
    _live_unique_index("uq_groups_model_name_live", "groups", "model_id", "name")

    op.create_table(
        "devices",
        *_audit_columns(),
        sa.Column("mac_address", sa.String(length=12), nullable=False),
        sa.Column("endpoint_id", sa.String(length=64), nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("models.id"), nullable=False),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("groups.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_devices_model_id", "devices", ["model_id"])
    op.create_index("ix_devices_group_id", "devices", ["group_id"])
    _live_unique_index("uq_devices_mac_address_live", "devices", "mac_address")

    op.create_table(
        "parameters",
        *_audit_columns(),
        sa.Column("path", sa.String(length=512), nullable=False),
        sa.Column("data_type", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
    )
    _live_unique_index("uq_parameters_path_live", "parameters", "path")

    op.create_table(
        "profiles",
        *_audit_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("msg_type", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("return_commands", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("return_events", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("return_params", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("return_unique_key_sets", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("allow_partial", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("send_resp", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("first_level_only", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("max_depth", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tags", postgresql.ARRAY(sa.String()), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("description", sa.Text(), nullable=True),
    )
    _live_unique_index("uq_profiles_name_live", "profiles", "name")

    op.create_table(
        "profile_parameters",
        *_audit_columns(),
        sa.Column("profile_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("parameter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("parameters.id"), nullable=False),
        sa.Column("default_value", sa.Text(), nullable=False, server_default=""),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_profile_parameters_profile_id", "profile_parameters", ["profile_id"])
    op.create_index("ix_profile_parameters_parameter_id", "profile_parameters", ["parameter_id"])


def downgrade():
    op.drop_table("profile_parameters")
    op.drop_table("profiles")
    op.drop_table("parameters")
    op.drop_table("devices")
    op.drop_table("groups")
    op.drop_table("firmwares")
    op.drop_table("models")
