"""CSV exports. They share the list endpoints' filter semantics but are not paginated."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager
from app.models.device import DeviceField
from app.models.device_model import DeviceModel, DeviceModelField
from app.models.firmware import FirmwareField
from app.models.group import GroupField
from app.models.profile import Profile
from app.schemas.query import QueryOptions
from app.services.common import require_reference
from app.services.csv_io import write_csv
from app.services.query_builder import (
    DEVICE_QUERY,
    FIRMWARE_QUERY,
    GROUP_QUERY,
    PARAMETER_QUERY,
    PROFILE_QUERY,
    EntityQueryBuilder,
)

logger = logging.getLogger(__name__)

PARAMETER_EXPORT = ("id", "path", "data_type", "description", "status", "created_at", "updated_at", "updated_by")
PROFILE_EXPORT = (
    "id",
    "name",
    "msg_type",
    "return_commands",
    "return_events",
    "return_params",
    "return_unique_key_sets",
    "allow_partial",
    "send_resp",
    "first_level_only",
    "max_depth",
    "tags",
    "description",
    "status",
    "created_at",
    "updated_at",
    "updated_by",
    "parameter_paths",
)
FIRMWARE_EXPORT = ("id", "model_id", "name", "file_path", "description", "status", "created_at", "updated_at", "updated_by")
GROUP_EXPORT = (
    "id",
    "model_id",
    "firmware_id",
    "name",
    "description",
    "download_period",
    "status",
    "created_at",
    "updated_at",
    "updated_by",
)
DEVICE_EXPORT = (
    "id",
    "mac_address",
    "endpoint_id",
    "model_id",
    "group_id",
    "description",
    "status",
    "created_at",
    "updated_at",
    "updated_by",
)


def _display_zone():
    try:
        return ZoneInfo(settings.DISPLAY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown DISPLAY_TIMEZONE %r, using UTC", settings.DISPLAY_TIMEZONE)
        return timezone.utc


def csv_value(value: Any, zone=timezone.utc) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(zone).isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ";".join(str(v) for v in value)
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(value)


def _export(
    tx: TransactionManager,
    builder: EntityQueryBuilder,
    options: QueryOptions,
    columns: Sequence[str],
    *scope: Condition,
    preload=(),
    extra=None,
    parent=None,
) -> str:
    prepared = builder.prepare(options, *scope, paginate=False)
    zone = _display_zone()
    with tx.read() as uow:
        if parent is not None:
            parent(uow)
        rows = store.list_rows(uow, builder.model, prepared.exporting, preload=preload)
        lines = []
        for row in rows:
            values = {name: getattr(row, name) for name in columns if name != "parameter_paths"}
            if extra is not None:
                values.update(extra(row))
            lines.append([csv_value(values.get(name), zone) for name in columns])
    logger.info("exported %s %s rows", len(lines), builder.model.ENTITY_NAME)
    return write_csv(columns, lines)


def _model_check(model_id: uuid.UUID):
    def check(uow):
        require_reference(
            uow,
            DeviceModel,
            Condition(DeviceModelField.ID, model_id),
            field="model_id",
            message=f"model not found with id: {model_id}",
        )

    return check


def export_parameters_csv(tx: TransactionManager, options: QueryOptions) -> str:
    return _export(tx, PARAMETER_QUERY, options, PARAMETER_EXPORT)


def _profile_parameter_paths(profile: Profile) -> dict[str, Any]:
    paths = [link.parameter.path for link in profile.profile_parameters if link.parameter is not None]
    return {"parameter_paths": paths}


def export_profiles_csv(tx: TransactionManager, options: QueryOptions) -> str:
    return _export(
        tx,
        PROFILE_QUERY,
        options,
        PROFILE_EXPORT,
        preload=(Profile.profile_parameters,),
        extra=_profile_parameter_paths,
    )


def export_firmwares_csv(tx: TransactionManager, model_id: uuid.UUID, options: QueryOptions) -> str:
    return _export(
        tx,
        FIRMWARE_QUERY,
        options,
        FIRMWARE_EXPORT,
        Condition(FirmwareField.MODEL_ID, model_id),
        parent=_model_check(model_id),
    )


def export_groups_csv(tx: TransactionManager, model_id: uuid.UUID, options: QueryOptions) -> str:
    return _export(
        tx,
        GROUP_QUERY,
        options,
        GROUP_EXPORT,
        Condition(GroupField.MODEL_ID, model_id),
        parent=_model_check(model_id),
    )


def export_devices_csv(tx: TransactionManager, model_id: uuid.UUID, options: QueryOptions) -> str:
    return _export(
        tx,
        DEVICE_QUERY,
        options,
        DEVICE_EXPORT,
        Condition(DeviceField.MODEL_ID, model_id),
        parent=_model_check(model_id),
    )
