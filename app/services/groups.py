from __future__ import annotations

import logging
import re
import uuid
from typing import Any

from app.core.errors import InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager, UnitOfWork
from app.models.device_model import DeviceModel, DeviceModelField
from app.models.firmware import Firmware, FirmwareField
from app.models.group import Group, GroupField
from app.schemas.management import GroupCreate, GroupUpdate
from app.schemas.query import QueryOptions
from app.services.common import (
    AUDIT_FIELDS,
    duplicate_as_invalid,
    ensure_absent,
    require_reference,
    serialize_row,
)
from app.services.query_builder import GROUP_QUERY

logger = logging.getLogger(__name__)

FIELDS = ("model_id", "firmware_id", "name", "description", "download_period", *AUDIT_FIELDS)

DOWNLOAD_PERIOD_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)~([01]\d|2[0-3]):([0-5]\d)$")


def serialize_group(row: Group) -> dict[str, Any]:
    return serialize_row(row, FIELDS)


def validate_download_period(value: str) -> None:
    if not DOWNLOAD_PERIOD_RE.fullmatch(value or ""):
        raise InvalidRequestError(
            "download_period must look like HH:MM~HH:MM",
            field="download_period",
            detail=value,
        )


def _require_model(uow: UnitOfWork, model_id: uuid.UUID) -> DeviceModel:
    return require_reference(
        uow,
        DeviceModel,
        Condition(DeviceModelField.ID, model_id),
        field="model_id",
        message=f"model not found with id: {model_id}",
    )


def _require_firmware_of_model(uow: UnitOfWork, model_id: uuid.UUID, firmware_id: uuid.UUID) -> Firmware:
    return require_reference(
        uow,
        Firmware,
        Condition(FirmwareField.ID, firmware_id),
        Condition(FirmwareField.MODEL_ID, model_id),
        field="firmware_id",
        message=f"firmware {firmware_id} does not belong to model {model_id}",
    )


def _find_group(uow: UnitOfWork, model_id: uuid.UUID, group_id: uuid.UUID) -> Group:
    return store.find(uow, Group, Condition(GroupField.ID, group_id), Condition(GroupField.MODEL_ID, model_id))


def _duplicate_message(name: str) -> str:
    return f"group already exists with name: {name}"


def list_groups(tx: TransactionManager, model_id: uuid.UUID, options: QueryOptions) -> dict[str, Any]:
    prepared = GROUP_QUERY.prepare(options, Condition(GroupField.MODEL_ID, model_id))
    with tx.read() as uow:
        _require_model(uow, model_id)
        rows = store.list_rows(uow, Group, prepared.listing)
        total = store.count_rows(uow, Group, prepared.filtering)
        return {
            "rows": [serialize_group(r) for r in rows],
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
        }


def group_options(tx: TransactionManager, model_id: uuid.UUID) -> list[dict[str, str]]:
    with tx.read() as uow:
        _require_model(uow, model_id)
        rows = store.find_all(uow, Group, Condition(GroupField.MODEL_ID, model_id))
        return [{"id": str(r.id), "name": r.name} for r in sorted(rows, key=lambda r: r.name)]


def get_group(tx: TransactionManager, model_id: uuid.UUID, group_id: uuid.UUID) -> dict[str, Any]:
    with tx.read() as uow:
        return serialize_group(_find_group(uow, model_id, group_id))


def count_groups(tx: TransactionManager, model_id: uuid.UUID) -> int:
    with tx.read() as uow:
        _require_model(uow, model_id)
        return store.count_by_status(uow, Group, Condition(GroupField.MODEL_ID, model_id))


def create_group(tx: TransactionManager, model_id: uuid.UUID, payload: GroupCreate, actor: str) -> uuid.UUID:
    validate_download_period(payload.download_period)
    duplicate = _duplicate_message(payload.name)
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        ensure_absent(
            uow,
            Group,
            Condition(GroupField.MODEL_ID, model.id),
            Condition(GroupField.NAME, payload.name),
            field="name",
            message=duplicate,
        )
        if payload.firmware_id is not None:
            _require_firmware_of_model(uow, model.id, payload.firmware_id)
        row = Group(model_id=model.id, **payload.model_dump(), updated_by=actor)
        with duplicate_as_invalid("name", duplicate):
            store.insert(uow, row)
        group_id = row.id
    logger.info("group created id=%s model_id=%s by=%s", group_id, model_id, actor)
    return group_id


def update_group(
    tx: TransactionManager,
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    payload: GroupUpdate,
    actor: str,
) -> None:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "download_period" in changes:
        validate_download_period(changes["download_period"])
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        row = _find_group(uow, model.id, group_id)
        if changes.get("name") and changes["name"] != row.name:
            ensure_absent(
                uow,
                Group,
                Condition(GroupField.MODEL_ID, model.id),
                Condition(GroupField.NAME, changes["name"]),
                field="name",
                message=_duplicate_message(changes["name"]),
                exclude_id=row.id,
            )
        if changes.get("firmware_id") is not None:
            _require_firmware_of_model(uow, model.id, changes["firmware_id"])
        with duplicate_as_invalid("name", _duplicate_message(changes.get("name", row.name))):
            store.update(uow, row, **changes, updated_by=actor)


def delete_group(tx: TransactionManager, model_id: uuid.UUID, group_id: uuid.UUID, actor: str) -> None:
    with tx.transaction() as uow:
        row = _find_group(uow, model_id, group_id)
        store.change_status_to_delete(uow, row, actor)
    logger.info("group deleted id=%s model_id=%s by=%s", group_id, model_id, actor)
