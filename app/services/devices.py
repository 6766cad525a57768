from __future__ import annotations

import logging
import re
import uuid
from typing import Any, BinaryIO

from app.core.config import settings
from app.core.errors import InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager, UnitOfWork
from app.models.device import Device, DeviceField
from app.models.device_model import DeviceModel, DeviceModelField
from app.models.group import Group, GroupField
from app.schemas.management import DeviceCreate, DeviceUpdate
from app.schemas.query import QueryOptions
from app.services.common import (
    AUDIT_FIELDS,
    duplicate_as_invalid,
    ensure_absent,
    require_reference,
    serialize_row,
)
from app.services.csv_io import cell, read_csv, require_header
from app.services.query_builder import DEVICE_QUERY

logger = logging.getLogger(__name__)

FIELDS = ("mac_address", "endpoint_id", "model_id", "group_id", "description", *AUDIT_FIELDS)
IMPORT_HEADER = ("MAC Address",)

_MAC_RE = re.compile(r"^[0-9a-f]{12}$")
_ENDPOINT_RE = re.compile(r"^os::[0-9A-F]{6}-[0-9A-F]{12}$")


def serialize_device(row: Device) -> dict[str, Any]:
    return serialize_row(row, FIELDS)


def normalize_mac(raw: str) -> str:
    return str(raw or "").strip().lower().replace(":", "").replace("-", "")


def is_valid_mac(mac: str) -> bool:
    return bool(_MAC_RE.fullmatch(mac))


def endpoint_id_for(mac: str) -> str:
    """``os::<OUI>-<MAC>`` with the MAC in upper case, e.g. ``os::A1B2C3-A1B2C3D4E5F6``."""
    upper = mac.upper()
    endpoint_id = f"os::{upper[:6]}-{upper}"
    if not _ENDPOINT_RE.fullmatch(endpoint_id):
        raise InvalidRequestError(f"invalid endpoint id: {endpoint_id}", field="mac_address")
    return endpoint_id


def _require_model(uow: UnitOfWork, model_id: uuid.UUID) -> DeviceModel:
    return require_reference(
        uow,
        DeviceModel,
        Condition(DeviceModelField.ID, model_id),
        field="model_id",
        message=f"model not found with id: {model_id}",
    )


def _require_group_of_model(uow: UnitOfWork, model_id: uuid.UUID, group_id: uuid.UUID) -> Group:
    return require_reference(
        uow,
        Group,
        Condition(GroupField.ID, group_id),
        Condition(GroupField.MODEL_ID, model_id),
        field="group_id",
        message=f"group {group_id} does not belong to model {model_id}",
    )


def _find_device(uow: UnitOfWork, model_id: uuid.UUID, device_id: uuid.UUID) -> Device:
    return store.find(uow, Device, Condition(DeviceField.ID, device_id), Condition(DeviceField.MODEL_ID, model_id))


def _duplicate_message(mac: str) -> str:
    return f"device already exists with mac address: {mac}"


def _new_device(mac: str, model_id: uuid.UUID, group_id: uuid.UUID, description: str | None, actor: str) -> Device:
    return Device(
        mac_address=mac,
        endpoint_id=endpoint_id_for(mac),
        model_id=model_id,
        group_id=group_id,
        description=description,
        updated_by=actor,
    )


def list_devices(tx: TransactionManager, model_id: uuid.UUID, options: QueryOptions) -> dict[str, Any]:
    prepared = DEVICE_QUERY.prepare(options, Condition(DeviceField.MODEL_ID, model_id))
    with tx.read() as uow:
        _require_model(uow, model_id)
        rows = store.list_rows(uow, Device, prepared.listing)
        total = store.count_rows(uow, Device, prepared.filtering)
        return {
            "rows": [serialize_device(r) for r in rows],
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
        }


def get_device(tx: TransactionManager, model_id: uuid.UUID, device_id: uuid.UUID) -> dict[str, Any]:
    with tx.read() as uow:
        return serialize_device(_find_device(uow, model_id, device_id))


def count_devices(tx: TransactionManager, model_id: uuid.UUID) -> int:
    with tx.read() as uow:
        _require_model(uow, model_id)
        return store.count_by_status(uow, Device, Condition(DeviceField.MODEL_ID, model_id))


def count_devices_in_group(tx: TransactionManager, model_id: uuid.UUID, group_id: uuid.UUID) -> int:
    with tx.read() as uow:
        _require_group_of_model(uow, model_id, group_id)
        return store.count_by_status(
            uow,
            Device,
            Condition(DeviceField.MODEL_ID, model_id),
            Condition(DeviceField.GROUP_ID, group_id),
        )


def create_device(
    tx: TransactionManager,
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    payload: DeviceCreate,
    actor: str,
) -> uuid.UUID:
    mac = normalize_mac(payload.mac_address)
    if not is_valid_mac(mac):
        raise InvalidRequestError(f"invalid mac address: {payload.mac_address}", field="mac_address")
    with tx.transaction() as uow:
        ensure_absent(
            uow,
            Device,
            Condition(DeviceField.MAC_ADDRESS, mac),
            field="mac_address",
            message=_duplicate_message(mac),
        )
        model = _require_model(uow, model_id)
        group = _require_group_of_model(uow, model.id, group_id)
        row = _new_device(mac, model.id, group.id, payload.description, actor)
        with duplicate_as_invalid("mac_address", _duplicate_message(mac)):
            store.insert(uow, row)
        device_id = row.id
    logger.info("device created id=%s mac=%s by=%s", device_id, mac, actor)
    return device_id


def import_devices_csv(
    tx: TransactionManager,
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    file: BinaryIO,
    actor: str,
) -> int:
    header, rows = read_csv(file)
    require_header(header, IMPORT_HEADER)
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        group = _require_group_of_model(uow, model.id, group_id)
        batch = store.BatchInserter(uow, settings.CSV_IMPORT_BATCH_SIZE)
        seen: set[str] = set()
        with duplicate_as_invalid("mac_address", "device already exists"):
            for line_no, row in enumerate(rows, start=2):
                mac = normalize_mac(cell(row, 0))
                if not is_valid_mac(mac):
                    logger.warning("skipping CSV line %s: invalid mac address %r", line_no, cell(row, 0))
                    continue
                if mac in seen:
                    raise InvalidRequestError(f"duplicate mac address in file: {mac}", field="mac_address")
                seen.add(mac)
                ensure_absent(
                    uow,
                    Device,
                    Condition(DeviceField.MAC_ADDRESS, mac),
                    field="mac_address",
                    message=_duplicate_message(mac),
                )
                batch.add(_new_device(mac, model.id, group.id, cell(row, 1) or None, actor))
            batch.flush()
        imported = batch.flushed
    logger.info("imported %s devices into group=%s by=%s", imported, group_id, actor)
    return imported


def update_device(
    tx: TransactionManager,
    model_id: uuid.UUID,
    device_id: uuid.UUID,
    payload: DeviceUpdate,
    actor: str,
) -> None:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        row = _find_device(uow, model.id, device_id)
        if changes.get("group_id") is not None:
            _require_group_of_model(uow, model.id, changes["group_id"])
        store.update(uow, row, **changes, updated_by=actor)


def delete_device(tx: TransactionManager, model_id: uuid.UUID, device_id: uuid.UUID, actor: str) -> None:
    with tx.transaction() as uow:
        row = _find_device(uow, model_id, device_id)
        store.change_status_to_delete(uow, row, actor)
    logger.info("device deleted id=%s by=%s", device_id, actor)
