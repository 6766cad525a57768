from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, BinaryIO, Iterator

from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.errors import DBError, InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager, UnitOfWork
from app.models.common import VISIBLE_STATUSES
from app.models.device_model import DeviceModel, DeviceModelField
from app.models.firmware import Firmware, FirmwareField
from app.schemas.query import QueryOptions
from app.services.common import (
    AUDIT_FIELDS,
    duplicate_as_invalid,
    ensure_absent,
    require_reference,
    serialize_row,
)
from app.services.firmware_storage import FirmwareStorage, build_object_key, object_key_from_path
from app.services.query_builder import FIRMWARE_QUERY

logger = logging.getLogger(__name__)

FIELDS = ("model_id", "name", "file_path", "description", *AUDIT_FIELDS)


def serialize_firmware(row: Firmware) -> dict[str, Any]:
    return serialize_row(row, FIELDS)


@contextmanager
def _object_storage(action: str) -> Iterator[None]:
    try:
        yield
    except (BotoCoreError, ClientError) as exc:
        logger.error("firmware storage %s failed: %s", action, exc)
        raise DBError(detail=f"firmware storage {action} failed: {exc}") from exc


def _require_model(uow: UnitOfWork, model_id: uuid.UUID) -> DeviceModel:
    return require_reference(
        uow,
        DeviceModel,
        Condition(DeviceModelField.ID, model_id),
        field="model_id",
        message=f"model not found with id: {model_id}",
    )


def _find_firmware(uow: UnitOfWork, model_id: uuid.UUID, firmware_id: uuid.UUID) -> Firmware:
    return store.find(
        uow,
        Firmware,
        Condition(FirmwareField.ID, firmware_id),
        Condition(FirmwareField.MODEL_ID, model_id),
    )


def _duplicate_message(name: str) -> str:
    return f"firmware already exists with name: {name}"


def list_firmwares(tx: TransactionManager, model_id: uuid.UUID, options: QueryOptions) -> dict[str, Any]:
    prepared = FIRMWARE_QUERY.prepare(options, Condition(FirmwareField.MODEL_ID, model_id))
    with tx.read() as uow:
        _require_model(uow, model_id)
        rows = store.list_rows(uow, Firmware, prepared.listing)
        total = store.count_rows(uow, Firmware, prepared.filtering)
        return {
            "rows": [serialize_firmware(r) for r in rows],
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
        }


def firmware_options(tx: TransactionManager, model_id: uuid.UUID) -> list[dict[str, str]]:
    with tx.read() as uow:
        _require_model(uow, model_id)
        rows = store.find_all(uow, Firmware, Condition(FirmwareField.MODEL_ID, model_id))
        return [{"id": str(r.id), "name": r.name} for r in sorted(rows, key=lambda r: r.name)]


def get_firmware(tx: TransactionManager, model_id: uuid.UUID, firmware_id: uuid.UUID) -> dict[str, Any]:
    with tx.read() as uow:
        return serialize_firmware(_find_firmware(uow, model_id, firmware_id))


def count_firmwares(tx: TransactionManager, model_id: uuid.UUID) -> int:
    with tx.read() as uow:
        _require_model(uow, model_id)
        return store.count_by_status(uow, Firmware, Condition(FirmwareField.MODEL_ID, model_id))


def create_firmware(
    tx: TransactionManager,
    storage: FirmwareStorage,
    model_id: uuid.UUID,
    *,
    name: str,
    description: str | None,
    file: BinaryIO,
    content_type: str | None,
    actor: str,
) -> uuid.UUID:
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        ensure_absent(uow, Firmware, Condition(FirmwareField.NAME, name), field="name", message=_duplicate_message(name))
        with _object_storage("upload"):
            url = storage.upload(settings.FIRMWARE_BUCKET, build_object_key(model.name, name), file, content_type)
        row = Firmware(model_id=model.id, name=name, description=description, file_path=url, updated_by=actor)
        with duplicate_as_invalid("name", _duplicate_message(name)):
            store.insert(uow, row)
        firmware_id = row.id
    logger.info("firmware created id=%s model_id=%s by=%s", firmware_id, model_id, actor)
    return firmware_id


def update_firmware(
    tx: TransactionManager,
    storage: FirmwareStorage,
    model_id: uuid.UUID,
    firmware_id: uuid.UUID,
    *,
    name: str | None,
    description: str | None,
    status: str | None,
    file: BinaryIO | None,
    content_type: str | None,
    actor: str,
) -> None:
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        row = _find_firmware(uow, model_id, firmware_id)
        changes: dict[str, Any] = {"updated_by": actor}
        if name and name != row.name:
            ensure_absent(
                uow,
                Firmware,
                Condition(FirmwareField.NAME, name),
                field="name",
                message=_duplicate_message(name),
                exclude_id=row.id,
            )
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if status:
            if status not in VISIBLE_STATUSES:
                raise InvalidRequestError(f"invalid status: {status}", field="status")
            changes["status"] = status
        if file is not None:
            with _object_storage("upload"):
                changes["file_path"] = storage.upload(
                    settings.FIRMWARE_BUCKET,
                    build_object_key(model.name, name or row.name),
                    file,
                    content_type,
                )
        with duplicate_as_invalid("name", _duplicate_message(name or row.name)):
            store.update(uow, row, **changes)


def delete_firmware(
    tx: TransactionManager,
    storage: FirmwareStorage,
    model_id: uuid.UUID,
    firmware_id: uuid.UUID,
    actor: str,
) -> None:
    with tx.transaction() as uow:
        model = _require_model(uow, model_id)
        row = _find_firmware(uow, model_id, firmware_id)
        key = object_key_from_path(row.file_path, settings.FIRMWARE_BUCKET) or build_object_key(model.name, row.name)
        store.change_status_to_delete(uow, row, actor)
        # A rollback does not undo the move.
        with _object_storage("move"):
            storage.move(settings.FIRMWARE_BUCKET, settings.TRASH_BUCKET, key)
    logger.info("firmware deleted id=%s key=%s by=%s", firmware_id, key, actor)
