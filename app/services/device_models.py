from __future__ import annotations

import logging
import uuid
from typing import Any

from app.core.config import settings
from app.core.errors import InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager
from app.models.device_model import DeviceModel, DeviceModelField
from app.schemas.management import DeviceModelCreate, DeviceModelUpdate
from app.schemas.query import QueryOptions
from app.services.common import AUDIT_FIELDS, duplicate_as_invalid, ensure_absent, serialize_row
from app.services.query_builder import MODEL_QUERY

logger = logging.getLogger(__name__)

LIST_FIELDS = ("name", "vendor_name", "manufacturer", "description", *AUDIT_FIELDS)


def serialize_model(row: DeviceModel, *, with_image: bool = False) -> dict[str, Any]:
    data = serialize_row(row, LIST_FIELDS)
    if with_image:
        data["image"] = row.image
    return data


def _check_image(image: str | None) -> None:
    limit = settings.MAX_MODEL_IMAGE_KB * 1024
    if image and len(image.encode("utf-8")) > limit:
        raise InvalidRequestError(f"image must not exceed {settings.MAX_MODEL_IMAGE_KB}KB", field="image")


def list_models(tx: TransactionManager, options: QueryOptions) -> dict[str, Any]:
    prepared = MODEL_QUERY.prepare(options)
    with tx.read() as uow:
        rows = store.list_rows(uow, DeviceModel, prepared.listing)
        total = store.count_rows(uow, DeviceModel, prepared.filtering)
        return {
            "rows": [serialize_model(r) for r in rows],
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
        }


def get_model(tx: TransactionManager, model_id: uuid.UUID) -> dict[str, Any]:
    with tx.read() as uow:
        row = store.find(uow, DeviceModel, Condition(DeviceModelField.ID, model_id))
        return serialize_model(row, with_image=True)


def count_models(tx: TransactionManager) -> int:
    with tx.read() as uow:
        return store.count_by_status(uow, DeviceModel)


def create_model(tx: TransactionManager, payload: DeviceModelCreate, actor: str) -> uuid.UUID:
    _check_image(payload.image)
    duplicate = f"model already exists with name: {payload.name}"
    with tx.transaction() as uow:
        ensure_absent(uow, DeviceModel, Condition(DeviceModelField.NAME, payload.name), field="name", message=duplicate)
        row = DeviceModel(**payload.model_dump(), updated_by=actor)
        with duplicate_as_invalid("name", duplicate):
            store.insert(uow, row)
        model_id = row.id
    logger.info("model created id=%s name=%s by=%s", model_id, payload.name, actor)
    return model_id


def update_model(tx: TransactionManager, model_id: uuid.UUID, payload: DeviceModelUpdate, actor: str) -> None:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    _check_image(changes.get("image"))
    with tx.transaction() as uow:
        row = store.find(uow, DeviceModel, Condition(DeviceModelField.ID, model_id))
        if changes.get("name") and changes["name"] != row.name:
            ensure_absent(
                uow,
                DeviceModel,
                Condition(DeviceModelField.NAME, changes["name"]),
                field="name",
                message=f"model already exists with name: {changes['name']}",
                exclude_id=row.id,
            )
        with duplicate_as_invalid("name", f"model already exists with name: {changes.get('name', row.name)}"):
            store.update(uow, row, **changes, updated_by=actor)


def delete_model(tx: TransactionManager, model_id: uuid.UUID, actor: str) -> None:
    with tx.transaction() as uow:
        row = store.find(uow, DeviceModel, Condition(DeviceModelField.ID, model_id))
        store.change_status_to_delete(uow, row, actor)
    logger.info("model deleted id=%s by=%s", model_id, actor)
