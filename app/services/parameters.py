from __future__ import annotations

import logging
import uuid
from typing import Any, BinaryIO

from app.core.config import settings
from app.core.errors import InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager
from app.models.parameter import Parameter, ParameterField
from app.schemas.management import ParameterCreate, ParameterUpdate
from app.schemas.query import QueryOptions
from app.services.common import AUDIT_FIELDS, duplicate_as_invalid, ensure_absent, serialize_row
from app.services.csv_io import cell, read_csv, require_header
from app.services.query_builder import PARAMETER_QUERY

logger = logging.getLogger(__name__)

FIELDS = ("path", "data_type", "description", *AUDIT_FIELDS)
IMPORT_HEADER = ("Path", "Data Type", "Description")


def serialize_parameter(row: Parameter) -> dict[str, Any]:
    return serialize_row(row, FIELDS)


def duplicate_path_message(path: str) -> str:
    return f"parameter already exists with path: {path}"


def list_parameters(tx: TransactionManager, options: QueryOptions) -> dict[str, Any]:
    prepared = PARAMETER_QUERY.prepare(options)
    with tx.read() as uow:
        rows = store.list_rows(uow, Parameter, prepared.listing)
        total = store.count_rows(uow, Parameter, prepared.filtering)
        return {
            "rows": [serialize_parameter(r) for r in rows],
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
        }


def parameter_options(tx: TransactionManager) -> list[dict[str, str]]:
    with tx.read() as uow:
        rows = store.find_all(uow, Parameter)
        return [{"id": str(r.id), "path": r.path} for r in sorted(rows, key=lambda r: r.path)]


def get_parameter(tx: TransactionManager, parameter_id: uuid.UUID) -> dict[str, Any]:
    with tx.read() as uow:
        return serialize_parameter(store.find(uow, Parameter, Condition(ParameterField.ID, parameter_id)))


def count_parameters(tx: TransactionManager) -> int:
    with tx.read() as uow:
        return store.count_by_status(uow, Parameter)


def create_parameter(tx: TransactionManager, payload: ParameterCreate, actor: str) -> uuid.UUID:
    duplicate = duplicate_path_message(payload.path)
    with tx.transaction() as uow:
        ensure_absent(uow, Parameter, Condition(ParameterField.PATH, payload.path), field="path", message=duplicate)
        row = Parameter(**payload.model_dump(), updated_by=actor)
        with duplicate_as_invalid("path", duplicate):
            store.insert(uow, row)
        parameter_id = row.id
    logger.info("parameter created id=%s path=%s by=%s", parameter_id, payload.path, actor)
    return parameter_id


def update_parameter(tx: TransactionManager, parameter_id: uuid.UUID, payload: ParameterUpdate, actor: str) -> None:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    with tx.transaction() as uow:
        row = store.find(uow, Parameter, Condition(ParameterField.ID, parameter_id))
        if changes.get("path") and changes["path"] != row.path:
            ensure_absent(
                uow,
                Parameter,
                Condition(ParameterField.PATH, changes["path"]),
                field="path",
                message=duplicate_path_message(changes["path"]),
                exclude_id=row.id,
            )
        with duplicate_as_invalid("path", duplicate_path_message(changes.get("path", row.path))):
            store.update(uow, row, **changes, updated_by=actor)


def delete_parameter(tx: TransactionManager, parameter_id: uuid.UUID, actor: str) -> None:
    with tx.transaction() as uow:
        row = store.find(uow, Parameter, Condition(ParameterField.ID, parameter_id))
        store.change_status_to_delete(uow, row, actor)
    logger.info("parameter deleted id=%s by=%s", parameter_id, actor)


def import_parameters_csv(tx: TransactionManager, file: BinaryIO, actor: str) -> int:
    header, rows = read_csv(file)
    require_header(header, IMPORT_HEADER)
    with tx.transaction() as uow:
        batch = store.BatchInserter(uow, settings.CSV_IMPORT_BATCH_SIZE)
        seen: set[str] = set()
        with duplicate_as_invalid("path", "parameter already exists"):
            for line_no, row in enumerate(rows, start=2):
                path = cell(row, 0)
                if not path:
                    raise InvalidRequestError(f"missing path on CSV line {line_no}", field="path")
                if path in seen:
                    raise InvalidRequestError(duplicate_path_message(path), field="path")
                seen.add(path)
                ensure_absent(
                    uow,
                    Parameter,
                    Condition(ParameterField.PATH, path),
                    field="path",
                    message=duplicate_path_message(path),
                )
                batch.add(
                    Parameter(
                        path=path,
                        data_type=cell(row, 1),
                        description=cell(row, 2) or None,
                        updated_by=actor,
                    )
                )
            batch.flush()
        imported = batch.flushed
    logger.info("imported %s parameters by=%s", imported, actor)
    return imported
