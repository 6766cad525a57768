import uuid

from fastapi import APIRouter, Depends

from app.core.deps import export_options, get_actor, get_transactions, list_options
from app.db.unit_of_work import TransactionManager
from app.schemas.management import GroupCreate, GroupUpdate
from app.schemas.query import QueryOptions
from app.services import csv_export
from app.services import groups as service

from .responses import csv_attachment

router = APIRouter()


@router.get("")
def list_groups(
    model_id: uuid.UUID,
    options: QueryOptions = Depends(list_options),
    tx: TransactionManager = Depends(get_transactions),
):
    return service.list_groups(tx, model_id, options)


@router.get("/count")
def count_groups(model_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_groups(tx, model_id)}


@router.get("/combobox")
def group_combobox(model_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return {"rows": service.group_options(tx, model_id)}


@router.get("/export-csv")
def export_groups(
    model_id: uuid.UUID,
    options: QueryOptions = Depends(export_options),
    tx: TransactionManager = Depends(get_transactions),
):
    return csv_attachment("groups.csv", csv_export.export_groups_csv(tx, model_id, options))


@router.get("/{group_id}")
def get_group(model_id: uuid.UUID, group_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return service.get_group(tx, model_id, group_id)


@router.post("", status_code=201)
def create_group(
    model_id: uuid.UUID,
    payload: GroupCreate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.create_group(tx, model_id, payload, actor))}


@router.put("/{group_id}")
def update_group(
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    payload: GroupUpdate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.update_group(tx, model_id, group_id, payload, actor)
    return {"status": "updated"}


@router.delete("/{group_id}")
def delete_group(
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.delete_group(tx, model_id, group_id, actor)
    return {"status": "deleted"}
