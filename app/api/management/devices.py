import uuid

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.deps import export_options, get_actor, get_transactions, list_options
from app.db.unit_of_work import TransactionManager
from app.schemas.management import DeviceCreate, DeviceUpdate
from app.schemas.query import QueryOptions
from app.services import csv_export
from app.services import devices as service

from .responses import csv_attachment

router = APIRouter()
group_router = APIRouter()


@router.get("")
def list_devices(
    model_id: uuid.UUID,
    options: QueryOptions = Depends(list_options),
    tx: TransactionManager = Depends(get_transactions),
):
    return service.list_devices(tx, model_id, options)


@router.get("/count")
def count_devices(model_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_devices(tx, model_id)}


@router.get("/export-csv")
def export_devices(
    model_id: uuid.UUID,
    options: QueryOptions = Depends(export_options),
    tx: TransactionManager = Depends(get_transactions),
):
    return csv_attachment("devices.csv", csv_export.export_devices_csv(tx, model_id, options))


@router.get("/{device_id}")
def get_device(model_id: uuid.UUID, device_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return service.get_device(tx, model_id, device_id)


@router.put("/{device_id}")
def update_device(
    model_id: uuid.UUID,
    device_id: uuid.UUID,
    payload: DeviceUpdate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.update_device(tx, model_id, device_id, payload, actor)
    return {"status": "updated"}


@router.delete("/{device_id}")
def delete_device(
    model_id: uuid.UUID,
    device_id: uuid.UUID,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.delete_device(tx, model_id, device_id, actor)
    return {"status": "deleted"}


@group_router.post("", status_code=201)
def create_device(
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    payload: DeviceCreate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.create_device(tx, model_id, group_id, payload, actor))}


@group_router.post("/import-csv", status_code=201)
def import_devices(
    model_id: uuid.UUID,
    group_id: uuid.UUID,
    file: UploadFile = File(...),
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"imported": service.import_devices_csv(tx, model_id, group_id, file.file, actor)}


@group_router.get("/count")
def count_group_devices(model_id: uuid.UUID, group_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_devices_in_group(tx, model_id, group_id)}
