import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.deps import export_options, get_actor, get_transactions, list_options
from app.db.unit_of_work import TransactionManager
from app.schemas.query import QueryOptions
from app.services import csv_export
from app.services import firmwares as service
from app.services.firmware_storage import FirmwareStorage, get_firmware_storage

from .responses import csv_attachment

router = APIRouter()


@router.get("")
def list_firmwares(
    model_id: uuid.UUID,
    options: QueryOptions = Depends(list_options),
    tx: TransactionManager = Depends(get_transactions),
):
    return service.list_firmwares(tx, model_id, options)


@router.get("/count")
def count_firmwares(model_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_firmwares(tx, model_id)}


@router.get("/combobox")
def firmware_combobox(model_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return {"rows": service.firmware_options(tx, model_id)}


@router.get("/export-csv")
def export_firmwares(
    model_id: uuid.UUID,
    options: QueryOptions = Depends(export_options),
    tx: TransactionManager = Depends(get_transactions),
):
    return csv_attachment("firmwares.csv", csv_export.export_firmwares_csv(tx, model_id, options))


@router.get("/{firmware_id}")
def get_firmware(model_id: uuid.UUID, firmware_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return service.get_firmware(tx, model_id, firmware_id)


@router.post("", status_code=201)
def create_firmware(
    model_id: uuid.UUID,
    name: str = Form(..., min_length=1, max_length=255),
    description: str | None = Form(default=None),
    file: UploadFile = File(...),
    tx: TransactionManager = Depends(get_transactions),
    storage: FirmwareStorage = Depends(get_firmware_storage),
    actor: str = Depends(get_actor),
):
    firmware_id = service.create_firmware(
        tx,
        storage,
        model_id,
        name=name.strip(),
        description=description,
        file=file.file,
        content_type=file.content_type,
        actor=actor,
    )
    return {"id": str(firmware_id)}


@router.put("/{firmware_id}")
def update_firmware(
    model_id: uuid.UUID,
    firmware_id: uuid.UUID,
    name: str | None = Form(default=None, max_length=255),
    description: str | None = Form(default=None),
    status: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    tx: TransactionManager = Depends(get_transactions),
    storage: FirmwareStorage = Depends(get_firmware_storage),
    actor: str = Depends(get_actor),
):
    service.update_firmware(
        tx,
        storage,
        model_id,
        firmware_id,
        name=(name or "").strip() or None,
        description=description,
        status=status,
        file=file.file if file is not None else None,
        content_type=file.content_type if file is not None else None,
        actor=actor,
    )
    return {"status": "updated"}


@router.delete("/{firmware_id}")
def delete_firmware(
    model_id: uuid.UUID,
    firmware_id: uuid.UUID,
    tx: TransactionManager = Depends(get_transactions),
    storage: FirmwareStorage = Depends(get_firmware_storage),
    actor: str = Depends(get_actor),
):
    service.delete_firmware(tx, storage, model_id, firmware_id, actor)
    return {"status": "deleted"}
