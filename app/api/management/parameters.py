import uuid

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.deps import export_options, get_actor, get_transactions, list_options
from app.db.unit_of_work import TransactionManager
from app.schemas.management import ParameterCreate, ParameterUpdate
from app.schemas.query import QueryOptions
from app.services import csv_export
from app.services import parameters as service

from .responses import csv_attachment

router = APIRouter()


@router.get("")
def list_parameters(options: QueryOptions = Depends(list_options), tx: TransactionManager = Depends(get_transactions)):
    return service.list_parameters(tx, options)


@router.get("/count")
def count_parameters(tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_parameters(tx)}


@router.get("/combobox")
def parameter_combobox(tx: TransactionManager = Depends(get_transactions)):
    return {"rows": service.parameter_options(tx)}


@router.get("/export-csv")
def export_parameters(options: QueryOptions = Depends(export_options), tx: TransactionManager = Depends(get_transactions)):
    return csv_attachment("parameters.csv", csv_export.export_parameters_csv(tx, options))


@router.get("/{parameter_id}")
def get_parameter(parameter_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return service.get_parameter(tx, parameter_id)


@router.post("", status_code=201)
def create_parameter(
    payload: ParameterCreate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.create_parameter(tx, payload, actor))}


@router.post("/import-csv", status_code=201)
def import_parameters(
    file: UploadFile = File(...),
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"imported": service.import_parameters_csv(tx, file.file, actor)}


@router.put("/{parameter_id}")
def update_parameter(
    parameter_id: uuid.UUID,
    payload: ParameterUpdate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.update_parameter(tx, parameter_id, payload, actor)
    return {"status": "updated"}


@router.delete("/{parameter_id}")
def delete_parameter(
    parameter_id: uuid.UUID,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.delete_parameter(tx, parameter_id, actor)
    return {"status": "deleted"}
