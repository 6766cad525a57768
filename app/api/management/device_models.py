import uuid

from fastapi import APIRouter, Depends

from app.core.deps import get_actor, get_transactions, list_options
from app.db.unit_of_work import TransactionManager
from app.schemas.management import DeviceModelCreate, DeviceModelUpdate
from app.schemas.query import QueryOptions
from app.services import device_models as service

router = APIRouter()


@router.get("")
def list_models(options: QueryOptions = Depends(list_options), tx: TransactionManager = Depends(get_transactions)):
    return service.list_models(tx, options)


@router.get("/count")
def count_models(tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_models(tx)}


@router.get("/{model_id}")
def get_model(model_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return service.get_model(tx, model_id)


@router.post("", status_code=201)
def create_model(
    payload: DeviceModelCreate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.create_model(tx, payload, actor))}


@router.put("/{model_id}")
def update_model(
    model_id: uuid.UUID,
    payload: DeviceModelUpdate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.update_model(tx, model_id, payload, actor)
    return {"status": "updated"}


@router.delete("/{model_id}")
def delete_model(
    model_id: uuid.UUID,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.delete_model(tx, model_id, actor)
    return {"status": "deleted"}
