import uuid

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.deps import export_options, get_actor, get_transactions, list_options
from app.db.unit_of_work import TransactionManager
from app.schemas.management import ProfileCreate, ProfileUpdate, ProfileWithParameters
from app.schemas.query import QueryOptions
from app.services import csv_export
from app.services import profiles as service

from .responses import csv_attachment

router = APIRouter()


@router.get("")
def list_profiles(options: QueryOptions = Depends(list_options), tx: TransactionManager = Depends(get_transactions)):
    return service.list_profiles(tx, options)


@router.get("/count")
def count_profiles(tx: TransactionManager = Depends(get_transactions)):
    return {"total": service.count_profiles(tx)}


@router.get("/export-csv")
def export_profiles(options: QueryOptions = Depends(export_options), tx: TransactionManager = Depends(get_transactions)):
    return csv_attachment("profiles.csv", csv_export.export_profiles_csv(tx, options))


@router.get("/{profile_id}")
def get_profile(profile_id: uuid.UUID, tx: TransactionManager = Depends(get_transactions)):
    return service.get_profile(tx, profile_id)


@router.post("", status_code=201)
def create_profile(
    payload: ProfileCreate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.create_profile(tx, payload, actor))}


@router.post("/with-parameters", status_code=201)
def create_profile_with_parameters(
    payload: ProfileWithParameters,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.create_profile_with_new_parameters(tx, payload, actor))}


@router.put("/upsert")
def upsert_profile(
    payload: ProfileWithParameters,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"id": str(service.upsert_profile_with_parameters(tx, payload, actor))}


@router.post("/import-csv", status_code=201)
def import_profiles(
    file: UploadFile = File(...),
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    return {"imported": service.import_profiles_csv(tx, file.file, actor)}


@router.put("/{profile_id}")
def update_profile(
    profile_id: uuid.UUID,
    payload: ProfileUpdate,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.update_profile(tx, profile_id, payload, actor)
    return {"status": "updated"}


@router.delete("/{profile_id}")
def delete_profile(
    profile_id: uuid.UUID,
    tx: TransactionManager = Depends(get_transactions),
    actor: str = Depends(get_actor),
):
    service.delete_profile(tx, profile_id, actor)
    return {"status": "deleted"}
