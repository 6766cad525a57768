from fastapi import APIRouter
from app.api.management import device_models, devices, firmwares, groups, parameters, profiles

router = APIRouter()
router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
router.include_router(parameters.router, prefix="/parameters", tags=["Parameters"])
router.include_router(device_models.router, prefix="/models", tags=["Models"])
router.include_router(groups.router, prefix="/models/{model_id}/groups", tags=["Groups"])
router.include_router(firmwares.router, prefix="/models/{model_id}/firmwares", tags=["Firmwares"])
router.include_router(devices.router, prefix="/models/{model_id}/devices", tags=["Devices"])
router.include_router(devices.group_router, prefix="/models/{model_id}/groups/{group_id}/devices", tags=["Devices"])
