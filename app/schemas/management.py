from __future__ import annotations

import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.group import DEFAULT_DOWNLOAD_PERIOD

EditableStatus = Literal["ENABLE", "DISABLE"]


class DeviceModelCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    vendor_name: str = ""
    manufacturer: str = ""
    description: Optional[str] = None
    image: Optional[str] = None


class DeviceModelUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    vendor_name: Optional[str] = None
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    status: Optional[EditableStatus] = None


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    firmware_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    download_period: str = DEFAULT_DOWNLOAD_PERIOD


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    firmware_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    download_period: Optional[str] = None
    status: Optional[EditableStatus] = None


class DeviceCreate(BaseModel):
    mac_address: str = Field(min_length=1, max_length=32)
    description: Optional[str] = None


class DeviceUpdate(BaseModel):
    group_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    status: Optional[EditableStatus] = None


class ParameterCreate(BaseModel):
    path: str = Field(min_length=1, max_length=512)
    data_type: str = Field(default="", max_length=32)
    description: Optional[str] = None


class ProfileParameterCreate(ParameterCreate):
    default_value: str = ""
    required: bool = True


class ParameterUpdate(BaseModel):
    path: Optional[str] = Field(default=None, min_length=1, max_length=512)
    data_type: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None
    status: Optional[EditableStatus] = None


class ProfileFields(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    msg_type: int = 0
    return_commands: bool = False
    return_events: bool = False
    return_params: bool = False
    return_unique_key_sets: bool = False
    allow_partial: bool = False
    send_resp: bool = False
    first_level_only: bool = False
    max_depth: int = Field(default=0, ge=0)
    tags: List[str] = []
    description: Optional[str] = None


class ProfileCreate(ProfileFields):
    parameter_ids: List[uuid.UUID] = []


class ProfileWithParameters(ProfileFields):
    parameters: List[ProfileParameterCreate] = []


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    msg_type: Optional[int] = None
    return_commands: Optional[bool] = None
    return_events: Optional[bool] = None
    return_params: Optional[bool] = None
    return_unique_key_sets: Optional[bool] = None
    allow_partial: Optional[bool] = None
    send_resp: Optional[bool] = None
    first_level_only: Optional[bool] = None
    max_depth: Optional[int] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None
    description: Optional[str] = None
    status: Optional[EditableStatus] = None
    # None keeps the current parameter links; a list replaces them all.
    parameter_ids: Optional[List[uuid.UUID]] = None
