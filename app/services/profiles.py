from __future__ import annotations

import logging
import uuid
from typing import Any, BinaryIO, Iterable, Mapping, Sequence

from app.core.config import settings
from app.core.errors import InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import TransactionManager, UnitOfWork
from app.models.parameter import Parameter, ParameterField
from app.models.profile import Profile, ProfileField
from app.models.profile_parameter import ProfileParameter, ProfileParameterField
from app.schemas.management import ProfileCreate, ProfileParameterCreate, ProfileUpdate, ProfileWithParameters
from app.schemas.query import QueryOptions
from app.services.common import (
    AUDIT_FIELDS,
    duplicate_as_invalid,
    ensure_absent,
    parse_uuid,
    serialize_row,
)
from app.services.csv_io import cell, read_csv
from app.services.parameters import duplicate_path_message
from app.services.query_builder import PROFILE_QUERY

logger = logging.getLogger(__name__)

FIELDS = (
    "name",
    "msg_type",
    "return_commands",
    "return_events",
    "return_params",
    "return_unique_key_sets",
    "allow_partial",
    "send_resp",
    "first_level_only",
    "max_depth",
    "tags",
    "description",
    *AUDIT_FIELDS,
)
IMPORT_HEADER = (
    "Name",
    "Msg Type",
    "Tags",
    "Max Depth",
    "Allow Partial",
    "First Level Only",
    "Return Commands",
    "Return Events",
    "Return Params",
    "Return Unique Key Sets",
    "Send Resp",
    "Parameters IDs",
)
_PROFILE_PAYLOAD_EXCLUDE = {"parameter_ids", "parameters"}
_LINK_FIELDS = {"default_value", "required"}
_TRUE_VALUES = {"true", "1", "yes", "y"}
_FALSE_VALUES = {"false", "0", "no", "n", ""}


def serialize_profile(row: Profile) -> dict[str, Any]:
    data = serialize_row(row, FIELDS)
    data["parameters"] = [
        {
            "id": str(link.parameter_id),
            "path": link.parameter.path if link.parameter else None,
            "default_value": link.default_value,
            "required": link.required,
        }
        for link in row.profile_parameters
    ]
    return data


def _duplicate_name_message(name: str) -> str:
    return f"profile already exists with name: {name}"


def _unique_ids(ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(ids))


def _require_parameters(uow: UnitOfWork, parameter_ids: Sequence[uuid.UUID]) -> list[uuid.UUID]:
    wanted = _unique_ids(parameter_ids)
    if not wanted:
        return []
    found = {row.id for row in store.find_all(uow, Parameter, Condition(ParameterField.ID, wanted))}
    for parameter_id in wanted:
        if parameter_id not in found:
            raise InvalidRequestError(f"parameter not found with id: {parameter_id}", field="parameter_ids")
    return wanted


def _new_links(
    profile_id: uuid.UUID,
    parameter_ids: Iterable[uuid.UUID],
    actor: str,
    link_values: Mapping[uuid.UUID, dict[str, Any]] | None = None,
) -> list[ProfileParameter]:
    link_values = link_values or {}
    return [
        ProfileParameter(
            profile_id=profile_id,
            parameter_id=parameter_id,
            **link_values.get(parameter_id, {"default_value": "", "required": True}),
            updated_by=actor,
        )
        for parameter_id in parameter_ids
    ]


def replace_profile_parameters(
    uow: UnitOfWork,
    profile_id: uuid.UUID,
    parameter_ids: Sequence[uuid.UUID],
    actor: str,
    link_values: Mapping[uuid.UUID, dict[str, Any]] | None = None,
) -> None:
    """Drop every link of the profile, then insert the given set with fresh identities."""
    removed = store.delete_where(uow, ProfileParameter, Condition(ProfileParameterField.PROFILE_ID, profile_id))
    store.insert_batch(uow, _new_links(profile_id, _unique_ids(parameter_ids), actor, link_values))
    logger.debug("profile %s links replaced: removed=%s added=%s", profile_id, removed, len(parameter_ids))


def _insert_profile(uow: UnitOfWork, fields: dict[str, Any], actor: str) -> Profile:
    name = fields["name"]
    ensure_absent(uow, Profile, Condition(ProfileField.NAME, name), field="name", message=_duplicate_name_message(name))
    row = Profile(**fields, updated_by=actor)
    with duplicate_as_invalid("name", _duplicate_name_message(name)):
        store.insert(uow, row)
    return row


def _upsert_parameter(uow: UnitOfWork, payload: ProfileParameterCreate, actor: str) -> uuid.UUID:
    existing = store.find_all(uow, Parameter, Condition(ParameterField.PATH, payload.path))
    if existing:
        row = store.update(uow, existing[0], data_type=payload.data_type, description=payload.description, updated_by=actor)
        return row.id
    row = Parameter(**payload.model_dump(exclude=_LINK_FIELDS), updated_by=actor)
    with duplicate_as_invalid("path", duplicate_path_message(payload.path)):
        store.insert(uow, row)
    return row.id


def list_profiles(tx: TransactionManager, options: QueryOptions) -> dict[str, Any]:
    prepared = PROFILE_QUERY.prepare(options)
    with tx.read() as uow:
        rows = store.list_rows(uow, Profile, prepared.listing, preload=(Profile.profile_parameters,))
        total = store.count_rows(uow, Profile, prepared.filtering)
        return {
            "rows": [serialize_profile(r) for r in rows],
            "total": total,
            "limit": options.limit,
            "offset": options.offset,
        }


def get_profile(tx: TransactionManager, profile_id: uuid.UUID) -> dict[str, Any]:
    with tx.read() as uow:
        row = store.find(uow, Profile, Condition(ProfileField.ID, profile_id), preload=(Profile.profile_parameters,))
        return serialize_profile(row)


def count_profiles(tx: TransactionManager) -> int:
    with tx.read() as uow:
        return store.count_by_status(uow, Profile)


def create_profile(tx: TransactionManager, payload: ProfileCreate, actor: str) -> uuid.UUID:
    with tx.transaction() as uow:
        row = _insert_profile(uow, payload.model_dump(exclude=_PROFILE_PAYLOAD_EXCLUDE), actor)
        parameter_ids = _require_parameters(uow, payload.parameter_ids)
        store.insert_batch(uow, _new_links(row.id, parameter_ids, actor))
        profile_id = row.id
    logger.info("profile created id=%s parameters=%s by=%s", profile_id, len(parameter_ids), actor)
    return profile_id


def create_profile_with_new_parameters(tx: TransactionManager, payload: ProfileWithParameters, actor: str) -> uuid.UUID:
    """Create the parameters and the profile that bundles them, all or nothing."""
    with tx.transaction() as uow:
        parameter_ids = []
        link_values = {}
        for item in payload.parameters:
            ensure_absent(
                uow,
                Parameter,
                Condition(ParameterField.PATH, item.path),
                field="path",
                message=duplicate_path_message(item.path),
            )
            parameter = Parameter(**item.model_dump(exclude=_LINK_FIELDS), updated_by=actor)
            with duplicate_as_invalid("path", duplicate_path_message(item.path)):
                store.insert(uow, parameter)
            parameter_ids.append(parameter.id)
            link_values[parameter.id] = item.model_dump(include=_LINK_FIELDS)
        row = _insert_profile(uow, payload.model_dump(exclude=_PROFILE_PAYLOAD_EXCLUDE), actor)
        store.insert_batch(uow, _new_links(row.id, parameter_ids, actor, link_values))
        profile_id = row.id
    logger.info("profile created id=%s with %s new parameters by=%s", profile_id, len(parameter_ids), actor)
    return profile_id


def upsert_profile_with_parameters(tx: TransactionManager, payload: ProfileWithParameters, actor: str) -> uuid.UUID:
    """Upsert parameters by path and the profile by name, then relink the profile to exactly those parameters."""
    fields = payload.model_dump(exclude=_PROFILE_PAYLOAD_EXCLUDE)
    with tx.transaction() as uow:
        parameter_ids = []
        link_values = {}
        for item in payload.parameters:
            parameter_id = _upsert_parameter(uow, item, actor)
            parameter_ids.append(parameter_id)
            link_values[parameter_id] = item.model_dump(include=_LINK_FIELDS)
        existing = store.find_all(uow, Profile, Condition(ProfileField.NAME, payload.name))
        if existing:
            row = store.update(uow, existing[0], **fields, updated_by=actor)
        else:
            row = _insert_profile(uow, fields, actor)
        replace_profile_parameters(uow, row.id, parameter_ids, actor, link_values)
        profile_id = row.id
    logger.info("profile upserted id=%s name=%s by=%s", profile_id, payload.name, actor)
    return profile_id


def update_profile(tx: TransactionManager, profile_id: uuid.UUID, payload: ProfileUpdate, actor: str) -> None:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True, exclude=_PROFILE_PAYLOAD_EXCLUDE)
    with tx.transaction() as uow:
        row = store.find(uow, Profile, Condition(ProfileField.ID, profile_id))
        if changes.get("name") and changes["name"] != row.name:
            ensure_absent(
                uow,
                Profile,
                Condition(ProfileField.NAME, changes["name"]),
                field="name",
                message=_duplicate_name_message(changes["name"]),
                exclude_id=row.id,
            )
        parameter_ids = None
        if payload.parameter_ids is not None:
            parameter_ids = _require_parameters(uow, payload.parameter_ids)
        with duplicate_as_invalid("name", _duplicate_name_message(changes.get("name", row.name))):
            store.update(uow, row, **changes, updated_by=actor)
        if parameter_ids is not None:
            replace_profile_parameters(uow, row.id, parameter_ids, actor)


def delete_profile(tx: TransactionManager, profile_id: uuid.UUID, actor: str) -> None:
    with tx.transaction() as uow:
        row = store.find(uow, Profile, Condition(ProfileField.ID, profile_id))
        store.change_status_to_delete(uow, row, actor)
    logger.info("profile deleted id=%s by=%s", profile_id, actor)


def _csv_bool(value: str, column: str, line_no: int) -> bool:
    text = value.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise InvalidRequestError(f"invalid {column} on CSV line {line_no}: {value}", field=column)


def _csv_int(value: str, column: str, line_no: int) -> int:
    try:
        return int(value.strip() or 0)
    except ValueError:
        raise InvalidRequestError(f"invalid {column} on CSV line {line_no}: {value}", field=column)


def _profile_from_csv(row: Sequence[str], line_no: int, actor: str) -> tuple[Profile, list[uuid.UUID]]:
    name = cell(row, 0)
    if not name:
        raise InvalidRequestError(f"missing Name on CSV line {line_no}", field="name")
    profile = Profile(
        id=uuid.uuid4(),
        name=name,
        msg_type=_csv_int(cell(row, 1), "Msg Type", line_no),
        tags=[t.strip() for t in cell(row, 2).split(";") if t.strip()],
        max_depth=_csv_int(cell(row, 3), "Max Depth", line_no),
        allow_partial=_csv_bool(cell(row, 4), "Allow Partial", line_no),
        first_level_only=_csv_bool(cell(row, 5), "First Level Only", line_no),
        return_commands=_csv_bool(cell(row, 6), "Return Commands", line_no),
        return_events=_csv_bool(cell(row, 7), "Return Events", line_no),
        return_params=_csv_bool(cell(row, 8), "Return Params", line_no),
        return_unique_key_sets=_csv_bool(cell(row, 9), "Return Unique Key Sets", line_no),
        send_resp=_csv_bool(cell(row, 10), "Send Resp", line_no),
        updated_by=actor,
    )
    parameter_ids = [parse_uuid(raw, "parameter_ids") for raw in cell(row, 11).split(",") if raw.strip()]
    return profile, parameter_ids


def import_profiles_csv(tx: TransactionManager, file: BinaryIO, actor: str) -> int:
    header, rows = read_csv(file)
    if tuple(header) != IMPORT_HEADER:
        raise InvalidRequestError(
            "invalid CSV header, expected: " + ", ".join(IMPORT_HEADER), field="file", detail=header
        )
    batch_size = max(1, settings.CSV_IMPORT_BATCH_SIZE)
    imported = 0
    with tx.transaction() as uow:
        profiles: list[Profile] = []
        links: list[ProfileParameter] = []
        seen: set[str] = set()

        def flush() -> None:
            # Profiles first so the links' foreign keys resolve.
            store.insert_batch(uow, profiles)
            store.insert_batch(uow, links)
            profiles.clear()
            links.clear()

        with duplicate_as_invalid("name", "profile already exists"):
            for line_no, row in enumerate(rows, start=2):
                profile, parameter_ids = _profile_from_csv(row, line_no, actor)
                if profile.name in seen:
                    raise InvalidRequestError(_duplicate_name_message(profile.name), field="name")
                seen.add(profile.name)
                ensure_absent(
                    uow,
                    Profile,
                    Condition(ProfileField.NAME, profile.name),
                    field="name",
                    message=_duplicate_name_message(profile.name),
                )
                profiles.append(profile)
                links.extend(_new_links(profile.id, _require_parameters(uow, parameter_ids), actor))
                imported += 1
                if len(profiles) >= batch_size:
                    flush()
            flush()
    logger.info("imported %s profiles by=%s", imported, actor)
    return imported
