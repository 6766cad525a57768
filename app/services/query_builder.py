from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from app.core.errors import InvalidRequestError
from app.db.conditions import Condition
from app.models.common import VISIBLE_STATUSES, EntityStatus
from app.models.device import Device
from app.models.device_model import DeviceModel
from app.models.firmware import Firmware
from app.models.group import Group
from app.models.parameter import Parameter
from app.models.profile import Profile
from app.schemas.query import OrderExpr, QueryOptions
from app.services.filter_expr import parse_filter_expr, parse_order_expr
from app.services.specifications import (
    CompositeSpecification,
    ConditionSpecification,
    FilterSpecification,
    OrderSpecification,
    PaginationSpecification,
    Specification,
)

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_ORDER = OrderExpr(field="updated_at", direction="DESC")


def _columns(*names: str, **aliases: str) -> dict[str, str]:
    columns = {name: name for name in names}
    columns.update(aliases)
    return columns


_AUDIT = ("id", "status", "description", "created_at", "updated_at", "updated_by")

PROFILE_COLUMNS = _columns(
    *_AUDIT,
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
    profile_name="name",
)
PARAMETER_COLUMNS = _columns(*_AUDIT, "path", "data_type")
MODEL_COLUMNS = _columns(*_AUDIT, "name", "vendor_name", "manufacturer")
FIRMWARE_COLUMNS = _columns(*_AUDIT, "model_id", "name", "file_path")
GROUP_COLUMNS = _columns(*_AUDIT, "model_id", "firmware_id", "name", "download_period")
DEVICE_COLUMNS = _columns(*_AUDIT, "mac_address", "endpoint_id", "model_id", "group_id")


def parse_query_options(raw_filter: str | None, raw_order: str | None, limit: int = 0, offset: int = 0) -> QueryOptions:
    return QueryOptions(
        limit=limit,
        offset=offset,
        filters=tuple(parse_filter_expr(raw_filter)),
        orders=tuple(parse_order_expr(raw_order)),
    )


@dataclass(frozen=True)
class PreparedQuery:
    filtering: Specification
    ordering: Specification
    pagination: Specification

    @property
    def listing(self) -> Specification:
        return CompositeSpecification(self.filtering, self.ordering, self.pagination)

    @property
    def exporting(self) -> Specification:
        return CompositeSpecification(self.filtering, self.ordering)


class EntityQueryBuilder:
    """Validates list options for one entity and turns them into specifications.

    ``columns`` maps every logical field a client may filter or sort on to
    its storage column; anything outside it is rejected before the store runs.
    """

    def __init__(self, model, columns: Mapping[str, str]):
        self.model = model
        self.columns = dict(columns)

    def validate_pagination(self, options: QueryOptions) -> None:
        if options.limit < MIN_LIMIT or options.limit > MAX_LIMIT:
            raise InvalidRequestError(
                f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}", field="limit", detail=options.limit
            )
        if options.offset < 0:
            raise InvalidRequestError("offset must be greater than or equal to 0", field="offset", detail=options.offset)

    def validate_fields(self, options: QueryOptions) -> None:
        for f in options.filters:
            if f.field.lower() not in self.columns:
                raise InvalidRequestError(f"invalid filter field: {f.field}", field=f.field)
        for o in options.orders:
            if o.field.lower() not in self.columns:
                raise InvalidRequestError(f"invalid order field: {o.field}", field=o.field)

    def status_conditions(self, options: QueryOptions) -> list[Condition]:
        status_filters = [f for f in options.filters if self.columns[f.field.lower()] == "status"]
        for f in status_filters:
            if f.operator == "eq" and f.value.upper() == EntityStatus.DELETE.value:
                raise InvalidRequestError("cannot list items with DELETE status", field=f.field)
        if status_filters:
            return []
        return [Condition(self.model.Field.STATUS, VISIBLE_STATUSES)]

    def prepare(self, options: QueryOptions, *scope: Condition, paginate: bool = True) -> PreparedQuery:
        if paginate:
            self.validate_pagination(options)
        self.validate_fields(options)
        conditions = [*scope, *self.status_conditions(options)]
        orders = options.orders or (DEFAULT_ORDER,)
        return PreparedQuery(
            filtering=CompositeSpecification(
                ConditionSpecification(self.model, conditions),
                FilterSpecification(self.model, options.filters, self.columns),
            ),
            ordering=OrderSpecification(self.model, orders, self.columns),
            pagination=PaginationSpecification(options.limit if paginate else 0, options.offset),
        )


PROFILE_QUERY = EntityQueryBuilder(Profile, PROFILE_COLUMNS)
PARAMETER_QUERY = EntityQueryBuilder(Parameter, PARAMETER_COLUMNS)
MODEL_QUERY = EntityQueryBuilder(DeviceModel, MODEL_COLUMNS)
FIRMWARE_QUERY = EntityQueryBuilder(Firmware, FIRMWARE_COLUMNS)
GROUP_QUERY = EntityQueryBuilder(Group, GROUP_COLUMNS)
DEVICE_QUERY = EntityQueryBuilder(Device, DEVICE_COLUMNS)
