from pydantic import BaseModel, ConfigDict
from typing import Literal, Tuple

Operator = Literal["eq", "ne", "lt", "gt", "lte", "gte", "like"]
Join = Literal["AND", "OR"]
Direction = Literal["ASC", "DESC"]

OPERATORS = ("eq", "ne", "lt", "gt", "lte", "gte", "like")

class FilterExpr(BaseModel):
    """One leaf condition; ``join`` links it to the previous condition."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: Operator
    value: str
    join: Join = "AND"

class OrderExpr(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: Direction = "DESC"

class QueryOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    limit: int = 0
    offset: int = 0
    filters: Tuple[FilterExpr, ...] = ()
    orders: Tuple[OrderExpr, ...] = ()
