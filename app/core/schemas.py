from dataclasses import dataclass
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.errors import TransformError


# =========================
# BOARD (raw upstream data)
# =========================
class Column(BaseModel):
    id: str
    title: Optional[str] = ""
    type: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class ColumnValue(BaseModel):
    id: str
    text: Optional[str] = None
    value: Optional[str] = None  # serialized JSON payload
    type: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Item(BaseModel):
    id: str
    name: str = ""
    column_values: List[ColumnValue] = []

    model_config = ConfigDict(extra="ignore")


class Board(BaseModel):
    id: Optional[str] = None
    name: str = ""
    columns: List[Column] = []
    items: List[Item] = []

    model_config = ConfigDict(extra="ignore")


# =========================
# ORDERS (API output)
# =========================
class NormalizedOrder(BaseModel):
    id: str
    name: str
    mockup_url: str = ""
    deadline: Optional[str] = None
    status: str = ""
    led_length: float = 0.0
    wasserdicht: bool = False
    versandart: str = ""
    completed_stages: List[str] = []

    # Derived display fields
    power_watts: int = 0
    fernbedienung: bool = True
    deadline_soon: bool = False
    versand_icon: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrdersMeta(BaseModel):
    board_name: str
    item_count: int
    timestamp: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrdersResponse(BaseModel):
    orders: List[NormalizedOrder]
    meta: Optional[OrdersMeta] = Field(default=None, alias="_meta")

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


# =========================
# FIELD OUTCOMES
# =========================
T = TypeVar("T")


@dataclass
class FieldResult(Generic[T]):
    """
    Outcome of extracting one order field.

    parsed=False means the documented default is in `value`;
    `error` is set when the raw data was present but unreadable.
    """

    value: T
    parsed: bool = True
    error: Optional[TransformError] = None

    @classmethod
    def default(cls, value: T, error: Optional[TransformError] = None):
        return cls(value=value, parsed=False, error=error)
