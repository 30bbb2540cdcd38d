"""
MODULE OVERVIEW:
This module defines the strictly typed data structures shared by the stream
client and the development server, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
The wire format of the sentiment feed is a JSON object with a `timestamp` and
a `sentiment` mapping holding one signed delta per category plus four optional
lookback references. `DeltaRecord` is that contract. Every category must be
present; a frame missing one fails validation and is treated as a decode error
upstream. Everything handed to observers (`SentimentSnapshot`,
`ConnectionStatus`, `WidgetContent`) is frozen, and the snapshot mappings are
read-only proxies, so nobody can mutate engine state through a reference they
were given. Category deltas are strict numbers: a quoted number or a boolean
is a schema mismatch, not a coerced float.
"""
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, field_serializer, field_validator

from .errors import UnknownCategoryError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(str, Enum):
    CALM = "calm"
    CONNECTED = "connected"
    MOTIVATED = "motivated"
    STIMULATED = "stimulated"
    FOCUSED = "focused"
    LIGHT_HEARTED = "light-hearted"
    INSPIRED = "inspired"
    CURIOUS = "curious"

    @classmethod
    def parse(cls, label: "str | Category") -> "Category":
        """
        Resolve a wire-format label (case-insensitive, `light_hearted` and
        `light hearted` accepted) to a Category. Raises UnknownCategoryError.
        """
        if isinstance(label, Category):
            return label
        key = str(label).strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(key)
        except ValueError:
            raise UnknownCategoryError(str(label)) from None

    @property
    def field_name(self) -> str:
        return self.value.replace("-", "_")

    @property
    def display_name(self) -> str:
        return self.value.replace("-", " ").title()


ALL_CATEGORIES: tuple[Category, ...] = tuple(Category)


class Lookbacks(BaseModel):
    model_config = ConfigDict(frozen=True)

    one_hour_before: float | None = None
    six_hours_before: float | None = None
    one_day_before: float | None = None
    one_week_before: float | None = None


# WHAT IS HAPPENING HERE:
# One field per category. `light-hearted` is not a valid Python identifier, so
# it gets an alias; `populate_by_name` lets tests and the simulator build
# records with the Python name as well.
class SentimentDeltas(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    calm: StrictFloat
    connected: StrictFloat
    motivated: StrictFloat
    stimulated: StrictFloat
    focused: StrictFloat
    light_hearted: StrictFloat = Field(alias="light-hearted")
    inspired: StrictFloat
    curious: StrictFloat

    onehourbefore: StrictFloat | None = None
    sixhoursbefore: StrictFloat | None = None
    onedaybefore: StrictFloat | None = None
    oneweekbefore: StrictFloat | None = None

    def delta_for(self, category: Category) -> float:
        return getattr(self, category.field_name)

    @property
    def lookbacks(self) -> Lookbacks:
        return Lookbacks(
            one_hour_before=self.onehourbefore,
            six_hours_before=self.sixhoursbefore,
            one_day_before=self.onedaybefore,
            one_week_before=self.oneweekbefore,
        )

    @classmethod
    def from_categories(cls, deltas: dict[Category, float], **lookbacks: float | None) -> "SentimentDeltas":
        """Build a record body from a partial mapping; missing categories get 0.0."""
        values = {c.field_name: float(deltas.get(c, 0.0)) for c in ALL_CATEGORIES}
        return cls(**values, **lookbacks)


class DeltaRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    sentiment: SentimentDeltas

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class Heartbeat(BaseModel):
    type: Literal["heartbeat"] = "heartbeat"
    timestamp: datetime = Field(default_factory=utcnow)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ConnectionStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: ConnectionState = ConnectionState.DISCONNECTED
    error: str | None = None
    changed_at: datetime = Field(default_factory=utcnow)


class SentimentSnapshot(BaseModel):
    """Copy-out view of the aggregation engine after one applied delta."""
    model_config = ConfigDict(frozen=True)

    values: Mapping[Category, float]
    history: Mapping[Category, tuple[float, ...]]
    applied_count: int = 0
    latest: DeltaRecord | None = None

    @field_validator("values", "history", mode="after")
    @classmethod
    def _read_only(cls, value):
        return MappingProxyType(dict(value))

    @field_serializer("values", "history")
    def _as_dict(self, value):
        return dict(value)

    @property
    def has_data(self) -> bool:
        return self.applied_count > 0


class WidgetContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    selected_category: Category
    current_value: float
    delta_value: float
    data_points: tuple[float, ...]
    lookbacks: Lookbacks = Field(default_factory=Lookbacks)
    updated_at: datetime = Field(default_factory=utcnow)


class StreamStats(BaseModel):
    active_streams: int
    total_events_dispatched: int
    uptime_s: float
    server_time: datetime
