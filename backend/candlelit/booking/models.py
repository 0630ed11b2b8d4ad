from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


ORDER_CREATED_MESSAGE = "创建成功"
ORDER_FAILED_MESSAGE = "创建失败"
CANCEL_SUCCEEDED_MESSAGE = "取消成功"
CANCEL_FAILED_MESSAGE = "取消失败"

DEFAULT_BUILDING_ORDER = {"B": 0, "C": 1, "A": 2, "D": 3}


class TimeRange(BaseModel):
    start_at: str
    end_at: str


class OpenHours(BaseModel):
    start_at: str
    end_at: str


class OpenTimeRange(BaseModel):
    week_days: list[int] = Field(default_factory=list)
    ranges: list[OpenHours] = Field(default_factory=list)


class Venue(BaseModel):
    id: int
    name: str
    building: Literal["A", "B", "C", "D"] | None = None
    floor: str | None = None
    open_time_ranges: list[OpenTimeRange] = Field(default_factory=list)
    occupied_times: list[TimeRange] = Field(default_factory=list)
    preallocated_times: list[TimeRange] = Field(default_factory=list)

    def busy_times(self) -> list[TimeRange]:
        return self.occupied_times + self.preallocated_times


class BookingRequest(BaseModel):
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)
    capacity: int = Field(gt=0)
    description: str = ""


class DateRange(BaseModel):
    start_at: str
    end_at: str


class NewOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    venue_id: int
    capacity: int = Field(gt=0)
    description: str = ""
    date_ranges: DateRange
    time_ranges: list[TimeRange] = Field(min_length=1)


class Order(BaseModel):
    id: int
    venue_id: int
    capacity: int
    description: str
    time_ranges: list[TimeRange] = Field(default_factory=list)
    is_candlelit: bool = False


class OrderCreated(BaseModel):
    success: Literal[True] = True
    message: str = ORDER_CREATED_MESSAGE
    order: Order


class OrderFailed(BaseModel):
    success: Literal[False] = False
    message: str = ORDER_FAILED_MESSAGE
    order: NewOrder


OrderResult = Union[OrderCreated, OrderFailed]


class CancelResult(BaseModel):
    success: bool
    message: str


class SortOptions(BaseModel):
    first_sort_by: Literal["floor", "building"] = "floor"
    building_order: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_BUILDING_ORDER)
    )
