from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from candlelit.booking.models import BookingRequest, NewOrder


class AvailabilityArgs(BaseModel):
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)
    all: bool = False


class PlanOrdersArgs(BaseModel):
    requests: list[BookingRequest] = Field(min_length=1)


class SubmitOrdersArgs(BaseModel):
    orders: list[NewOrder] = Field(default_factory=list)
    concurrency: int | None = None


class BookArgs(PlanOrdersArgs):
    concurrency: int | None = None


def parse_availability_args(raw_args: dict[str, Any]) -> AvailabilityArgs:
    return AvailabilityArgs.model_validate(raw_args)


def parse_plan_orders_args(raw_args: dict[str, Any]) -> PlanOrdersArgs:
    return PlanOrdersArgs.model_validate(raw_args)


def parse_submit_orders_args(raw_args: dict[str, Any]) -> SubmitOrdersArgs:
    return SubmitOrdersArgs.model_validate(raw_args)


def parse_book_args(raw_args: dict[str, Any]) -> BookArgs:
    return BookArgs.model_validate(raw_args)


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }
