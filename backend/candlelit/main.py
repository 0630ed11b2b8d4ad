import asyncio
import json
import logging
import time
import uuid
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from candlelit.booking.args import (
    map_validation_error,
    parse_availability_args,
    parse_book_args,
    parse_plan_orders_args,
    parse_submit_orders_args,
)
from candlelit.booking.booker import Booker, NoOrderInputError, NoVenueAvailableError
from candlelit.booking.models import SortOptions
from candlelit.config import (
    BOOKER_BUILDING_ORDER,
    BOOKER_FIRST_SORT_BY,
    LOG_LEVEL,
    parse_building_order,
)
from candlelit.integrations.seiue import (
    SeiueClient,
    SeiueRequestError,
    build_seiue_client_from_env,
)
from candlelit.security.dependencies import require_api_key


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=LOG_LEVEL, format="%(message)s")
    return logging.getLogger("candlelit.backend")


logger = configure_logging()
app = FastAPI(title="Candlelit Booker")

_client: SeiueClient | None = None
_booker: Booker | None = None
_booker_lock = asyncio.Lock()


class BookerConfigError(ValueError):
    pass


def default_sort_options() -> SortOptions:
    try:
        return SortOptions(
            first_sort_by=BOOKER_FIRST_SORT_BY,
            building_order=parse_building_order(BOOKER_BUILDING_ORDER),
        )
    except ValidationError as exc:
        raise BookerConfigError(
            f"Invalid venue sort settings: BOOKER_FIRST_SORT_BY={BOOKER_FIRST_SORT_BY!r}"
        ) from exc


def get_client() -> SeiueClient:
    global _client
    if _client is None:
        _client = build_seiue_client_from_env()
    return _client


async def get_booker() -> Booker:
    global _booker
    if _booker is None:
        async with _booker_lock:
            if _booker is None:
                _booker = await Booker.init(get_client(), sort_options=default_sort_options())
    return _booker


async def refresh_booker() -> Booker:
    global _booker
    _booker = None
    return await get_booker()


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


def _upstream_error(exc: ValueError) -> JSONResponse:
    if isinstance(exc, SeiueRequestError):
        logger.error("Seiue request failed: %s", exc)
        return JSONResponse(
            status_code=502,
            content={
                "ok": False,
                "error_code": "SYSTEM_DOWN",
                "human_message": "Temporary issue reaching the venue system.",
            },
        )
    if isinstance(exc, BookerConfigError):
        logger.error("Booker configuration is invalid: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error_code": "INVALID_BOOKER_CONFIG",
                "human_message": str(exc),
            },
        )
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error_code": "SEIUE_NOT_CONFIGURED",
            "human_message": str(exc),
        },
    )


def _no_venue_response(exc: NoVenueAvailableError) -> JSONResponse:
    return JSONResponse(
        content={
            "ok": False,
            "error_code": "NO_VENUE_AVAILABLE",
            "human_message": str(exc),
        }
    )


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/venues", dependencies=[Depends(require_api_key)])
async def list_venues() -> JSONResponse:
    try:
        booker = await get_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    return JSONResponse(
        content={
            "ok": True,
            "data": {"venues": [venue.model_dump(mode="json") for venue in booker.venues]},
        }
    )


@app.post("/v1/venues/sort", dependencies=[Depends(require_api_key)])
async def sort_venues_endpoint(payload: dict[str, Any]) -> JSONResponse:
    try:
        options = SortOptions.model_validate(payload)
    except ValidationError as exc:
        return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)

    try:
        booker = await get_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    venues = booker.rank_venues(options)
    return JSONResponse(
        content={
            "ok": True,
            "data": {"venues": [venue.model_dump(mode="json") for venue in venues]},
        }
    )


@app.post("/v1/venues/refresh", dependencies=[Depends(require_api_key)])
async def refresh_venues() -> JSONResponse:
    try:
        booker = await refresh_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    return JSONResponse(content={"ok": True, "data": {"venue_count": len(booker.venues)}})


@app.post("/v1/availability", dependencies=[Depends(require_api_key)])
async def check_availability(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_availability_args(payload)
    except ValidationError as exc:
        return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)

    try:
        booker = await get_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    try:
        if args.all:
            venues = await booker.find_all_available(args.start_time, args.end_time)
        else:
            venues = [await booker.find_first_available(args.start_time, args.end_time)]
    except NoVenueAvailableError as exc:
        return _no_venue_response(exc)

    return JSONResponse(
        content={
            "ok": True,
            "data": {
                "result": "AVAILABLE" if venues else "NO_AVAILABILITY",
                "venues": [venue.model_dump(mode="json") for venue in venues],
            },
        }
    )


@app.post("/v1/orders/plan", dependencies=[Depends(require_api_key)])
async def plan_orders(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_plan_orders_args(payload)
    except ValidationError as exc:
        return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)

    try:
        booker = await get_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    try:
        if len(args.requests) == 1:
            orders = [await booker.plan_single(args.requests[0])]
        else:
            orders = await booker.plan_batch(args.requests)
    except NoVenueAvailableError as exc:
        return _no_venue_response(exc)

    return JSONResponse(
        content={
            "ok": True,
            "data": {"orders": [order.model_dump(mode="json") for order in orders]},
        }
    )


@app.post("/v1/orders", dependencies=[Depends(require_api_key)])
async def submit_orders(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_submit_orders_args(payload)
    except ValidationError as exc:
        return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)

    try:
        booker = await get_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    try:
        results = await booker.submit(args.orders, concurrency=args.concurrency)
    except NoOrderInputError as exc:
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error_code": "NO_ORDER_INPUT",
                "human_message": str(exc),
            },
        )

    return JSONResponse(
        content={
            "ok": True,
            "data": {"results": [result.model_dump(mode="json") for result in results]},
        }
    )


@app.post("/v1/bookings", dependencies=[Depends(require_api_key)])
async def book(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_book_args(payload)
    except ValidationError as exc:
        return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)

    try:
        booker = await get_booker()
    except ValueError as exc:
        return _upstream_error(exc)

    try:
        orders = await booker.plan_batch(args.requests)
    except NoVenueAvailableError as exc:
        return _no_venue_response(exc)

    results = await booker.submit(orders, concurrency=args.concurrency)
    return JSONResponse(
        content={
            "ok": True,
            "data": {"results": [result.model_dump(mode="json") for result in results]},
        }
    )


@app.get("/v1/orders/mine", dependencies=[Depends(require_api_key)])
async def list_my_orders() -> JSONResponse:
    try:
        orders = await get_client().get_my_orders()
    except ValueError as exc:
        return _upstream_error(exc)

    return JSONResponse(
        content={
            "ok": True,
            "data": {"orders": [order.model_dump(mode="json") for order in orders]},
        }
    )


@app.get("/v1/orders/{order_id}", dependencies=[Depends(require_api_key)])
async def get_order(order_id: int) -> JSONResponse:
    try:
        order = await get_client().get_order_detail(order_id)
    except ValueError as exc:
        return _upstream_error(exc)

    return JSONResponse(content={"ok": True, "data": {"order": order.model_dump(mode="json")}})


@app.delete("/v1/orders/{order_id}", dependencies=[Depends(require_api_key)])
async def cancel_order(order_id: int) -> JSONResponse:
    try:
        result = await get_client().cancel_order(order_id)
    except ValueError as exc:
        return _upstream_error(exc)

    if not result.success:
        return JSONResponse(
            content={
                "ok": False,
                "error_code": "CANCEL_FAILED",
                "human_message": result.message,
            }
        )
    return JSONResponse(content={"ok": True, "data": result.model_dump(mode="json")})


if __name__ == "__main__":
    uvicorn.run("candlelit.main:app", host="127.0.0.1", port=8000, log_level=LOG_LEVEL.lower())
