from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from datetime import date, timedelta
from typing import Any
from urllib import parse, request

from candlelit.booking.models import (
    CANCEL_FAILED_MESSAGE,
    CANCEL_SUCCEEDED_MESSAGE,
    CancelResult,
    NewOrder,
    OpenHours,
    OpenTimeRange,
    Order,
    TimeRange,
    Venue,
)
from candlelit.config import (
    CANDLELIT_MARK,
    SEIUE_API_URL,
    SEIUE_CHALK_URL,
    SEIUE_SCHOOL_ID,
    SEIUE_TIMEOUT_SECONDS,
    SEIUE_VENUE_TYPE_ID,
)
from candlelit.integrations.zerowidth import strip_zero_width, zero_decode, zero_encode

logger = logging.getLogger("candlelit.integrations.seiue")

VENUE_NAME_PATTERN = re.compile(r"([A-Z])(\d)")
KNOWN_BUILDINGS = {"A", "B", "C", "D"}


class SeiueRequestError(ValueError):
    pass


class SeiueClient:
    """Async wrapper around the Seiue venue booking endpoints.

    Requests go through blocking ``urllib`` calls pushed onto worker threads,
    so several lookups can be in flight from one event loop.
    """

    def __init__(
        self,
        access_token: str,
        reflection_id: int,
        school_id: str = SEIUE_SCHOOL_ID,
        api_url: str = SEIUE_API_URL,
        timeout: float = SEIUE_TIMEOUT_SECONDS,
        mark: str = CANDLELIT_MARK,
    ) -> None:
        self.access_token = access_token
        self.reflection_id = reflection_id
        self.school_id = school_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.mark = mark

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.access_token}",
            "X-Reflection-Id": str(self.reflection_id),
            "X-School-Id": self.school_id,
            "Referer": SEIUE_CHALK_URL,
        }

    def _request_json(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        endpoint = f"{self.api_url}{path}"
        if params:
            endpoint = f"{endpoint}?{parse.urlencode(params)}"

        headers = self._headers()
        data = None
        if body is not None:
            data = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = request.Request(endpoint, data=data, headers=headers, method=method)
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except Exception as exc:
            raise SeiueRequestError(f"Seiue request failed: {method} {path}") from exc

        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SeiueRequestError(f"Seiue returned invalid JSON: {method} {path}") from exc

    async def _fetch(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        return await asyncio.to_thread(self._request_json, method, path, params, body)

    async def get_calendar_events(self, venue_ids: str, split_size: int = 1) -> list[dict[str, Any]]:
        """Fetch calendar events for comma separated venue ids.

        Ids are requested ``split_size`` at a time because large groups make
        the remote side drop events.
        """
        groups = split_comma_separated(venue_ids, split_size)
        responses = await asyncio.gather(
            *(
                self._fetch(
                    "GET",
                    "/scms/venue/venues/calendar-events",
                    params={
                        "start_time": monday_this_week(),
                        "end_time": sunday_two_weeks_later(),
                        "venue_id_in": group,
                    },
                )
                for group in groups
            )
        )
        return _flatten(responses)

    async def get_order_times(self, venue_ids: str, split_size: int = 1) -> list[dict[str, Any]]:
        groups = split_comma_separated(venue_ids, split_size)
        responses = await asyncio.gather(
            *(
                self._fetch(
                    "GET",
                    "/scms/venue/order-times",
                    params={
                        "start_at_egt": monday_this_week(),
                        "end_at_elt": sunday_two_weeks_later(),
                        "status": "initiated",
                        "venue_id_in": group,
                    },
                )
                for group in groups
            )
        )
        return _flatten(responses)

    async def get_venue_list(self) -> list[Venue]:
        payload = await self._fetch(
            "GET",
            "/scms/venue/order-venues",
            params={
                "expand": "places,place_ids",
                "need_select_follower": "true",
                "only_empty_time": "false",
                "page": 1,
                "per_page": 100,
                "sort": "-vf_id,-id",
                "type_id_in": SEIUE_VENUE_TYPE_ID,
            },
        )
        venues = [parse_venue(item) for item in payload or []]
        if not venues:
            return venues

        by_id = {venue.id: venue for venue in venues}
        venue_ids = ",".join(str(venue.id) for venue in venues)
        calendar_events, order_times = await asyncio.gather(
            self.get_calendar_events(venue_ids),
            self.get_order_times(venue_ids),
        )

        for item in calendar_events:
            venue = by_id.get(item.get("venue_id"))
            if venue is None:
                logger.debug("Skipping calendar events for unknown venue_id=%s", item.get("venue_id"))
                continue
            for event in item.get("events") or []:
                if not event.get("start_time") or not event.get("end_time"):
                    logger.debug("Skipping incomplete calendar event for venue_id=%s", venue.id)
                    continue
                venue.occupied_times.append(
                    TimeRange(start_at=event["start_time"], end_at=event["end_time"])
                )

        for item in order_times:
            venue = by_id.get(item.get("venue_id"))
            if venue is None:
                logger.debug("Skipping order time for unknown venue_id=%s", item.get("venue_id"))
                continue
            if not item.get("start_at") or not item.get("end_at"):
                logger.debug("Skipping incomplete order time for venue_id=%s", venue.id)
                continue
            venue.occupied_times.append(TimeRange(start_at=item["start_at"], end_at=item["end_at"]))

        return venues

    async def create_order(self, order: NewOrder) -> Order:
        payload = await self._fetch(
            "POST",
            f"/scms/venue/order-venues/{order.venue_id}/orders",
            body={
                "type": "single_day",
                "time_ranges": [
                    {"start_at": item.start_at, "end_at": item.end_at}
                    for item in order.time_ranges
                ],
                "capacity": order.capacity,
                "description": zero_encode(order.description, self.mark),
                "date_ranges": {
                    "start_at": order.date_ranges.start_at,
                    "end_at": order.date_ranges.end_at,
                },
            },
        )
        if not isinstance(payload, dict):
            raise SeiueRequestError("Seiue order response was empty.")
        return parse_order(payload, is_candlelit=True)

    async def get_order_detail(self, order_id: int) -> Order:
        payload = await self._fetch("GET", f"/scms/venue/orders/{order_id}")
        if not isinstance(payload, dict):
            raise SeiueRequestError("Seiue order detail response was empty.")
        return parse_order(payload, mark=self.mark)

    async def get_my_orders(self) -> list[Order]:
        payload = await self._fetch(
            "GET",
            "/scms/venue/my-orders",
            params={"expand": "order_times,venue", "page": 1, "per_page": 100},
        )
        return [parse_order(item, mark=self.mark) for item in payload or []]

    async def cancel_order(self, order_id: int) -> CancelResult:
        try:
            await self._fetch("PUT", f"/scms/venue/candel-orders/{order_id}")
        except SeiueRequestError:
            logger.exception("Order cancel failed order_id=%s", order_id)
            return CancelResult(success=False, message=CANCEL_FAILED_MESSAGE)
        return CancelResult(success=True, message=CANCEL_SUCCEEDED_MESSAGE)


def build_seiue_client_from_env() -> SeiueClient:
    access_token = os.getenv("SEIUE_ACCESS_TOKEN", "").strip()
    reflection_id = os.getenv("SEIUE_REFLECTION_ID", "").strip()
    if not access_token or not reflection_id:
        raise ValueError("Seiue credentials are not configured.")
    try:
        parsed_reflection_id = int(reflection_id)
    except ValueError as exc:
        raise ValueError("SEIUE_REFLECTION_ID must be an integer.") from exc
    return SeiueClient(access_token=access_token, reflection_id=parsed_reflection_id)


def parse_venue(payload: dict[str, Any]) -> Venue:
    name = str(payload.get("name") or "")
    building, floor = None, None
    match = VENUE_NAME_PATTERN.search(name)
    if match:
        building = match.group(1) if match.group(1) in KNOWN_BUILDINGS else None
        floor = match.group(2)

    return Venue(
        id=payload["id"],
        name=name,
        building=building,
        floor=floor,
        open_time_ranges=[
            OpenTimeRange(
                week_days=item.get("week_days") or [],
                ranges=[
                    OpenHours(start_at=hours["start_at"], end_at=hours["end_at"])
                    for hours in item.get("ranges") or []
                ],
            )
            for item in payload.get("open_time_ranges") or []
        ],
    )


def parse_order(
    payload: dict[str, Any],
    *,
    is_candlelit: bool | None = None,
    mark: str = CANDLELIT_MARK,
) -> Order:
    description = payload.get("description") or ""
    if is_candlelit is None:
        is_candlelit = zero_decode(description) == mark
    return Order(
        id=payload["id"],
        venue_id=payload["venue_id"],
        capacity=payload.get("capacity") or 0,
        description=strip_zero_width(description),
        time_ranges=[
            TimeRange(start_at=item["start_at"], end_at=item["end_at"])
            for item in payload.get("time_ranges") or []
        ],
        is_candlelit=is_candlelit,
    )


def split_comma_separated(value: str, size: int) -> list[str]:
    items = [item.strip() for item in value.split(",") if item.strip()]
    size = max(1, size)
    return [",".join(items[index : index + size]) for index in range(0, len(items), size)]


def monday_this_week(today: date | None = None) -> str:
    today = today or date.today()
    monday = today - timedelta(days=today.weekday())
    return f"{monday.isoformat()} 00:00:00"


def sunday_two_weeks_later(today: date | None = None) -> str:
    today = today or date.today()
    sunday = today + timedelta(days=6 - today.weekday() + 14)
    return f"{sunday.isoformat()} 23:59:59"


def _flatten(responses: list[Any]) -> list[dict[str, Any]]:
    flattened: list[dict[str, Any]] = []
    for response in responses:
        if isinstance(response, list):
            flattened.extend(response)
    return flattened
