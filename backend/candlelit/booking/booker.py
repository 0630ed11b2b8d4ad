from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

from candlelit.booking.availability import is_venue_free
from candlelit.booking.models import (
    BookingRequest,
    DateRange,
    NewOrder,
    OrderCreated,
    OrderFailed,
    OrderResult,
    SortOptions,
    TimeRange,
    Venue,
)
from candlelit.booking.ranking import sort_venues
from candlelit.config import BOOKER_SUBMIT_CONCURRENCY

if TYPE_CHECKING:
    from candlelit.integrations.seiue import SeiueClient


logger = logging.getLogger("candlelit.booking.booker")


class NoVenueAvailableError(LookupError):
    pass


class NoOrderInputError(ValueError):
    pass


class Booker:
    """Picks venues for booking requests and submits the resulting orders.

    The catalog handed in at construction is ranked once and afterwards only
    replaced as a whole by ``rank_venues``. Batch planning mutates a deep copy,
    so concurrent lookups against ``venues`` always see a consistent snapshot.
    """

    def __init__(
        self,
        client: SeiueClient,
        venues: Sequence[Venue],
        sort_options: SortOptions | None = None,
    ) -> None:
        self._client = client
        self._venues = sort_venues(venues, sort_options)

    @classmethod
    async def init(cls, client: SeiueClient, sort_options: SortOptions | None = None) -> Booker:
        venues = await client.get_venue_list()
        logger.info("Loaded venue catalog venue_count=%s", len(venues))
        return cls(client, venues, sort_options)

    @property
    def venues(self) -> list[Venue]:
        return list(self._venues)

    def rank_venues(self, options: SortOptions | None = None) -> list[Venue]:
        self._venues = sort_venues(self._venues, options)
        return self.venues

    async def check_availability(
        self,
        venue_id: int,
        start_time: str,
        end_time: str,
        venues: Sequence[Venue] | None = None,
    ) -> bool:
        source = self._venues if venues is None else venues
        return is_venue_free(venue_id, start_time, end_time, source)

    async def find_first_available(
        self,
        start_time: str,
        end_time: str,
        venues: Sequence[Venue] | None = None,
    ) -> Venue:
        source = self._venues if venues is None else venues
        for venue in source:
            if await self.check_availability(venue.id, start_time, end_time, source):
                return venue
        raise NoVenueAvailableError(f"No venue available for {start_time} - {end_time}")

    async def find_all_available(
        self,
        start_time: str,
        end_time: str,
        venues: Sequence[Venue] | None = None,
    ) -> list[Venue]:
        source = list(self._venues if venues is None else venues)
        if not source:
            raise NoVenueAvailableError("Venue catalog is empty")

        checks = await asyncio.gather(
            *(self.check_availability(venue.id, start_time, end_time, source) for venue in source)
        )
        return [venue for venue, is_free in zip(source, checks) if is_free]

    async def plan_single(self, request: BookingRequest) -> NewOrder:
        venue = await self.find_first_available(request.start_time, request.end_time)
        return build_order(venue, request)

    async def plan_batch(self, requests: Sequence[BookingRequest]) -> list[NewOrder]:
        # Each placement must see the previous ones, so this stays sequential.
        working_copy = [venue.model_copy(deep=True) for venue in self._venues]
        orders: list[NewOrder] = []
        for request in requests:
            venue = await self.find_first_available(
                request.start_time,
                request.end_time,
                working_copy,
            )
            orders.append(build_order(venue, request))
            venue.preallocated_times.append(
                TimeRange(start_at=request.start_time, end_at=request.end_time)
            )
        logger.info("Planned batch order_count=%s", len(orders))
        return orders

    async def submit(
        self,
        orders: NewOrder | Sequence[NewOrder] | None,
        concurrency: int | None = None,
    ) -> OrderResult | list[OrderResult]:
        if not orders:
            raise NoOrderInputError("No order input")

        if isinstance(orders, NewOrder):
            try:
                created = await self._client.create_order(orders)
            except Exception:
                logger.exception("Order submission failed venue_id=%s", orders.venue_id)
                return OrderFailed(order=orders)
            return OrderCreated(order=created)

        if concurrency is None:
            concurrency = BOOKER_SUBMIT_CONCURRENCY
        chunk_size = max(1, concurrency)
        pending = list(orders)

        results: list[OrderResult] = []
        for offset in range(0, len(pending), chunk_size):
            chunk = pending[offset : offset + chunk_size]
            # Whole chunk settles before the next one starts.
            outcomes = await asyncio.gather(
                *(self._client.create_order(order) for order in chunk),
                return_exceptions=True,
            )
            for order, outcome in zip(chunk, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(
                        "Order submission failed venue_id=%s",
                        order.venue_id,
                        exc_info=outcome,
                    )
                    results.append(OrderFailed(order=order))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    results.append(OrderCreated(order=outcome))

        logger.info(
            "Submitted orders total=%s succeeded=%s",
            len(results),
            sum(1 for result in results if result.success),
        )
        return results


def build_order(venue: Venue, request: BookingRequest) -> NewOrder:
    return NewOrder(
        venue_id=venue.id,
        capacity=request.capacity,
        description=request.description,
        date_ranges=DateRange(
            start_at=_date_part(request.start_time),
            end_at=_date_part(request.end_time),
        ),
        time_ranges=[TimeRange(start_at=request.start_time, end_at=request.end_time)],
    )


def _date_part(timestamp: str) -> str:
    return timestamp.split(" ")[0]
