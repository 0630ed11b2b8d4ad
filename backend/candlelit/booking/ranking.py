from __future__ import annotations

from typing import Sequence

from candlelit.booking.models import SortOptions, Venue


def sort_venues(venues: Sequence[Venue], options: SortOptions | None = None) -> list[Venue]:
    """Return venues in booking preference order.

    Lower floors and buildings earlier in ``building_order`` come first; which
    of the two decides first is ``first_sort_by``. ``sorted`` is stable, so
    venues equal on both keys keep their relative order.
    """
    options = options or SortOptions()
    building_order = options.building_order
    unknown_rank = max(building_order.values(), default=-1) + 1

    def building_key(venue: Venue) -> int:
        if venue.building is None:
            return unknown_rank
        return building_order.get(venue.building, unknown_rank)

    def floor_key(venue: Venue) -> tuple[bool, str]:
        return (venue.floor is None, venue.floor or "")

    if options.first_sort_by == "floor":
        return sorted(venues, key=lambda venue: (floor_key(venue), building_key(venue)))
    return sorted(venues, key=lambda venue: (building_key(venue), floor_key(venue)))
