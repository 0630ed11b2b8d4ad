from candlelit.booking.availability import is_venue_free, is_window_open, parse_timestamp
from candlelit.booking.booker import Booker, NoOrderInputError, NoVenueAvailableError
from candlelit.booking.models import (
    BookingRequest,
    CancelResult,
    DateRange,
    NewOrder,
    OpenHours,
    OpenTimeRange,
    Order,
    OrderCreated,
    OrderFailed,
    OrderResult,
    SortOptions,
    TimeRange,
    Venue,
)
from candlelit.booking.ranking import sort_venues

__all__ = [
    "Booker",
    "BookingRequest",
    "CancelResult",
    "DateRange",
    "NewOrder",
    "NoOrderInputError",
    "NoVenueAvailableError",
    "OpenHours",
    "OpenTimeRange",
    "Order",
    "OrderCreated",
    "OrderFailed",
    "OrderResult",
    "SortOptions",
    "TimeRange",
    "Venue",
    "is_venue_free",
    "is_window_open",
    "parse_timestamp",
    "sort_venues",
]
