import asyncio
import json
import sys

from candlelit.booking.booker import Booker, NoVenueAvailableError
from candlelit.booking.models import BookingRequest
from candlelit.integrations.seiue import build_seiue_client_from_env


async def book_from_file(path: str, submit: bool = False) -> int:
    with open(path, encoding="utf-8") as handle:
        raw_requests = json.load(handle)
    requests = [BookingRequest.model_validate(item) for item in raw_requests]

    booker = await Booker.init(build_seiue_client_from_env())
    try:
        orders = await booker.plan_batch(requests)
    except NoVenueAvailableError as exc:
        print(f"Could not plan bookings: {exc}")
        return 1

    venue_names = {venue.id: venue.name for venue in booker.venues}
    for order in orders:
        time_range = order.time_ranges[0]
        print(f"{venue_names.get(order.venue_id, order.venue_id)}: {time_range.start_at} - {time_range.end_at}")

    if not submit:
        return 0

    results = await booker.submit(orders)
    failed = 0
    for result in results:
        print(f"[{result.message}] venue_id={result.order.venue_id}")
        if not result.success:
            failed += 1
    return 1 if failed else 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: book_from_file.py REQUESTS.json [--submit]")
        sys.exit(2)
    sys.exit(asyncio.run(book_from_file(sys.argv[1], submit="--submit" in sys.argv[2:])))
