import os


ENV = os.getenv("ENV", "dev").lower()
API_KEY = os.getenv("API_KEY", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SEIUE_API_URL = os.getenv("SEIUE_API_URL", "https://api.seiue.com")
SEIUE_CHALK_URL = os.getenv("SEIUE_CHALK_URL", "https://chalk-c3.seiue.com")
SEIUE_SCHOOL_ID = os.getenv("SEIUE_SCHOOL_ID", "282")
SEIUE_VENUE_TYPE_ID = os.getenv("SEIUE_VENUE_TYPE_ID", "32008")
SEIUE_TIMEOUT_SECONDS = float(os.getenv("SEIUE_TIMEOUT_SECONDS", "15"))

CANDLELIT_MARK = os.getenv("CANDLELIT_MARK", "candlelit")

BOOKER_SUBMIT_CONCURRENCY = int(os.getenv("BOOKER_SUBMIT_CONCURRENCY", "2"))
BOOKER_FIRST_SORT_BY = os.getenv("BOOKER_FIRST_SORT_BY", "floor").lower()
BOOKER_BUILDING_ORDER = os.getenv("BOOKER_BUILDING_ORDER", "B,C,A,D")


def parse_building_order(value: str) -> dict[str, int]:
    buildings = [item.strip().upper() for item in value.split(",") if item.strip()]
    return {building: rank for rank, building in enumerate(buildings)}
