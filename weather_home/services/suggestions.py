import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

POPULAR_CITIES = [
    "London", "Londonderry", "Paris", "New York", "Tokyo", "Berlin", "Madrid",
    "Rome", "Moscow", "Beijing", "Sydney", "Melbourne", "Toronto", "Vancouver",
    "Los Angeles", "San Francisco", "Chicago", "Boston", "Miami", "Seattle",
    "Dubai", "Mumbai", "Delhi", "Bangalore", "Singapore", "Hong Kong", "Seoul",
    "Bangkok", "Istanbul", "Cairo", "Cape Town", "Johannesburg", "Nairobi",
    "Lagos", "Buenos Aires", "Rio de Janeiro", "Sao Paulo", "Mexico City",
    "Lima", "Santiago", "Amsterdam", "Brussels", "Vienna", "Prague", "Warsaw",
    "Budapest", "Stockholm", "Oslo", "Copenhagen", "Helsinki", "Dublin",
    "Edinburgh", "Manchester", "Lisbon", "Barcelona", "Milan", "Munich",
    "Zurich", "Geneva", "Athens", "Kyiv", "Saint Petersburg", "Jakarta",
    "Manila", "Kuala Lumpur", "Ho Chi Minh City", "Hanoi", "Shanghai",
    "Osaka", "Auckland", "Wellington", "Perth", "Brisbane", "Montreal",
    "Ottawa", "Calgary", "Denver", "Austin", "Houston", "Dallas", "Atlanta",
    "Philadelphia", "Washington", "Las Vegas", "Phoenix", "San Diego",
]


def filter_cities(query: str, cities: Iterable[str] = POPULAR_CITIES, limit: int = 5) -> List[str]:
    """Case-insensitive substring matches, in list order, at most ``limit``."""
    needle = query.lower()
    matches = []
    for city in cities:
        if needle in city.lower():
            matches.append(city)
            if len(matches) >= limit:
                break
    return matches


class Debouncer:
    """
    Runs ``callback`` once the calls have been quiet for ``delay`` seconds.

    Every ``call`` cancels the pending run, so only the last arguments are used.
    Must be called from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[..., None]):
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, *args) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: Sequence) -> None:
        self._handle = None
        self.callback(*args)
