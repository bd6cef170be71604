import logging
from typing import Callable, Optional, Sequence

from weather_home.services.cache import PersistentCityStore
from weather_home.services.errors import CityNotFound, NetworkError, WeatherHomeError
from weather_home.services.location import LocationResolver
from weather_home.services.recommendation import AdviceGenerator, ClothingAdvice
from weather_home.services.suggestions import POPULAR_CITIES, Debouncer, filter_cities
from weather_home.services.weather import WeatherFetcher
from weather_home.state import (
    AdviceReady,
    AppState,
    CitySelected,
    FetchFailed,
    FetchStarted,
    FetchSucceeded,
    InitializationStarted,
    Listener,
    SnapshotRestored,
    StateStore,
    SuggestionsCleared,
    SuggestionsUpdated,
    WeatherLoaded,
)

logger = logging.getLogger(__name__)

CITY_NOT_FOUND_MESSAGE = "City not found. Please try another city."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


def error_message_for(error: Exception) -> str:
    if isinstance(error, CityNotFound):
        return CITY_NOT_FOUND_MESSAGE
    if isinstance(error, NetworkError):
        return NETWORK_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE


class AppController:
    """
    Sequences startup, search, location detection and persistence.

    All state changes go through ``self.store.dispatch``. Remote failures of
    the location and advice collaborators are degraded here: a missing
    location falls back to the current city, missing advice to the local rules.
    """

    def __init__(
        self,
        fetcher: WeatherFetcher,
        advisor: AdviceGenerator,
        city_store: PersistentCityStore,
        resolver: LocationResolver,
        default_city: str = "London",
        cities: Sequence[str] = POPULAR_CITIES,
        max_suggestions: int = 5,
        debounce_ms: int = 300,
    ):
        self.fetcher = fetcher
        self.advisor = advisor
        self.city_store = city_store
        self.resolver = resolver
        self.cities = list(cities)
        self.max_suggestions = max_suggestions
        self.store = StateStore(AppState(current_city=default_city))
        self._debouncer = Debouncer(debounce_ms / 1000, self._update_suggestions)

    @property
    def state(self) -> AppState:
        return self.store.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    async def initialize(self):
        self.store.dispatch(InitializationStarted())

        last_city = await self.city_store.load_city()
        snapshot = await self.city_store.load_weather()
        if snapshot is not None:
            self.store.dispatch(SnapshotRestored(weather=snapshot, city=last_city))

        if last_city:
            self.store.dispatch(CitySelected(last_city))
            await self.fetch_weather_for_city(last_city)
        else:
            await self.detect_location_and_fetch()

    async def detect_location_and_fetch(self):
        self.store.dispatch(FetchStarted(self.state.current_city))

        result = await self.resolver.resolve()
        if result.ok:
            city = result.value
            self.store.dispatch(CitySelected(city))
            await self.city_store.save_city(city)
        else:
            logger.info(f"Location detection degraded to {self.state.current_city}: {result.error}")

        await self.fetch_weather_for_city(self.state.current_city)

    async def fetch_weather_for_city(self, city: str):
        if not city or not city.strip():
            return

        self.store.dispatch(FetchStarted(city))

        try:
            weather = await self.fetcher.fetch_by_city(city)
        except WeatherHomeError as e:
            logger.warning(f"Weather fetch for {city} failed: {e!r}")
            self.store.dispatch(FetchFailed(error_message_for(e)))
            return
        except Exception as e:
            logger.exception(f"Unexpected error fetching weather for {city}: {e!r}")
            self.store.dispatch(FetchFailed(GENERIC_ERROR_MESSAGE))
            return

        self.store.dispatch(WeatherLoaded(city=city, weather=weather))
        await self.city_store.save_snapshot(city, weather)

        result = await self.advisor.request_advice(weather)
        if result.ok:
            advice = result.value
        else:
            logger.info(f"Using fallback advice for {city}: {result.error}")
            advice = ClothingAdvice.compute_fallback(weather)

        self.store.dispatch(AdviceReady(advice))
        self.store.dispatch(FetchSucceeded())

    def on_search_input(self, text: str):
        if len(text) > 2:
            self._debouncer.call(text)
        else:
            self._debouncer.cancel()
            self.store.dispatch(SuggestionsCleared())

    def _update_suggestions(self, query: str):
        matches = filter_cities(query, self.cities, self.max_suggestions)
        self.store.dispatch(SuggestionsUpdated(tuple(matches)))

    async def select_suggestion(self, city: str):
        self._debouncer.cancel()
        self.store.dispatch(SuggestionsCleared())
        await self.fetch_weather_for_city(city)

    def close(self):
        self._debouncer.cancel()


def build_controller(settings, fetcher: WeatherFetcher, advisor: AdviceGenerator,
                     city_store: PersistentCityStore,
                     resolver: Optional[LocationResolver] = None) -> AppController:
    return AppController(
        fetcher=fetcher,
        advisor=advisor,
        city_store=city_store,
        resolver=resolver or LocationResolver.from_settings(settings),
        default_city=settings.DEFAULT_CITY,
        max_suggestions=settings.MAX_SUGGESTIONS,
        debounce_ms=settings.SEARCH_DEBOUNCE_MS,
    )
