"""
Application state and its transitions.

``reduce`` is a pure function from (state, event) to the next state. The
``StateStore`` keeps the current value and tells subscribers about every
transition; the controller is the only code that dispatches to it.
"""
import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from weather_home.services.recommendation import ClothingAdvice
from weather_home.services.weather import WeatherRecord

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass(frozen=True)
class AppState:
    current_city: str = "London"
    phase: Phase = Phase.IDLE
    loading: bool = False
    error_message: Optional[str] = None
    weather: Optional[WeatherRecord] = None
    advice: Optional[ClothingAdvice] = None
    city_suggestions: Tuple[str, ...] = ()
    suggestions_visible: bool = False


class Event:
    pass


@dataclass(frozen=True)
class InitializationStarted(Event):
    pass


@dataclass(frozen=True)
class SnapshotRestored(Event):
    weather: WeatherRecord
    city: Optional[str] = None


@dataclass(frozen=True)
class CitySelected(Event):
    city: str


@dataclass(frozen=True)
class FetchStarted(Event):
    city: str


@dataclass(frozen=True)
class WeatherLoaded(Event):
    city: str
    weather: WeatherRecord


@dataclass(frozen=True)
class AdviceReady(Event):
    advice: ClothingAdvice


@dataclass(frozen=True)
class FetchSucceeded(Event):
    pass


@dataclass(frozen=True)
class FetchFailed(Event):
    message: str


@dataclass(frozen=True)
class SuggestionsUpdated(Event):
    matches: Tuple[str, ...]


@dataclass(frozen=True)
class SuggestionsCleared(Event):
    pass


def reduce(state: AppState, event: Event) -> AppState:
    if isinstance(event, InitializationStarted):
        return replace(state, phase=Phase.INITIALIZING)

    if isinstance(event, SnapshotRestored):
        return replace(state, weather=event.weather, current_city=event.city or state.current_city)

    if isinstance(event, CitySelected):
        return replace(state, current_city=event.city)

    if isinstance(event, FetchStarted):
        return replace(state, loading=True, error_message=None)

    if isinstance(event, WeatherLoaded):
        # advice stays empty until the generator answers
        return replace(state, weather=event.weather, current_city=event.city, advice=None)

    if isinstance(event, AdviceReady):
        return replace(state, advice=event.advice)

    if isinstance(event, FetchSucceeded):
        return replace(state, loading=False, error_message=None, phase=Phase.READY)

    if isinstance(event, FetchFailed):
        return replace(state, loading=False, error_message=event.message, phase=Phase.READY)

    if isinstance(event, SuggestionsUpdated):
        matches = tuple(event.matches)
        return replace(state, city_suggestions=matches, suggestions_visible=bool(matches))

    if isinstance(event, SuggestionsCleared):
        return replace(state, city_suggestions=(), suggestions_visible=False)

    raise TypeError(f"Unknown event: {event!r}")


Listener = Callable[[AppState, Event], None]


class StateStore:
    def __init__(self, initial: Optional[AppState] = None):
        self._state = initial or AppState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: Event) -> AppState:
        self._state = reduce(self._state, event)
        logger.debug(f"{type(event).__name__} -> {self._state}")

        for listener in list(self._listeners):
            try:
                listener(self._state, event)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}")

        return self._state
