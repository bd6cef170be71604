import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(enum.Enum):
    EMPTY_INPUT = "empty_input"
    CITY_NOT_FOUND = "city_not_found"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"
    LOCATION_UNAVAILABLE = "location_unavailable"
    ADVICE_GENERATION_FAILURE = "advice_generation_failure"
    STORE_ERROR = "store_error"


class LocationReason(enum.Enum):
    SERVICE_DISABLED = "service_disabled"
    PERMISSION_DENIED = "permission_denied"
    PERMISSION_DENIED_FOREVER = "permission_denied_forever"
    LOOKUP_FAILED = "lookup_failed"


class WeatherHomeError(Exception):
    kind: FailureKind


class EmptyInput(WeatherHomeError):
    kind = FailureKind.EMPTY_INPUT


class CityNotFound(WeatherHomeError):
    kind = FailureKind.CITY_NOT_FOUND

    def __init__(self, city: str, status: int):
        super().__init__(f"Weather provider returned {status} for {city!r}")
        self.city = city
        self.status = status


class NetworkError(WeatherHomeError):
    kind = FailureKind.NETWORK_ERROR


class MalformedResponse(WeatherHomeError):
    kind = FailureKind.MALFORMED_RESPONSE


class LocationUnavailable(WeatherHomeError):
    kind = FailureKind.LOCATION_UNAVAILABLE

    def __init__(self, reason: LocationReason, message: str = ""):
        super().__init__(message or reason.value)
        self.reason = reason


class AdviceGenerationFailure(WeatherHomeError):
    kind = FailureKind.ADVICE_GENERATION_FAILURE


class StoreError(WeatherHomeError):
    kind = FailureKind.STORE_ERROR


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a call whose failures the caller decides how to degrade.

    Exactly one of ``value`` and ``error`` is set.
    """
    value: Optional[T] = None
    error: Optional[WeatherHomeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[FailureKind]:
        return self.error.kind if self.error is not None else None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: WeatherHomeError) -> "Result[T]":
        return cls(error=error)
