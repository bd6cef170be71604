import logging
from typing import Optional, Protocol, Tuple

from geopy.adapters import AioHTTPAdapter
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from weather_home.config import Settings
from .errors import LocationReason, LocationUnavailable, Result

logger = logging.getLogger(__name__)

# Address fields that name a settlement, most specific first
LOCALITY_FIELDS = ("city", "town", "village", "municipality")


class PositionSource(Protocol):
    async def current_position(self) -> Tuple[float, float]:
        """
        Returns:
            (latitude, longitude)

        Raises:
            LocationUnavailable: service disabled, permission denied or no fix
        """
        ...


class FixedPositionSource:
    """Position taken from configuration, for hosts without a GPS."""

    def __init__(self, latitude: Optional[float], longitude: Optional[float]):
        self.latitude = latitude
        self.longitude = longitude

    @classmethod
    def from_settings(cls, settings: Settings) -> "FixedPositionSource":
        return cls(settings.DEVICE_LATITUDE, settings.DEVICE_LONGITUDE)

    async def current_position(self) -> Tuple[float, float]:
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailable(LocationReason.SERVICE_DISABLED, "No device coordinates configured")
        return self.latitude, self.longitude


def locality_from_address(address: dict) -> Optional[str]:
    for field in LOCALITY_FIELDS:
        name = address.get(field)
        if name:
            return name
    return None


class LocationResolver:
    """Best-effort place name for the device position, via Nominatim."""

    def __init__(
        self,
        position_source: PositionSource,
        user_agent: str = "weather_home",
        language: str = "en",
        timeout: int = 10,
    ):
        self.position_source = position_source
        self.user_agent = user_agent
        self.language = language
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings,
                      position_source: Optional[PositionSource] = None) -> "LocationResolver":
        return cls(
            position_source=position_source or FixedPositionSource.from_settings(settings),
            user_agent=settings.GEOCODER_USER_AGENT,
            language=settings.GEOCODER_LANGUAGE,
        )

    async def resolve(self) -> Result[str]:
        """
        Returns:
            Result with the place name, or with LocationUnavailable.
            Never raises.
        """
        try:
            latitude, longitude = await self.position_source.current_position()
        except LocationUnavailable as e:
            logger.info(f"Location unavailable: {e.reason.value}")
            return Result.failure(e)

        try:
            city = await self._reverse_geocode(latitude, longitude)
        except GeopyError as e:
            logger.error(f"Reverse geocoding failed for ({latitude}, {longitude}): {e}")
            return Result.failure(LocationUnavailable(LocationReason.LOOKUP_FAILED, str(e)))

        if not city:
            logger.warning(f"No locality found at ({latitude}, {longitude})")
            return Result.failure(LocationUnavailable(LocationReason.LOOKUP_FAILED, "No locality at position"))

        logger.info(f"Detected city: {city}")
        return Result.success(city)

    async def _reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        async with Nominatim(
                user_agent=self.user_agent,
                adapter_factory=AioHTTPAdapter,
                timeout=self.timeout
        ) as geolocator:
            location = await geolocator.reverse(
                (latitude, longitude),
                exactly_one=True,
                addressdetails=True,
                language=self.language
            )

        if location is None:
            return None

        address = location.raw.get("address", {})
        return locality_from_address(address)
