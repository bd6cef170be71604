import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from weather_home.config import Settings
from .errors import CityNotFound, EmptyInput, MalformedResponse, NetworkError

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Unknown"
DEFAULT_ICON = "01d"


def icon_url(icon_code: str, host: str = "https://openweathermap.org") -> str:
    return f"{host.rstrip('/')}/img/wn/{icon_code}@2x.png"


def _number(section: Dict[str, Any], key: str, path: str) -> float:
    value = section.get(key)
    # bool is an int subclass, but true/false is never a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponse(f"{path} must be a number, got {value!r}")
    return float(value)


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = raw.get(key)
    if not isinstance(section, dict):
        raise MalformedResponse(f"'{key}' must be an object, got {section!r}")
    return section


@dataclass(frozen=True)
class WeatherRecord:
    temperature: float
    feels_like: float
    description: str
    icon_code: str
    humidity: float
    wind_speed: float
    pressure: Optional[float] = None

    @classmethod
    def parse(cls, raw: Any) -> "WeatherRecord":
        """
        Build a record from an OpenWeatherMap current-weather body.

        Args:
            raw: Decoded JSON of the provider response (or of ``serialize()``)

        Returns:
            WeatherRecord

        Raises:
            MalformedResponse: a required field is missing or not numeric
        """
        if not isinstance(raw, dict):
            raise MalformedResponse(f"Expected a JSON object, got {type(raw).__name__}")

        main = _section(raw, "main")
        wind = _section(raw, "wind")

        conditions = raw.get("weather")
        if not isinstance(conditions, list) or not conditions:
            raise MalformedResponse("'weather' must be a non-empty list")
        condition = conditions[0]
        if not isinstance(condition, dict):
            raise MalformedResponse("'weather[0]' must be an object")

        pressure = None
        if main.get("pressure") is not None:
            pressure = _number(main, "pressure", "main.pressure")

        description = condition.get("description")
        icon = condition.get("icon")

        return cls(
            temperature=_number(main, "temp", "main.temp"),
            feels_like=_number(main, "feels_like", "main.feels_like"),
            description=str(description) if description is not None else DEFAULT_DESCRIPTION,
            icon_code=str(icon) if icon is not None else DEFAULT_ICON,
            humidity=_number(main, "humidity", "main.humidity"),
            wind_speed=_number(wind, "speed", "wind.speed"),
            pressure=pressure,
        )

    def serialize(self) -> Dict[str, Any]:
        main: Dict[str, Any] = {
            "temp": self.temperature,
            "feels_like": self.feels_like,
            "humidity": self.humidity,
        }
        if self.pressure is not None:
            main["pressure"] = self.pressure

        return {
            "main": main,
            "weather": [{"description": self.description, "icon": self.icon_code}],
            "wind": {"speed": self.wind_speed},
        }

    def to_json(self) -> str:
        return json.dumps(self.serialize())

    @classmethod
    def from_json(cls, text: str) -> "WeatherRecord":
        try:
            raw = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Invalid weather JSON: {e}") from e
        return cls.parse(raw)

    def icon_url(self, host: str = "https://openweathermap.org") -> str:
        return icon_url(self.icon_code, host)


class WeatherFetcher:
    """Current conditions for a city from OpenWeatherMap."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org/data/2.5/weather",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Settings,
                      session: Optional[aiohttp.ClientSession] = None) -> "WeatherFetcher":
        return cls(
            api_key=settings.OPENWEATHER_API_KEY,
            base_url=settings.OPENWEATHER_URL,
            session=session,
        )

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def fetch_by_city(self, city: str) -> WeatherRecord:
        if not city or not city.strip():
            raise EmptyInput("City name is empty")
        if self.session is None:
            raise RuntimeError("Use 'async with WeatherFetcher(...)' or pass a session")

        params = {
            "q": city,
            "appid": self.api_key,
            "units": "metric",
        }

        try:
            async with self.session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    error_text = await response.text(errors="replace")
                    logger.warning(f"Weather API error {response.status} for {city}: {error_text}")
                    raise CityNotFound(city, response.status)

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponse(f"Weather response is not JSON: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Weather request for {city} failed: {e!r}")
            raise NetworkError(str(e) or type(e).__name__) from e

        record = WeatherRecord.parse(data)
        logger.debug(f"Weather for {city}: {record}")
        return record
