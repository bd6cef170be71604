import logging
from typing import Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from weather_home.config import Settings
from weather_home.database.crud import StoredValueCRUD
from .errors import MalformedResponse, StoreError
from .weather import WeatherRecord

logger = logging.getLogger(__name__)

LAST_CITY_KEY = "last_selected_city"
LAST_WEATHER_KEY = "last_weather_data"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class RedisKeyValueStore:
    """String values in Redis, without expiry."""

    def __init__(self, client: aioredis.Redis, prefix: str = "weather_home:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    async def from_url(cls, url: str) -> "RedisKeyValueStore":
        client = await aioredis.from_url(url, decode_responses=True)
        logger.info("Redis connected")
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(f"{self.prefix}{key}")
        except RedisError as e:
            raise StoreError(f"Redis read of {key} failed: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(f"{self.prefix}{key}", value)
        except RedisError as e:
            raise StoreError(f"Redis write of {key} failed: {e}") from e

    async def close(self):
        await self.client.aclose()


class DatabaseKeyValueStore:
    """String values in the ``stored_values`` table."""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_maker is None:
            from weather_home.database.connection import AsyncSessionLocal
            session_maker = AsyncSessionLocal
        self.session_maker = session_maker

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self.session_maker() as session:
                return await StoredValueCRUD.get_value(session, key)
        except SQLAlchemyError as e:
            raise StoreError(f"Database read of {key} failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self.session_maker() as session:
                await StoredValueCRUD.set_value(session, key, value)
        except SQLAlchemyError as e:
            raise StoreError(f"Database write of {key} failed: {e}") from e


async def create_backend(settings: Settings) -> KeyValueStore:
    if settings.REDIS_URL:
        return await RedisKeyValueStore.from_url(settings.REDIS_URL)

    from weather_home.database.connection import init_db
    await init_db()
    return DatabaseKeyValueStore()


class PersistentCityStore:
    """
    Last selected city and last weather snapshot.

    Storage failures are logged and read as "nothing stored", so a broken
    backend never stops a fetch.
    """

    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    async def load_city(self) -> Optional[str]:
        try:
            city = await self.backend.get(LAST_CITY_KEY)
        except StoreError as e:
            logger.error(f"Error loading last city: {e}")
            return None
        if city is None or not city.strip():
            return None
        return city

    async def save_city(self, city: str) -> bool:
        try:
            await self.backend.set(LAST_CITY_KEY, city)
        except StoreError as e:
            logger.error(f"Error saving last city: {e}")
            return False
        return True

    async def load_weather(self) -> Optional[WeatherRecord]:
        try:
            raw = await self.backend.get(LAST_WEATHER_KEY)
        except StoreError as e:
            logger.error(f"Error loading weather snapshot: {e}")
            return None
        if raw is None:
            return None

        try:
            return WeatherRecord.from_json(raw)
        except MalformedResponse as e:
            logger.warning(f"Ignoring unreadable weather snapshot: {e}")
            return None

    async def save_weather(self, weather: WeatherRecord) -> bool:
        try:
            await self.backend.set(LAST_WEATHER_KEY, weather.to_json())
        except StoreError as e:
            logger.error(f"Error saving weather snapshot: {e}")
            return False
        return True

    async def save_snapshot(self, city: str, weather: WeatherRecord) -> bool:
        city_saved = await self.save_city(city)
        weather_saved = await self.save_weather(weather)
        return city_saved and weather_saved
