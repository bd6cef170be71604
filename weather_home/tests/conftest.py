import aiohttp
import pytest
import pytest_asyncio
from aioresponses import aioresponses
from fakeredis.aioredis import FakeRedis
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from weather_home.database.models import Base
from weather_home.services.weather import WeatherRecord


def _weather_payload(temp=10.0, feels_like=8.5, description="clear sky", icon="01d",
                     humidity=70, wind_speed=3.6, pressure=1012):
    main = {"temp": temp, "feels_like": feels_like, "humidity": humidity}
    if pressure is not None:
        main["pressure"] = pressure
    return {
        "coord": {"lon": 2.35, "lat": 48.85},
        "weather": [{"id": 800, "main": "Clear", "description": description, "icon": icon}],
        "main": main,
        "wind": {"speed": wind_speed, "deg": 200},
        "name": "Paris",
        "cod": 200,
    }


def _gemini_payload(text):
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"}
        ]
    }


@pytest.fixture
def weather_payload():
    return _weather_payload


@pytest.fixture
def gemini_payload():
    return _gemini_payload


@pytest.fixture
def paris_weather():
    return WeatherRecord(
        temperature=10.0,
        feels_like=8.5,
        description="clear sky",
        icon_code="01d",
        humidity=70.0,
        wind_speed=3.6,
        pressure=1012.0,
    )


@pytest.fixture
def mock_http():
    with aioresponses() as m:
        yield m


@pytest_asyncio.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest_asyncio.fixture
async def redis_client():
    client = FakeRedis(decode_responses=True)
    yield client
    await client.flushall()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    yield maker

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
