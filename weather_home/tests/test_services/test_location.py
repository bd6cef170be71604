from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from weather_home.config import Settings
from weather_home.services.errors import FailureKind, LocationReason, LocationUnavailable
from weather_home.services.location import (
    FixedPositionSource,
    LocationResolver,
    locality_from_address,
)


def make_location(address):
    location = MagicMock()
    location.raw = {"place_id": 1, "address": address}
    return location


@pytest.fixture
def mock_nominatim():
    with patch("weather_home.services.location.Nominatim") as nominatim_cls:
        geolocator = MagicMock()
        geolocator.reverse = AsyncMock()
        nominatim_cls.return_value.__aenter__.return_value = geolocator
        yield nominatim_cls, geolocator


@pytest.fixture
def resolver():
    return LocationResolver(FixedPositionSource(48.8566, 2.3522), user_agent="test_agent")


@pytest.mark.asyncio
async def test_resolve_returns_city(resolver, mock_nominatim):
    nominatim_cls, geolocator = mock_nominatim
    geolocator.reverse.return_value = make_location({"city": "Paris", "country": "France"})

    result = await resolver.resolve()

    assert result.ok
    assert result.value == "Paris"
    geolocator.reverse.assert_awaited_once()
    assert geolocator.reverse.call_args.args[0] == (48.8566, 2.3522)
    assert nominatim_cls.call_args.kwargs["user_agent"] == "test_agent"


@pytest.mark.asyncio
async def test_resolve_prefers_town_when_no_city(resolver, mock_nominatim):
    _, geolocator = mock_nominatim
    geolocator.reverse.return_value = make_location({"town": "Giverny", "village": "Le Hameau"})

    result = await resolver.resolve()

    assert result.value == "Giverny"


@pytest.mark.asyncio
async def test_resolve_no_locality_is_lookup_failure(resolver, mock_nominatim):
    _, geolocator = mock_nominatim
    geolocator.reverse.return_value = make_location({"country": "France"})

    result = await resolver.resolve()

    assert not result.ok
    assert result.error.reason == LocationReason.LOOKUP_FAILED


@pytest.mark.asyncio
async def test_resolve_no_match_is_lookup_failure(resolver, mock_nominatim):
    _, geolocator = mock_nominatim
    geolocator.reverse.return_value = None

    result = await resolver.resolve()

    assert result.error.reason == LocationReason.LOOKUP_FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [GeocoderTimedOut("slow"), GeocoderServiceError("503")])
async def test_resolve_geocoder_errors(resolver, mock_nominatim, error):
    _, geolocator = mock_nominatim
    geolocator.reverse.side_effect = error

    result = await resolver.resolve()

    assert result.kind == FailureKind.LOCATION_UNAVAILABLE
    assert result.error.reason == LocationReason.LOOKUP_FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", [
    LocationReason.SERVICE_DISABLED,
    LocationReason.PERMISSION_DENIED,
    LocationReason.PERMISSION_DENIED_FOREVER,
])
async def test_resolve_position_unavailable(mock_nominatim, reason):
    nominatim_cls, _ = mock_nominatim
    source = MagicMock()
    source.current_position = AsyncMock(side_effect=LocationUnavailable(reason))

    result = await LocationResolver(source).resolve()

    assert result.error.reason == reason
    nominatim_cls.assert_not_called()


@pytest.mark.asyncio
async def test_fixed_source_without_coordinates_is_disabled():
    source = FixedPositionSource.from_settings(Settings(DEVICE_LATITUDE=None, DEVICE_LONGITUDE=None))

    with pytest.raises(LocationUnavailable) as exc_info:
        await source.current_position()

    assert exc_info.value.reason == LocationReason.SERVICE_DISABLED


@pytest.mark.asyncio
async def test_fixed_source_from_settings():
    source = FixedPositionSource.from_settings(Settings(DEVICE_LATITUDE=51.5, DEVICE_LONGITUDE=-0.12))

    assert await source.current_position() == (51.5, -0.12)


def test_locality_from_address():
    assert locality_from_address({"village": "Zermatt", "municipality": "Zermatt District"}) == "Zermatt"
    assert locality_from_address({"state": "Bavaria"}) is None
