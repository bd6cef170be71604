import argparse
import asyncio
import logging
from contextlib import asynccontextmanager

import aiohttp

from weather_home.config import Settings, settings
from weather_home.controller import build_controller
from weather_home.services.cache import PersistentCityStore, RedisKeyValueStore, create_backend
from weather_home.services.recommendation import AdviceGenerator
from weather_home.services.weather import WeatherFetcher
from weather_home.state import AppState, Event

logger = logging.getLogger(__name__)


def setup_logging(config: Settings):
    handlers = [logging.StreamHandler()]
    if config.LOG_FILE:
        handlers.append(logging.FileHandler(config.LOG_FILE, encoding='utf-8'))

    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


@asynccontextmanager
async def lifespan(config: Settings = settings):
    backend = await create_backend(config)

    async with aiohttp.ClientSession() as session:
        controller = build_controller(
            config,
            fetcher=WeatherFetcher.from_settings(config, session=session),
            advisor=AdviceGenerator.from_settings(config, session=session),
            city_store=PersistentCityStore(backend),
        )
        try:
            yield controller
        finally:
            controller.close()
            if isinstance(backend, RedisKeyValueStore):
                await backend.close()
            else:
                from weather_home.database.connection import close_db
                await close_db()


def log_transition(state: AppState, event: Event):
    logger.debug(f"{type(event).__name__}: loading={state.loading} city={state.current_city}")


def render(state: AppState, config: Settings = settings) -> str:
    if state.error_message:
        return state.error_message
    if state.weather is None:
        return "No weather data"

    weather = state.weather
    lines = [
        f"Weather in {state.current_city}:",
        f"Temperature: {weather.temperature:.1f}°C (feels like {weather.feels_like:.1f}°C)",
        f"Conditions: {weather.description}",
        f"Humidity: {weather.humidity:.0f}%",
        f"Wind: {weather.wind_speed} m/s",
    ]
    if weather.pressure is not None:
        lines.append(f"Pressure: {weather.pressure:.0f} hPa")
    lines.append(f"Icon: {weather.icon_url(config.OPENWEATHER_ICON_HOST)}")

    advice = state.advice
    if advice is not None:
        lines += [
            "",
            f"What to wear ({advice.clothing_type.value}):",
            f"Top: {advice.top_wear}",
            f"Bottom: {advice.bottom_wear}",
            f"Shoes: {advice.footwear}",
        ]
        if advice.accessories:
            lines.append(f"Accessories: {', '.join(advice.accessories)}")
        if advice.carry_umbrella:
            lines.append("Take an umbrella")
        if advice.carry_jacket:
            lines.append("Take a jacket")
        lines.append(advice.overall_advice)

    return "\n".join(lines)


async def main(city: str = None) -> AppState:
    async with lifespan() as controller:
        controller.subscribe(log_transition)
        if city:
            await controller.fetch_weather_for_city(city)
        else:
            await controller.initialize()

        print(render(controller.state))
        return controller.state


def run():
    parser = argparse.ArgumentParser(description="Current weather and what to wear")
    parser.add_argument("--city", help="city to look up instead of the saved one")
    args = parser.parse_args()

    setup_logging(settings)
    try:
        asyncio.run(main(args.city))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
