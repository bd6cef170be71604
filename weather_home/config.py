from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    OPENWEATHER_API_KEY: str = ""
    GEMINI_API_KEY: str = ""

    OPENWEATHER_URL: str = "https://api.openweathermap.org/data/2.5/weather"
    OPENWEATHER_ICON_HOST: str = "https://openweathermap.org"
    GEMINI_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.0-flash:generateContent"
    )

    DATABASE_URL: str = "sqlite+aiosqlite:///weather_home.db"
    REDIS_URL: Optional[str] = None

    DEFAULT_CITY: str = "London"
    SEARCH_DEBOUNCE_MS: int = 300
    MAX_SUGGESTIONS: int = 5

    GEOCODER_USER_AGENT: str = "weather_home"
    GEOCODER_LANGUAGE: str = "en"
    # Coordinates reported by the device; location detection is off without them
    DEVICE_LATITUDE: Optional[float] = None
    DEVICE_LONGITUDE: Optional[float] = None

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "weather_home.log"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
