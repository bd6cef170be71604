import asyncio
import enum
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import aiohttp

from weather_home.config import Settings
from .errors import AdviceGenerationFailure, Result
from .weather import WeatherRecord

logger = logging.getLogger(__name__)


class ClothingType(str, enum.Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"

    @classmethod
    def coerce(cls, value: Any) -> "ClothingType":
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.MEDIUM


DEFAULT_TOP_WEAR = "Comfortable shirt"
DEFAULT_BOTTOM_WEAR = "Long pants"
DEFAULT_FOOTWEAR = "Closed shoes"
DEFAULT_ADVICE = "Dress comfortably for the weather"


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _text(data: Dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ClothingAdvice:
    clothing_type: ClothingType = ClothingType.MEDIUM
    top_wear: str = DEFAULT_TOP_WEAR
    bottom_wear: str = DEFAULT_BOTTOM_WEAR
    footwear: str = DEFAULT_FOOTWEAR
    accessories: Tuple[str, ...] = field(default_factory=tuple)
    carry_umbrella: bool = False
    carry_jacket: bool = False
    overall_advice: str = DEFAULT_ADVICE

    @classmethod
    def parse_from_generated_text(cls, text: Any) -> "ClothingAdvice":
        """
        Pull the JSON object out of a model answer.

        The answer may wrap the object in prose or code fences, so everything
        between the first ``{`` and the last ``}`` is decoded. Whatever cannot
        be read yields the fixed defaults.
        """
        try:
            start = text.find("{")
            end = text.rfind("}")
            if start == -1 or end <= start:
                logger.warning("Generated text holds no JSON object")
                return cls.compute_fallback(None)

            data = json.loads(text[start:end + 1])
            if not isinstance(data, dict):
                raise TypeError("Generated JSON is not an object")

            accessories = data.get("accessories")
            if accessories is None:
                accessories = []
            if not isinstance(accessories, list) or not all(isinstance(a, str) for a in accessories):
                raise TypeError("accessories must be a list of strings")

            return cls(
                clothing_type=ClothingType.coerce(data.get("clothing_type")),
                top_wear=_text(data, "top_wear", DEFAULT_TOP_WEAR),
                bottom_wear=_text(data, "bottom_wear", DEFAULT_BOTTOM_WEAR),
                footwear=_text(data, "footwear", DEFAULT_FOOTWEAR),
                accessories=tuple(accessories),
                carry_umbrella=data.get("carry_umbrella") is True,
                carry_jacket=data.get("carry_jacket") is True,
                overall_advice=_text(data, "overall_advice", DEFAULT_ADVICE),
            )
        except Exception as e:
            logger.warning(f"Could not parse generated advice: {e!r}")
            return cls.compute_fallback(None)

    @classmethod
    def compute_fallback(cls, weather: Optional[WeatherRecord]) -> "ClothingAdvice":
        if weather is None:
            return cls()

        temp = weather.temperature
        has_rain = "rain" in weather.description.lower()

        if temp < 15:
            clothing_type, top_wear = ClothingType.HEAVY, "Warm sweater"
        elif temp > 25:
            clothing_type, top_wear = ClothingType.LIGHT, "Light t-shirt"
        else:
            clothing_type, top_wear = ClothingType.MEDIUM, "Long-sleeve shirt"

        return cls(
            clothing_type=clothing_type,
            top_wear=top_wear,
            bottom_wear="Warm pants" if temp < 15 else "Comfortable trousers",
            footwear="Waterproof shoes" if has_rain else "Comfortable shoes",
            accessories=("Umbrella",) if has_rain else (),
            carry_umbrella=has_rain,
            carry_jacket=temp < 18,
            overall_advice=f"Dress appropriately for {_round_half_away(temp)}°C weather",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clothing_type": self.clothing_type.value,
            "top_wear": self.top_wear,
            "bottom_wear": self.bottom_wear,
            "footwear": self.footwear,
            "accessories": list(self.accessories),
            "carry_umbrella": self.carry_umbrella,
            "carry_jacket": self.carry_jacket,
            "overall_advice": self.overall_advice,
        }


def build_prompt(weather: WeatherRecord) -> str:
    return (
        "Based on the following weather conditions, provide clothing recommendations in JSON format:\n\n"
        "Weather Data:\n"
        f"- Temperature: {weather.temperature}°C\n"
        f"- Feels like: {weather.feels_like}°C\n"
        f"- Condition: {weather.description}\n"
        f"- Humidity: {weather.humidity}%\n"
        f"- Wind Speed: {weather.wind_speed} m/s\n\n"
        "Please respond with ONLY a JSON object in this exact format:\n"
        "{\n"
        '  "clothing_type": "light/medium/heavy",\n'
        '  "top_wear": "specific top recommendation",\n'
        '  "bottom_wear": "specific bottom recommendation",\n'
        '  "footwear": "specific footwear recommendation",\n'
        '  "accessories": ["list", "of", "accessories"],\n'
        '  "carry_umbrella": true/false,\n'
        '  "carry_jacket": true/false,\n'
        '  "overall_advice": "brief overall advice"\n'
        "}"
    )


def extract_candidate_text(data: Any) -> str:
    """First candidate's text from a generateContent response."""
    candidates = data.get("candidates") if isinstance(data, dict) else None
    if not candidates:
        raise AdviceGenerationFailure("Response has no candidates")
    try:
        text = candidates[0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise AdviceGenerationFailure(f"Unexpected candidate shape: {e!r}") from e
    if not isinstance(text, str):
        raise AdviceGenerationFailure("Candidate text is not a string")
    return text


class AdviceGenerator:
    def __init__(
        self,
        api_key: str,
        base_url: str = (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-2.0-flash:generateContent"
        ),
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Settings,
                      session: Optional[aiohttp.ClientSession] = None) -> "AdviceGenerator":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.GEMINI_URL,
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

    async def request_advice(self, weather: WeatherRecord) -> Result[ClothingAdvice]:
        """
        Ask the model for advice.

        Returns:
            Result with the parsed advice, or with an AdviceGenerationFailure.
            Never raises.
        """
        if self.session is None:
            return Result.failure(AdviceGenerationFailure("No HTTP session"))

        headers = {
            "Content-Type": "application/json",
            "X-goog-api-key": self.api_key,
        }
        body = {"contents": [{"parts": [{"text": build_prompt(weather)}]}]}

        try:
            async with self.session.post(self.base_url, json=body, headers=headers) as response:
                if response.status != 200:
                    error_text = await response.text(errors="replace")
                    raise AdviceGenerationFailure(f"Generative API error {response.status}: {error_text}")
                data = await response.json(content_type=None)

            text = extract_candidate_text(data)
        except AdviceGenerationFailure as e:
            logger.warning(str(e))
            return Result.failure(e)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Clothing recommendation error: {e!r}")
            return Result.failure(AdviceGenerationFailure(repr(e)))
        except Exception as e:
            logger.exception(f"Unexpected clothing recommendation error: {e!r}")
            return Result.failure(AdviceGenerationFailure(repr(e)))

        return Result.success(ClothingAdvice.parse_from_generated_text(text))

    async def generate(self, weather: WeatherRecord) -> ClothingAdvice:
        result = await self.request_advice(weather)
        if result.ok:
            return result.value
        return ClothingAdvice.compute_fallback(weather)
