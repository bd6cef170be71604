from .weather import WeatherRecord, WeatherFetcher, icon_url
from .recommendation import AdviceGenerator, ClothingAdvice, ClothingType
from .cache import PersistentCityStore, RedisKeyValueStore, DatabaseKeyValueStore
from .location import LocationResolver, FixedPositionSource
from .suggestions import POPULAR_CITIES, Debouncer, filter_cities

__all__ = [
    'WeatherRecord',
    'WeatherFetcher',
    'icon_url',
    'AdviceGenerator',
    'ClothingAdvice',
    'ClothingType',
    'PersistentCityStore',
    'RedisKeyValueStore',
    'DatabaseKeyValueStore',
    'LocationResolver',
    'FixedPositionSource',
    'POPULAR_CITIES',
    'Debouncer',
    'filter_cities',
]
