"""Current weather for a city and what to wear in it."""

__version__ = "0.1.0"
