import requests
import logging
from datetime import datetime

from pollution_ml.schemas import WeatherData

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

# Substituted whenever the weather service cannot be reached
DEFAULT_TEMPERATURE = 20.0
DEFAULT_RAINFALL = 0.0
DEFAULT_HUMIDITY = 50.0
DEFAULT_WIND_SPEED = 5.0


def default_weather():
    return WeatherData(
        temperature=DEFAULT_TEMPERATURE,
        rainfall=DEFAULT_RAINFALL,
        humidity=DEFAULT_HUMIDITY,
        wind_speed=DEFAULT_WIND_SPEED,
        timestamp=datetime.utcnow()
    )


def fetch_weather_data(lat, lon, url=OPEN_METEO_URL, timeout=5):
    """Fetch current conditions from Open-Meteo, falling back to defaults"""
    if lat is None or lon is None:
        return default_weather()

    try:
        response = requests.get(
            url,
            params={
                'latitude': lat,
                'longitude': lon,
                'current': 'temperature_2m,relative_humidity_2m,rain,wind_speed_10m'
            },
            timeout=timeout
        )

        if response.status_code != 200:
            logger.error(f"Open-Meteo API error: {response.status_code}")
            return default_weather()

        current = response.json().get('current') or {}

        return WeatherData(
            temperature=float(current.get('temperature_2m', DEFAULT_TEMPERATURE)),
            rainfall=float(current.get('rain', DEFAULT_RAINFALL) or 0),
            humidity=float(current.get('relative_humidity_2m', DEFAULT_HUMIDITY)),
            wind_speed=float(current.get('wind_speed_10m', DEFAULT_WIND_SPEED)),
            timestamp=datetime.utcnow()
        )
    except (requests.RequestException, ValueError, TypeError) as e:
        logger.warning(f"Error fetching weather data, using defaults: {e}")
        return default_weather()
