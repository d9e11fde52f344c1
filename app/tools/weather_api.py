"""
Weather lookups for cities and trip days

Daily labels come from the Open-Meteo forecast (free, no key). Dates it
cannot cover fall back to a seasonal guess. Current conditions come from
OpenWeatherMap and fall back to canned data when the key is missing or the
call fails. Callers never see a weather error.
"""
import logging
import random
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional

import httpx

from ..config import settings
from ..models.weather import DailyWeather, WeatherObservation
from ..utils.dates import DateLike, parse_date

logger = logging.getLogger(__name__)

# WMO weather interpretation codes: https://open-meteo.com/en/docs
WMO_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Foggy",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Light rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Light snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Light rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Light snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with light hail",
    99: "Thunderstorm with heavy hail"
}

# Month -> plausible adjectives, used when no forecast covers a date
SEASONAL_WEATHER = {
    1: ["Cold", "Chilly", "Crisp"],
    2: ["Cool", "Mild", "Pleasant"],
    3: ["Mild", "Pleasant", "Warm"],
    4: ["Pleasant", "Warm", "Sunny"],
    5: ["Warm", "Sunny", "Beautiful"],
    6: ["Hot", "Sunny", "Clear"],
    7: ["Hot", "Very Warm", "Sunny"],
    8: ["Hot", "Very Warm", "Sunny"],
    9: ["Warm", "Pleasant", "Sunny"],
    10: ["Mild", "Pleasant", "Cool"],
    11: ["Cool", "Chilly", "Crisp"],
    12: ["Cold", "Chilly", "Crisp"],
}

# (main, description, temperature) templates for mock current conditions
MOCK_CONDITIONS = [
    ("Clear", "clear sky", 22),
    ("Clouds", "few clouds", 18),
    ("Rain", "light rain", 15),
]

# Errors that mean "use the fallback": transport/status errors and malformed payloads
FALLBACK_ERRORS = (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError, AttributeError)


class WeatherAPI:
    """
    Weather for trip planning

    Args:
        api_key: OpenWeatherMap key; defaults to settings, empty disables live lookups
        client: HTTP client (a default one is created if omitted)
        rng: Random source for seasonal and mock fallbacks (seed it for repeatable output)
        clock: Returns today's date; bounds the forecast horizon
    """

    FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
    CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
    GEOCODING_URL = "https://api.openweathermap.org/geo/1.0/direct"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], date] = date.today
    ):
        self.api_key = api_key if api_key is not None else settings.openweather_api_key
        self.client = client or httpx.AsyncClient(timeout=settings.weather_timeout_seconds)
        self.rng = rng or random.Random()
        self.clock = clock

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Per-day labels
    # ------------------------------------------------------------------

    async def get_daily_weather(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        dates: Iterable[DateLike]
    ) -> Dict[date, DailyWeather]:
        """
        Weather for each requested date

        Dates inside the forecast horizon use Open-Meteo; everything else,
        including every date when the forecast call fails, gets a seasonal
        guess.

        Args:
            latitude: City latitude (None skips the forecast)
            longitude: City longitude (None skips the forecast)
            dates: Dates to annotate

        Returns:
            Mapping of date -> DailyWeather, in ascending date order
        """
        days = sorted({parse_date(d) for d in dates})
        if not days:
            return {}

        today = self.clock()
        horizon_end = today + timedelta(days=settings.weather_forecast_days - 1)
        in_horizon = [d for d in days if today <= d <= horizon_end]

        results: Dict[date, DailyWeather] = {}
        if in_horizon and latitude is not None and longitude is not None:
            try:
                for forecast in await self.get_forecast(latitude, longitude, in_horizon[0], in_horizon[-1]):
                    results[forecast.date] = forecast
            except FALLBACK_ERRORS as e:
                logger.warning(f"⚠️ Forecast unavailable ({type(e).__name__}: {e}), using seasonal labels")

        return {day: results.get(day) or self.seasonal_guess(day) for day in days}

    async def get_forecast(self, latitude: float, longitude: float, start_date: date, end_date: date) -> List[DailyWeather]:
        """
        Open-Meteo daily forecast for a coordinate pair and date range

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses
            ValueError: If the payload has no 'daily' object
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "daily": ",".join([
                "weathercode",
                "temperature_2m_max",
                "temperature_2m_min",
                "precipitation_probability_max"
            ]),
            "timezone": "auto",
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat()
        }

        response = await self.client.get(self.FORECAST_URL, params=params)
        response.raise_for_status()

        data = response.json()
        daily = data.get("daily") if isinstance(data, dict) else None
        if not isinstance(daily, dict):
            raise ValueError("Malformed forecast payload: missing 'daily' object")
        dates = daily.get("time", [])
        weathercodes = daily.get("weathercode", [])
        temps_max = daily.get("temperature_2m_max", [])
        temps_min = daily.get("temperature_2m_min", [])
        precip_prob = daily.get("precipitation_probability_max") or []

        forecasts = []
        for i in range(len(dates)):
            forecasts.append(DailyWeather(
                date=parse_date(dates[i]),
                label=WMO_DESCRIPTIONS.get(weathercodes[i], "Unknown"),
                source="forecast",
                temperature_max=_round_or_none(temps_max[i]),
                temperature_min=_round_or_none(temps_min[i]),
                precipitation_probability=precip_prob[i] if i < len(precip_prob) else None
            ))
        return forecasts

    def seasonal_guess(self, day: date) -> DailyWeather:
        """Pick a seasonal adjective for the month of `day`"""
        options = SEASONAL_WEATHER.get(day.month, ["Pleasant"])
        return DailyWeather(date=day, label=self.rng.choice(options), source="seasonal")

    # ------------------------------------------------------------------
    # Current conditions
    # ------------------------------------------------------------------

    async def get_current_weather(self, latitude: float, longitude: float) -> WeatherObservation:
        """Current conditions at a coordinate pair, or mock data on any failure"""
        if not self.api_key:
            logger.warning("OpenWeather API key not configured, using mock data")
            return self.mock_observation()

        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.api_key,
            "units": "metric"
        }
        try:
            response = await self.client.get(self.CURRENT_URL, params=params)
            response.raise_for_status()
            return self._parse_observation(response.json())
        except FALLBACK_ERRORS as e:
            logger.warning(f"⚠️ Weather API request failed ({type(e).__name__}: {e}), using mock data")
            return self.mock_observation()

    async def get_current_weather_by_city(self, city_name: str) -> WeatherObservation:
        """Geocode a city name, then fetch its current conditions"""
        if not self.api_key:
            logger.warning("OpenWeather API key not configured, using mock data")
            return self.mock_observation()

        params = {
            "q": city_name,
            "limit": 1,
            "appid": self.api_key
        }
        try:
            response = await self.client.get(self.GEOCODING_URL, params=params)
            response.raise_for_status()
            matches = response.json()
            if not isinstance(matches, list):
                raise ValueError("Malformed geocoding payload: expected a list")
            if not matches:
                logger.warning(f"City '{city_name}' not found, using mock data")
                return self.mock_observation()
            latitude, longitude = matches[0]["lat"], matches[0]["lon"]
        except FALLBACK_ERRORS as e:
            logger.warning(f"⚠️ Geocoding failed ({type(e).__name__}: {e}), using mock data")
            return self.mock_observation()

        return await self.get_current_weather(latitude, longitude)

    def mock_observation(self) -> WeatherObservation:
        main, description, temperature = self.rng.choice(MOCK_CONDITIONS)
        return WeatherObservation(
            temperature=temperature,
            feels_like=temperature - 2,
            humidity=65,
            description=description,
            main=main,
            icon="01d",
            wind_speed=3.5,
            city="Unknown",
            is_mock=True
        )

    def _parse_observation(self, data: dict) -> WeatherObservation:
        condition = data["weather"][0]
        return WeatherObservation(
            temperature=round(data["main"]["temp"]),
            feels_like=round(data["main"]["feels_like"]),
            humidity=data["main"]["humidity"],
            description=condition["description"],
            main=condition["main"],
            icon=condition["icon"],
            wind_speed=data["wind"]["speed"],
            city=data.get("name", "")
        )


def _round_or_none(value: Optional[float]) -> Optional[int]:
    return round(value) if value is not None else None
