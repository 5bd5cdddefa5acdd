"""Open-Meteo weather client: geocoding, daily forecast and a packing list."""
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

WMO_CONDITIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Icy fog",
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
    80: "Light showers",
    81: "Moderate showers",
    82: "Heavy showers",
    85: "Light snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with heavy hail",
}


def build_packing_list(forecast: list[dict[str, Any]]) -> list[str]:
    """Packing suggestions from daily highs/lows (°F), precipitation (in) and WMO codes.

    Days past the forecast horizon carry ``None`` values and are ignored.
    """
    packing: dict[str, None] = {}  # ordered set

    highs = [day["high_f"] for day in forecast if day["high_f"] is not None]
    lows = [day["low_f"] for day in forecast if day["low_f"] is not None]
    codes = [day["weathercode"] for day in forecast if day["weathercode"] is not None]
    max_high = max(highs) if highs else None
    min_low = min(lows) if lows else None
    has_rain = any(day["precipitation_in"] > 0.05 for day in forecast)
    has_snow = any(71 <= code <= 77 for code in codes)
    has_thunder = any(code >= 95 for code in codes)

    def add(*items: str) -> None:
        for item in items:
            packing.setdefault(item)

    if max_high is not None and max_high >= 85:
        add("Shorts and t-shirts", "Sunscreen and sunglasses", "Hat or cap")
    if min_low is not None and min_low < 45:
        add("Warm jacket or heavy coat", "Thermal layers", "Gloves and scarf")
    if min_low is not None and min_low < 32:
        add("Heavy winter boots", "Wool socks")
    if max_high is not None and min_low is not None and 50 <= max_high < 85 and min_low >= 32:
        add("Light jacket or layers for variable temps")

    if has_rain or has_thunder:
        add("Umbrella or compact rain jacket", "Waterproof shoes or extra dry socks")
    if has_snow:
        add("Snow boots", "Extra warm socks")

    add(
        "Comfortable walking shoes",
        "Phone charger and power bank",
        "Travel adapter (if international)",
        "Any medications and toiletries",
    )
    return list(packing)


def _daily_value(daily: dict[str, Any], key: str, index: int) -> Any:
    values = daily.get(key) or []
    return values[index] if index < len(values) else None


class OpenMeteoClient:
    def __init__(
        self,
        geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search",
        forecast_url: str = "https://api.open-meteo.com/v1/forecast",
        http_client: Optional[httpx.Client] = None,
        timeout: float = 15.0,
    ):
        self._geocoding_url = geocoding_url
        self._forecast_url = forecast_url
        self._http = http_client or httpx.Client(timeout=timeout)

    def forecast(self, city: str, start_date: str, end_date: str) -> dict[str, Any]:
        """Daily conditions for ``city`` over ``start_date``..``end_date`` plus what to pack."""
        geo = self._http.get(
            self._geocoding_url,
            params={"name": city, "count": 1, "language": "en", "format": "json"},
        ).json()
        if not geo.get("results"):
            return {"error": f'Could not find location: "{city}"'}
        place = geo["results"][0]

        weather = self._http.get(
            self._forecast_url,
            params={
                "latitude": place["latitude"],
                "longitude": place["longitude"],
                "daily": "temperature_2m_max,temperature_2m_min,precipitation_sum,weathercode",
                "temperature_unit": "fahrenheit",
                "precipitation_unit": "inch",
                "timezone": "auto",
                "start_date": start_date,
                "end_date": end_date,
            },
        ).json()
        daily = weather.get("daily") or {}
        if not daily.get("time"):
            logger.info("No forecast for %s %s..%s", city, start_date, end_date)
            return {
                "error": "Weather data unavailable for this date range. Open-Meteo covers up to 16 days ahead."
            }

        forecast = []
        for i, day in enumerate(daily["time"]):
            code = _daily_value(daily, "weathercode", i)
            high = _daily_value(daily, "temperature_2m_max", i)
            low = _daily_value(daily, "temperature_2m_min", i)
            forecast.append({
                "date": day,
                "condition": WMO_CONDITIONS.get(code, "Unknown"),
                "high_f": round(high) if high is not None else None,
                "low_f": round(low) if low is not None else None,
                "precipitation_in": _daily_value(daily, "precipitation_sum", i) or 0,
                "weathercode": code,
            })
        packing = build_packing_list(forecast)
        for day in forecast:
            del day["weathercode"]

        return {
            "destination": f"{place.get('name', city)}, {place.get('country', '')}".rstrip(", "),
            "forecast": forecast,
            "packing_list": packing,
        }
