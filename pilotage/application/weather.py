"""
Weather feed - current conditions and 5-day forecast from WeatherAPI
"""
import logging
from typing import Any, Dict, List

import requests

from pilotage.config import get_settings

logger = logging.getLogger(__name__)

FORECAST_DAYS = 5
DEFAULT_LOCATION_NAME = "Position actuelle"

# Lisbon, used when the client cannot provide a position
DEFAULT_LATITUDE = 38.7223
DEFAULT_LONGITUDE = -9.1393

# WeatherAPI condition codes -> icon family
_ICON_FAMILIES = {
    "01": (1000,),
    "02": (1003,),
    "03": (1006, 1009),
    "04": (1030, 1135, 1147),
    "10": (1063, 1180, 1183, 1186, 1189, 1192, 1195, 1240, 1243, 1246),
    "11": (1087, 1273, 1276, 1279, 1282),
    "13": (
        1066, 1114, 1117, 1210, 1213, 1216, 1219, 1222, 1225, 1237,
        1249, 1252, 1255, 1258, 1261, 1264,
    ),
}
_ICON_BY_CODE = {code: family for family, codes in _ICON_FAMILIES.items() for code in codes}


class WeatherError(RuntimeError):
    """Erreur du service météo"""
    pass


def weather_icon(condition_code: int, is_day: bool = True) -> str:
    """Map a WeatherAPI condition code to an icon name like "10d"; unknown codes are clear sky."""
    return f"{_ICON_BY_CODE.get(condition_code, '01')}{'d' if is_day else 'n'}"


def parse_forecast(payload: Dict[str, Any]) -> Dict[str, Any]:
    current = payload["current"]
    forecast: List[Dict[str, Any]] = []
    for day in payload["forecast"]["forecastday"][:FORECAST_DAYS]:
        summary = day["day"]
        forecast.append({
            "date": day["date"],
            "temp_max": round(summary["maxtemp_c"]),
            "temp_min": round(summary["mintemp_c"]),
            "description": summary["condition"]["text"],
            "icon": weather_icon(summary["condition"]["code"]),
        })

    return {
        "current": {
            "temp": current["temp_c"],
            "description": current["condition"]["text"],
            "humidity": current["humidity"],
            "wind_speed": round(current["wind_kph"]),
            "visibility": current["vis_km"],
            "feels_like": current["feelslike_c"],
            "icon": weather_icon(current["condition"]["code"], bool(current.get("is_day", 1))),
        },
        "forecast": forecast,
        "location": payload.get("location", {}).get("name") or DEFAULT_LOCATION_NAME,
    }


class WeatherService:
    """
    Usage:
        WeatherService().fetch(48.85, 2.35)
    """

    def __init__(self, api_key: str | None = None, api_url: str | None = None, timeout: float | None = None):
        settings = get_settings()
        self.api_key = settings.WEATHER_API_KEY if api_key is None else api_key
        self.api_url = api_url or settings.WEATHER_API_URL
        self.timeout = timeout or settings.WEATHER_TIMEOUT_SECONDS

    def fetch(self, lat: float = DEFAULT_LATITUDE, lon: float = DEFAULT_LONGITUDE) -> Dict[str, Any]:
        if not self.api_key:
            raise WeatherError("Clé API WeatherAPI non configurée")

        params = {
            "key": self.api_key,
            "q": f"{lat},{lon}",
            "days": FORECAST_DAYS,
            "aqi": "no",
            "alerts": "no",
            "lang": "fr",
        }
        try:
            resp = requests.get(self.api_url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Weather request failed for %s,%s: %s", lat, lon, exc)
            raise WeatherError("Service météo injoignable") from exc

        if resp.status_code == 401:
            raise WeatherError("Clé API WeatherAPI invalide (401 Unauthorized)")
        if resp.status_code == 403:
            raise WeatherError("Clé API WeatherAPI expirée ou limitée (403 Forbidden)")
        if resp.status_code != 200:
            logger.warning("Weather API answered %s for %s,%s", resp.status_code, lat, lon)
            raise WeatherError(f"Erreur API météo: {resp.status_code}")

        try:
            return parse_forecast(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Unexpected weather payload: %s", exc)
            raise WeatherError("Réponse météo inattendue") from exc
