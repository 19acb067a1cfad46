"""
Tests for the weather widget feed (WeatherAPI).
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from pilotage.application.weather import (
    FORECAST_DAYS,
    WeatherError,
    WeatherService,
    parse_forecast,
    weather_icon,
)
from pilotage.config import Settings


def _payload(days=7):
    return {
        "location": {"name": "Lisbon"},
        "current": {
            "temp_c": 21.4,
            "condition": {"text": "Ensoleillé", "code": 1000},
            "humidity": 60,
            "wind_kph": 13.6,
            "vis_km": 10.0,
            "feelslike_c": 22.1,
            "is_day": 0,
        },
        "forecast": {
            "forecastday": [
                {
                    "date": f"2024-06-{10 + i:02d}",
                    "day": {
                        "maxtemp_c": 24.6,
                        "mintemp_c": 15.4,
                        "condition": {"text": "Pluie modérée", "code": 1189},
                    },
                }
                for i in range(days)
            ]
        },
    }


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else _payload()
    return resp


class TestWeatherSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.WEATHER_API_KEY == ""
        assert s.WEATHER_API_URL == "https://api.weatherapi.com/v1/forecast.json"
        assert s.WEATHER_TIMEOUT_SECONDS == 5.0


class TestIcons:
    @pytest.mark.parametrize("code, is_day, expected", [
        (1000, True, "01d"),
        (1000, False, "01n"),
        (1009, True, "03d"),
        (1189, True, "10d"),
        (1276, False, "11n"),
        (1225, True, "13d"),
        (1135, True, "04d"),
        (9999, True, "01d"),
    ])
    def test_condition_code_mapping(self, code, is_day, expected):
        assert weather_icon(code, is_day) == expected


class TestParseForecast:
    def test_current_conditions(self):
        data = parse_forecast(_payload())

        assert data["location"] == "Lisbon"
        assert data["current"]["temp"] == 21.4
        assert data["current"]["wind_speed"] == 14
        assert data["current"]["icon"] == "01n"

    def test_forecast_limited_to_five_days(self):
        forecast = parse_forecast(_payload(days=7))["forecast"]

        assert len(forecast) == FORECAST_DAYS
        assert forecast[0] == {
            "date": "2024-06-10",
            "temp_max": 25,
            "temp_min": 15,
            "description": "Pluie modérée",
            "icon": "10d",
        }

    def test_missing_location_name(self):
        payload = _payload()
        del payload["location"]
        assert parse_forecast(payload)["location"] == "Position actuelle"


class TestWeatherService:
    def test_fetch_sends_coordinates_and_language(self):
        service = WeatherService(api_key="k", api_url="https://weather.test/forecast.json", timeout=2)

        with patch("pilotage.application.weather.requests.get", return_value=_response()) as mock_get:
            data = service.fetch(48.85, 2.35)

        assert data["location"] == "Lisbon"
        mock_get.assert_called_once()
        args, kwargs = mock_get.call_args
        assert args == ("https://weather.test/forecast.json",)
        assert kwargs["params"]["q"] == "48.85,2.35"
        assert kwargs["params"]["days"] == FORECAST_DAYS
        assert kwargs["params"]["lang"] == "fr"
        assert kwargs["timeout"] == 2

    def test_missing_key_does_not_call_the_api(self):
        service = WeatherService(api_key="", api_url="https://weather.test/forecast.json")

        with patch("pilotage.application.weather.requests.get") as mock_get:
            with pytest.raises(WeatherError, match="non configurée"):
                service.fetch()
        mock_get.assert_not_called()

    @pytest.mark.parametrize("status, message", [
        (401, "invalide"),
        (403, "expirée"),
        (500, "Erreur API météo: 500"),
    ])
    def test_http_errors(self, status, message):
        service = WeatherService(api_key="k", api_url="https://weather.test/forecast.json")

        with patch("pilotage.application.weather.requests.get", return_value=_response(status)):
            with pytest.raises(WeatherError, match=message):
                service.fetch()

    def test_network_error(self):
        service = WeatherService(api_key="k", api_url="https://weather.test/forecast.json")

        with patch(
            "pilotage.application.weather.requests.get",
            side_effect=requests.ConnectionError("boom"),
        ):
            with pytest.raises(WeatherError, match="injoignable"):
                service.fetch()

    def test_unexpected_payload(self):
        service = WeatherService(api_key="k", api_url="https://weather.test/forecast.json")

        with patch("pilotage.application.weather.requests.get", return_value=_response(payload={"error": {}})):
            with pytest.raises(WeatherError, match="inattendue"):
                service.fetch()
