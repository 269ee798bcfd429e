from unittest.mock import MagicMock, patch

import requests

from river_services.weather import OPEN_METEO_URL, default_weather, fetch_weather_data


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


def _assert_defaults(weather):
    assert (weather.temperature, weather.rainfall, weather.humidity, weather.wind_speed) == (20.0, 0.0, 50.0, 5.0)


def test_defaults():
    _assert_defaults(default_weather())


@patch("river_services.weather.requests.get")
def test_parses_current_conditions(mock_get):
    mock_get.return_value = _response(payload={"current": {
        "temperature_2m": 31.2,
        "rain": 2.5,
        "relative_humidity_2m": 77,
        "wind_speed_10m": 4.1
    }})

    weather = fetch_weather_data(3.1, 101.7)

    assert weather.temperature == 31.2
    assert weather.rainfall == 2.5
    assert weather.humidity == 77.0
    assert weather.wind_speed == 4.1
    args, kwargs = mock_get.call_args
    assert args[0] == OPEN_METEO_URL
    assert kwargs["params"]["latitude"] == 3.1
    assert "rain" in kwargs["params"]["current"]


@patch("river_services.weather.requests.get")
def test_missing_coordinates_skip_request(mock_get):
    _assert_defaults(fetch_weather_data(None, 101.7))
    mock_get.assert_not_called()


@patch("river_services.weather.requests.get")
def test_http_error_returns_defaults(mock_get):
    mock_get.return_value = _response(status_code=503)
    _assert_defaults(fetch_weather_data(3.1, 101.7))


@patch("river_services.weather.requests.get")
def test_network_failure_returns_defaults(mock_get):
    mock_get.side_effect = requests.ConnectionError("offline")
    _assert_defaults(fetch_weather_data(3.1, 101.7))


@patch("river_services.weather.requests.get")
def test_null_rain_reads_as_zero(mock_get):
    mock_get.return_value = _response(payload={"current": {"temperature_2m": 25, "rain": None}})
    weather = fetch_weather_data(3.1, 101.7)

    assert weather.rainfall == 0.0
    assert weather.humidity == 50.0
