"""
Weather lookup through the free Open-Meteo APIs.

The tool geocodes a location name and then requests current conditions and
a daily forecast for it. No API key is required.
"""

import json
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

import httpx
from pydantic import Field, field_validator

from watsonx_agents.tools.base import BaseTool, ToolInput, ToolResult
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_VARIABLES = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "rain",
    "weather_code",
    "wind_speed_10m",
]
DAILY_VARIABLES = [
    "temperature_2m_max",
    "temperature_2m_min",
    "rain_sum",
    "precipitation_probability_max",
]


class OpenMeteoInput(ToolInput):
    """Input of the Open-Meteo weather tool."""

    location_name: str = Field(min_length=1, description="Name of the city or place, e.g. 'Las Vegas'")
    country: Optional[str] = Field(
        default=None,
        description="Country name or ISO country code to disambiguate the location",
    )
    start_date: Optional[str] = Field(
        default=None,
        description="First forecast day in YYYY-MM-DD format (defaults to today)",
    )
    end_date: Optional[str] = Field(
        default=None,
        description="Last forecast day in YYYY-MM-DD format (defaults to the start date)",
    )
    temperature_unit: Literal["celsius", "fahrenheit"] = Field(
        default="celsius",
        description="Unit of the returned temperatures",
    )

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        """Validate dates are ISO formatted."""
        if v is None:
            return v
        date.fromisoformat(v)
        return v


class OpenMeteoTool(BaseTool):
    """
    Current weather and forecast for a named location.

    Example:
        >>> tool = OpenMeteoTool()
        >>> result = await tool.arun(location_name="Las Vegas", country="US")
        >>> print(result.output)
    """

    name = "open_meteo"
    description = (
        "Retrieve current, past, or future weather forecasts for a location. "
        "Use it whenever the user asks about weather or temperature."
    )
    input_schema = OpenMeteoInput
    category = "weather"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._http_client = http_client
        self.timeout = timeout

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _arun(
        self,
        location_name: str,
        country: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        temperature_unit: str = "celsius",
    ) -> ToolResult:
        async with self._client() as client:
            location = await self._geocode(client, location_name, country)
            if location is None:
                where = f"{location_name} ({country})" if country else location_name
                return ToolResult(success=False, output="", error=f"Location '{where}' was not found")

            start = start_date or date.today().isoformat()
            end = end_date or start
            params = {
                "latitude": location["latitude"],
                "longitude": location["longitude"],
                "timezone": "auto",
                "current": ",".join(CURRENT_VARIABLES),
                "daily": ",".join(DAILY_VARIABLES),
                "start_date": start,
                "end_date": end,
                "temperature_unit": temperature_unit,
            }
            response = await client.get(FORECAST_URL, params=params)
            response.raise_for_status()
            forecast = response.json()

        output = {
            "location": {
                "name": location.get("name"),
                "country": location.get("country"),
                "latitude": location["latitude"],
                "longitude": location["longitude"],
            },
            "timezone": forecast.get("timezone"),
            "current": forecast.get("current", {}),
            "current_units": forecast.get("current_units", {}),
            "daily": forecast.get("daily", {}),
            "daily_units": forecast.get("daily_units", {}),
        }
        return ToolResult(
            success=True,
            output=json.dumps(output, ensure_ascii=False),
            metadata={"location": location.get("name")},
        )

    async def _geocode(
        self,
        client: httpx.AsyncClient,
        location_name: str,
        country: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        params = {"name": location_name, "count": 10, "language": "en", "format": "json"}
        response = await client.get(GEOCODING_URL, params=params)
        response.raise_for_status()
        results: List[Dict[str, Any]] = response.json().get("results") or []

        if country:
            wanted = country.strip().lower()
            results = [
                result
                for result in results
                if wanted in (str(result.get("country", "")).lower(), str(result.get("country_code", "")).lower())
            ]

        if not results:
            logger.debug(f"No geocoding result for {location_name}", extra={"country": country})
            return None
        return results[0]
