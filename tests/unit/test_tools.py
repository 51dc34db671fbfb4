"""
Unit tests for tools and the tool registry. HTTP calls are served by a mock
transport.
"""

import json
from datetime import date

import pytest
from pydantic import Field

from watsonx_agents.tools.base import BaseTool, ToolInput, ToolResult, create_tool_error
from watsonx_agents.tools.registry import ToolRegistry
from watsonx_agents.tools.weather import OpenMeteoTool
from watsonx_agents.tools.wikipedia import WikipediaTool

GEOCODING = {
    "results": [
        {"name": "Las Vegas", "country": "United States", "country_code": "US", "latitude": 36.17, "longitude": -115.14},
        {"name": "Las Vegas", "country": "Mexico", "country_code": "MX", "latitude": 20.43, "longitude": -98.11},
    ]
}
FORECAST = {
    "timezone": "America/Los_Angeles",
    "current": {"temperature_2m": 31.4, "weather_code": 0},
    "current_units": {"temperature_2m": "°C"},
    "daily": {"temperature_2m_max": [35.0], "temperature_2m_min": [22.1]},
    "daily_units": {"temperature_2m_max": "°C"},
}


class ShoutInput(ToolInput):
    text: str = Field(min_length=1)


class ShoutTool(BaseTool):
    name = "shout"
    description = "Uppercase the text"
    input_schema = ShoutInput

    async def _arun(self, text: str) -> ToolResult:
        if text == "explode":
            raise RuntimeError("kaboom")
        return ToolResult(success=True, output=text.upper())


@pytest.mark.unit
class TestBaseTool:
    """Test cases for BaseTool."""

    @pytest.mark.asyncio
    async def test_arun_success(self):
        result = await ShoutTool().arun(text="hi")

        assert result.success
        assert result.output == "HI"
        assert "execution_time" in result.metadata

    @pytest.mark.asyncio
    async def test_invalid_input_returns_error(self):
        result = await ShoutTool().arun(text="")

        assert not result.success
        assert result.error.startswith("Input validation failed")

    @pytest.mark.asyncio
    async def test_unknown_argument_is_rejected(self):
        result = await ShoutTool().arun(text="hi", volume=11)
        assert not result.success

    @pytest.mark.asyncio
    async def test_argument_named_self_is_rejected(self):
        result = await ShoutTool().arun(self=1, text="hi")

        assert not result.success
        assert result.error.startswith("Input validation failed")

    @pytest.mark.asyncio
    async def test_exception_becomes_error_result(self):
        result = await ShoutTool().arun(text="explode")

        assert not result.success
        assert result.error == "RuntimeError: kaboom"
        assert result.metadata["error_type"] == "RuntimeError"

    def test_run_from_sync_code(self):
        assert ShoutTool().run(text="sync").output == "SYNC"

    def test_get_schema(self):
        schema = ShoutTool().get_schema()

        assert schema["name"] == "shout"
        assert schema["input_schema"]["required"] == ["text"]

    def test_subclass_without_name_is_rejected(self):
        with pytest.raises(TypeError, match="must define 'name'"):

            class Nameless(BaseTool):
                description = "No name"
                input_schema = ShoutInput

                async def _arun(self, **kwargs):
                    return ToolResult(success=True, output="")

    def test_create_tool_error(self):
        result = create_tool_error(ValueError("bad"))
        assert str(result) == "Error: ValueError: bad"


@pytest.mark.unit
class TestToolRegistry:
    """Test cases for ToolRegistry."""

    def test_register_and_lookup(self):
        registry = ToolRegistry.from_tools([ShoutTool(), OpenMeteoTool()])

        assert registry.get_tool_names() == ["shout", "open_meteo"]
        assert "shout" in registry
        assert len(registry) == 2
        assert registry.get_tool("missing") is None
        assert [s["name"] for s in registry.get_tool_schemas()] == ["shout", "open_meteo"]

    def test_duplicate_is_rejected(self):
        registry = ToolRegistry.from_tools([ShoutTool()])

        with pytest.raises(ValueError, match="already registered"):
            registry.register(ShoutTool())

    def test_non_tool_is_rejected(self):
        with pytest.raises(TypeError):
            ToolRegistry().register(object())

    @pytest.mark.parametrize("name", ["Shout", "1shout", "shout-it", ""])
    def test_invalid_names(self, name):
        assert not ToolRegistry._is_valid_tool_name(name)

    def test_unregister_and_clear(self):
        registry = ToolRegistry.from_tools([ShoutTool(), WikipediaTool()])

        registry.unregister("shout")
        registry.unregister("shout")
        assert registry.get_tool_names() == ["wikipedia"]

        registry.clear()
        assert registry.get_tool_count() == 0


@pytest.mark.unit
class TestOpenMeteoTool:
    """Test cases for OpenMeteoTool."""

    @pytest.mark.asyncio
    async def test_current_weather(self, mock_http_client):
        client = mock_http_client({"/v1/search": GEOCODING, "/v1/forecast": FORECAST})
        tool = OpenMeteoTool(http_client=client)

        result = await tool.arun(location_name="Las Vegas")

        assert result.success
        output = json.loads(result.output)
        assert output["location"]["country"] == "United States"
        assert output["current"]["temperature_2m"] == 31.4
        assert output["timezone"] == "America/Los_Angeles"

        forecast_params = client.requests[1].url.params
        assert forecast_params["latitude"] == "36.17"
        assert forecast_params["timezone"] == "auto"
        assert forecast_params["start_date"] == date.today().isoformat()
        assert forecast_params["end_date"] == forecast_params["start_date"]
        assert "temperature_2m" in forecast_params["current"].split(",")

    @pytest.mark.asyncio
    async def test_country_filter(self, mock_http_client):
        client = mock_http_client({"/v1/search": GEOCODING, "/v1/forecast": FORECAST})
        tool = OpenMeteoTool(http_client=client)

        result = await tool.arun(location_name="Las Vegas", country="mx", temperature_unit="fahrenheit")

        assert json.loads(result.output)["location"]["country"] == "Mexico"
        assert client.requests[1].url.params["temperature_unit"] == "fahrenheit"

    @pytest.mark.asyncio
    async def test_unknown_location(self, mock_http_client):
        client = mock_http_client({"/v1/search": {}})

        result = await OpenMeteoTool(http_client=client).arun(location_name="Atlantis")

        assert not result.success
        assert result.error == "Location 'Atlantis' was not found"
        assert len(client.requests) == 1

    @pytest.mark.asyncio
    async def test_invalid_date(self):
        result = await OpenMeteoTool().arun(location_name="Prague", start_date="tomorrow")

        assert not result.success
        assert "Input validation failed" in result.error

    @pytest.mark.asyncio
    async def test_http_error_becomes_error_result(self, mock_http_client):
        client = mock_http_client({"/v1/search": GEOCODING}, status_code=503)

        result = await OpenMeteoTool(http_client=client).arun(location_name="Las Vegas")

        assert not result.success
        assert result.metadata["error_type"] == "HTTPStatusError"


@pytest.mark.unit
class TestWikipediaTool:
    """Test cases for WikipediaTool."""

    @staticmethod
    def api(request):
        params = request.url.params
        if params.get("list") == "search":
            assert params["srsearch"] == "Rayleigh scattering"
            return {"query": {"search": [{"pageid": 25905, "title": "Rayleigh scattering"}]}}
        assert params["pageids"] == "25905"
        return {
            "query": {
                "pages": {
                    "25905": {
                        "title": "Rayleigh scattering",
                        "extract": "Rayleigh scattering is the scattering of light by particles.",
                        "fullurl": "https://en.wikipedia.org/wiki/Rayleigh_scattering",
                    }
                }
            }
        }

    @pytest.mark.asyncio
    async def test_search(self, mock_http_client):
        client = mock_http_client({"/w/api.php": self.api})

        result = await WikipediaTool(http_client=client).arun(query="Rayleigh scattering")

        assert result.success
        assert json.loads(result.output) == [
            {
                "title": "Rayleigh scattering",
                "description": "Rayleigh scattering is the scattering of light by particles.",
                "url": "https://en.wikipedia.org/wiki/Rayleigh_scattering",
            }
        ]
        assert result.metadata["results"] == 1
        assert client.requests[0].url.host == "en.wikipedia.org"

    @pytest.mark.asyncio
    async def test_extract_is_truncated(self, mock_http_client):
        client = mock_http_client({"/w/api.php": self.api})

        result = await WikipediaTool(http_client=client, extract_chars=8).arun(query="Rayleigh scattering")

        assert json.loads(result.output)[0]["description"] == "Rayleigh"

    @pytest.mark.asyncio
    async def test_no_results(self, mock_http_client):
        client = mock_http_client({"/w/api.php": {"query": {"search": []}}})

        result = await WikipediaTool(http_client=client).arun(query="qwertzuiop")

        assert result.success
        assert result.output == "[]"
        assert len(client.requests) == 1

    def test_language(self):
        assert WikipediaTool(language="de").api_url == "https://de.wikipedia.org/w/api.php"

    def test_invalid_max_results(self):
        with pytest.raises(ValueError):
            WikipediaTool(max_results=0)
