"""get_weather_forecast tool — delegates to the Open-Meteo client."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.errors import IntegrationError

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "get_weather_forecast",
        "description": (
            "Get a daily weather forecast for a destination city over a date range. "
            "Returns conditions, high/low temperatures, precipitation, and a packing list. "
            "Call this when the user asks what to expect weather-wise or what to pack for a trip."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "city": {
                    "type": "string",
                    "description": "Destination city name, e.g. 'Tokyo' or 'Paris, France'.",
                },
                "start_date": {
                    "type": "string",
                    "description": "First day of the trip, YYYY-MM-DD.",
                },
                "end_date": {
                    "type": "string",
                    "description": "Last day of the trip, YYYY-MM-DD.",
                },
            },
            "required": ["city", "start_date", "end_date"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    if ctx.weather is None:
        raise IntegrationError("Weather forecasts are not available.")
    return ctx.weather.forecast(args["city"], args["start_date"], args["end_date"])
