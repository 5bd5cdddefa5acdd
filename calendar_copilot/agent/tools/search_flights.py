"""search_flights tool — delegates to the Amadeus client."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.errors import IntegrationError

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "search_flights",
        "description": (
            "Search for available one-way or round-trip flights between two airports or cities. "
            "Returns up to 5 options with airline, departure/arrival times, duration, stops, price, "
            "and a Kayak booking link. Pass IATA airport codes when known (e.g. 'JFK', 'NRT'); "
            "pass a city name otherwise and the tool will resolve it."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "origin": {
                    "type": "string",
                    "description": "Departure airport IATA code or city name (e.g. 'SFO' or 'San Francisco').",
                },
                "destination": {
                    "type": "string",
                    "description": "Arrival airport IATA code or city name (e.g. 'NRT' or 'Tokyo').",
                },
                "departure_date": {
                    "type": "string",
                    "description": "Outbound departure date, YYYY-MM-DD.",
                },
                "return_date": {
                    "type": "string",
                    "description": "Return date for round trips, YYYY-MM-DD. Omit for one-way.",
                },
                "adults": {
                    "type": "number",
                    "description": "Number of adult passengers. Defaults to 1.",
                },
                "currency": {
                    "type": "string",
                    "description": "Currency code, e.g. 'USD'. Defaults to 'USD'.",
                },
            },
            "required": ["origin", "destination", "departure_date"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    if ctx.flights is None:
        raise IntegrationError("Flight search is not available.")
    return ctx.flights.search_flights(
        origin=args["origin"],
        destination=args["destination"],
        departure_date=args["departure_date"],
        return_date=args.get("return_date"),
        adults=int(args.get("adults") or 1),
        currency=args.get("currency") or "USD",
    )
