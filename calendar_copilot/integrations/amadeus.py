"""Amadeus flight search client (client-credentials OAuth over httpx)."""
import logging
import re
from typing import Any, Optional

import httpx

from calendar_copilot.errors import IntegrationError
from calendar_copilot.integrations.token_cache import TokenCache

logger = logging.getLogger(__name__)

MAX_OFFERS = 5
_IATA_CODE = re.compile(r"^[A-Z]{2,3}$")
_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")

CARRIER_NAMES = {
    "AA": "American Airlines",
    "DL": "Delta",
    "UA": "United",
    "WN": "Southwest",
    "B6": "JetBlue",
    "AS": "Alaska Airlines",
    "F9": "Frontier",
    "NK": "Spirit",
    "G4": "Allegiant",
    "BA": "British Airways",
    "LH": "Lufthansa",
    "AF": "Air France",
    "KL": "KLM",
    "EK": "Emirates",
    "QR": "Qatar Airways",
    "SQ": "Singapore Airlines",
    "CX": "Cathay Pacific",
    "NH": "ANA",
    "JL": "Japan Airlines",
    "AC": "Air Canada",
    "VS": "Virgin Atlantic",
}


def format_duration(iso: str) -> str:
    """``PT14H30M`` -> ``14h 30m``; unparseable input is returned unchanged."""
    match = _ISO_DURATION.match(iso or "")
    if not match:
        return iso
    parts = []
    if match.group(1):
        parts.append(f"{match.group(1)}h")
    if match.group(2):
        parts.append(f"{match.group(2)}m")
    return " ".join(parts) or iso


def build_kayak_link(
    origin: str,
    destination: str,
    departure_date: str,
    return_date: Optional[str] = None,
    adults: int = 1,
) -> str:
    trip = f"{origin}-{destination}/{departure_date}"
    if return_date:
        trip += f"/{return_date}"
    return f"https://www.kayak.com/flights/{trip}/{adults}adults"


def _format_itinerary(itinerary: dict[str, Any]) -> dict[str, Any]:
    segments = itinerary["segments"]
    first, last = segments[0], segments[-1]
    carrier_code = first["carrierCode"]
    return {
        "airline": CARRIER_NAMES.get(carrier_code, carrier_code),
        "carrier_code": carrier_code,
        "departs": f"{first['departure']['iataCode']} {first['departure']['at']}",
        "arrives": f"{last['arrival']['iataCode']} {last['arrival']['at']}",
        "duration": format_duration(itinerary.get("duration", "")),
        "stops": len(segments) - 1,
    }


class AmadeusClient:
    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://test.api.amadeus.com",
        token_cache: Optional[TokenCache] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 15.0,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        self._base_url = base_url.rstrip("/")
        self._token_cache = token_cache or TokenCache()
        self._http = http_client or httpx.Client(timeout=timeout)

    def _fetch_token(self) -> tuple[str, float]:
        resp = self._http.post(
            f"{self._base_url}/v1/security/oauth2/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self._api_key,
                "client_secret": self._api_secret,
            },
        )
        if not resp.is_success:
            logger.error("Amadeus auth failed: %s %s", resp.status_code, resp.text[:200])
            raise IntegrationError("Amadeus authentication failed.")
        data = resp.json()
        return data["access_token"], data.get("expires_in", 1799)

    def _token(self) -> str:
        if not self._api_key or not self._api_secret:
            raise IntegrationError(
                "Amadeus API credentials are not configured (AMADEUS_API_KEY / AMADEUS_API_SECRET)."
            )
        return self._token_cache.get(self._fetch_token)

    def resolve_iata(self, token: str, query: str) -> str:
        """Return ``query`` if it already looks like an IATA code, else look it up."""
        if _IATA_CODE.match(query):
            return query
        resp = self._http.get(
            f"{self._base_url}/v1/reference-data/locations",
            params={"keyword": query, "subType": "AIRPORT,CITY", "page[limit]": "1"},
            headers={"Authorization": f"Bearer {token}"},
        )
        results = resp.json().get("data") or []
        code = results[0].get("iataCode") if results else None
        if not code:
            raise IntegrationError(f'Could not find an airport for "{query}".')
        return code

    def search_flights(
        self,
        origin: str,
        destination: str,
        departure_date: str,
        return_date: Optional[str] = None,
        adults: int = 1,
        currency: str = "USD",
    ) -> dict[str, Any]:
        """Up to five offers with airline, times, duration, stops, price and a booking link."""
        token = self._token()
        origin_code = self.resolve_iata(token, origin.strip().upper())
        dest_code = self.resolve_iata(token, destination.strip().upper())

        params = {
            "originLocationCode": origin_code,
            "destinationLocationCode": dest_code,
            "departureDate": departure_date,
            "adults": str(adults),
            "currencyCode": currency,
            "max": str(MAX_OFFERS),
        }
        if return_date:
            params["returnDate"] = return_date

        resp = self._http.get(
            f"{self._base_url}/v2/shopping/flight-offers",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        if not resp.is_success:
            errors = resp.json().get("errors") or [{}]
            detail = errors[0].get("detail", "Unknown Amadeus error")
            return {"error": f"Flight search failed: {detail}"}

        offers = resp.json().get("data") or []
        if not offers:
            return {"flights": [], "message": "No flights found for this route and date combination."}

        link = build_kayak_link(origin_code, dest_code, departure_date, return_date, adults)
        flights = []
        for offer in offers[:MAX_OFFERS]:
            flight = {
                "price": f"{float(offer['price']['grandTotal']):.2f} {offer['price']['currency']}",
                "outbound": _format_itinerary(offer["itineraries"][0]),
            }
            if len(offer["itineraries"]) > 1:
                flight["return"] = _format_itinerary(offer["itineraries"][1])
            flight["booking_link"] = link
            flights.append(flight)

        return {
            "origin": origin_code,
            "destination": dest_code,
            "departure_date": departure_date,
            "return_date": return_date,
            "adults": adults,
            "currency": currency,
            "flights": flights,
            "search_link": link,
        }
