"""Reverse geocoding: coordinates -> data.gov.in state and district.

Uses OpenStreetMap Nominatim (free, no key, requires a descriptive
User-Agent). The address components Nominatim returns rarely match the
dataset's district names exactly, so the candidates are fuzzy-matched
against the district list for the detected state.
"""

import logging

import httpx

from config import settings
from errors import UpstreamError
from services.cache import cache
from services.data_gov import lookup_districts
from services.regions import match_district, normalize_state_name

logger = logging.getLogger(__name__)

NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
USER_AGENT = "MGNREGA-Dashboard/1.0 (district lookup)"

# Address components to try, most specific administrative unit first
DISTRICT_FIELDS = ("state_district", "county", "district", "city", "town", "city_district")

IP_METHOD_TTL = 60 * 60 * 6
GPS_METHOD_TTL = 60 * 30


async def reverse_geocode(lat: str, lon: str, client: httpx.AsyncClient | None = None) -> dict:
    params = {"format": "jsonv2", "lat": lat, "lon": lon}
    headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
    if client is None:
        async with httpx.AsyncClient(timeout=settings.geo_timeout) as own_client:
            resp = await own_client.get(NOMINATIM_REVERSE_URL, params=params, headers=headers)
    else:
        resp = await client.get(NOMINATIM_REVERSE_URL, params=params, headers=headers)
    resp.raise_for_status()
    return resp.json()


async def locate(lat: str, lon: str, method: str = "gps") -> dict:
    """Resolve coordinates to ``{district, state, stateRaw, method, address}``.

    Only results with a resolved district are cached; GPS fixes expire
    sooner than IP-derived ones.
    """
    key = f"geolocate:{method}:{lat}:{lon}"
    cached = cache.get(key)
    if cached:
        return {"fromCache": True, "method": method, **cached}

    try:
        payload = await reverse_geocode(lat, lon)
        address = payload.get("address") or {}
        state = normalize_state_name(address.get("state"))
        districts = await lookup_districts(state)
        district = match_district([address.get(f) for f in DISTRICT_FIELDS], districts)
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning("Reverse geocode failed for %s,%s: %s", lat, lon, e)
        stale = cache.get(key, allow_stale=True)
        if stale:
            return {**stale, "stale": True}
        raise UpstreamError("unable to detect district", extra={"method": method}) from e

    result = {
        "district": district,
        "state": state,
        "stateRaw": address.get("state"),
        "method": method,
        "address": {
            "display": payload.get("display_name"),
            "components": address,
        },
    }

    if district:
        ttl = IP_METHOD_TTL if method == "ip" else GPS_METHOD_TTL
        cache.set(key, result, ttl_seconds=ttl)
    else:
        logger.info("No district match for %s,%s in %s", lat, lon, state)

    return result
