"""IP-based geolocation with two free providers.

ipapi.co is tried first (better city data for India); ip-api.com is the
fallback. Only Indian locations are returned, since the dashboard has
nothing to show elsewhere.
"""

import ipaddress
import logging

import httpx

from config import settings
from errors import LocationNotFoundError, UpstreamError
from services.cache import cache
from services.regions import normalize_state_name

logger = logging.getLogger(__name__)

IPAPI_URL = "https://ipapi.co/{ip}/json/"
IP_API_URL = "http://ip-api.com/json/{ip}"
USER_AGENT = "MGNREGA-Dashboard/1.0"
IP_LOCATION_TTL = 60 * 60 * 24


def client_ip(headers, remote_addr: str | None) -> str | None:
    """Best guess at the visitor's public IP behind proxies/CDNs.

    Loopback (local development) maps to a fixed Indian IP so the flow can
    be exercised end to end.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if remote_addr:
        try:
            if ipaddress.ip_address(remote_addr).is_loopback:
                return settings.dev_fallback_ip
        except ValueError:
            pass
    return remote_addr


async def _from_ipapi(client: httpx.AsyncClient, ip: str) -> dict | None:
    try:
        resp = await client.get(IPAPI_URL.format(ip=ip), headers={"User-Agent": USER_AGENT})
        if resp.status_code != 200:
            return None
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("ipapi.co lookup failed for %s: %s", ip, e)
        return None

    if not isinstance(data, dict) or data.get("country_code") != "IN":
        return None
    return {
        "state": normalize_state_name(data.get("region")),
        "stateRaw": data.get("region"),
        "district": data.get("city"),
        "latitude": data.get("latitude"),
        "longitude": data.get("longitude"),
        "source": "ipapi.co",
    }


async def _from_ip_api(client: httpx.AsyncClient, ip: str) -> dict | None:
    try:
        resp = await client.get(
            IP_API_URL.format(ip=ip),
            params={"fields": "status,country,regionName,city,lat,lon"},
        )
        if resp.status_code != 200:
            return None
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise UpstreamError("IP geolocation failed", status_code=500) from e

    if not isinstance(data, dict):
        return None
    if data.get("status") != "success" or data.get("country") != "India":
        return None
    return {
        "state": normalize_state_name(data.get("regionName")),
        "stateRaw": data.get("regionName"),
        "district": data.get("city"),
        "latitude": data.get("lat"),
        "longitude": data.get("lon"),
        "source": "ip-api.com",
    }


async def locate_ip(ip: str, client: httpx.AsyncClient | None = None) -> dict | None:
    """Location for an IP, or None when neither provider places it in India."""
    if client is None:
        async with httpx.AsyncClient(timeout=settings.geo_timeout) as own_client:
            return await locate_ip(ip, own_client)

    location = await _from_ipapi(client, ip)
    if location:
        return location
    return await _from_ip_api(client, ip)


async def get_ip_location(ip: str) -> dict:
    key = f"ip-location:{ip}"
    cached = cache.get(key)
    if cached:
        return {"fromCache": True, "ip": ip, **cached}

    location = await locate_ip(ip)
    if not location:
        raise LocationNotFoundError("Unable to determine location from IP", extra={"ip": ip})

    cache.set(key, location, ttl_seconds=IP_LOCATION_TTL)
    return {"fromCache": False, "ip": ip, **location}
