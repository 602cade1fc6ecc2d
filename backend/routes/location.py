"""Visitor location routes — used to preselect state and district.

GET /api/ip-location → coarse location from the caller's IP
GET /api/geolocate   → state/district from coordinates (GPS or IP-derived)
"""

import logging

from fastapi import APIRouter, Query, Request

from errors import DashboardError, MissingParameterError, UpstreamError
from services.geocoding import locate
from services.ip_location import client_ip, get_ip_location

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/ip-location")
async def ip_location(request: Request) -> dict:
    ip = client_ip(request.headers, request.client.host if request.client else None)
    if not ip:
        raise MissingParameterError("Unable to determine client IP")

    try:
        return await get_ip_location(ip)
    except UpstreamError as e:
        logger.warning("IP location failed for %s: %s", ip, e)
        raise DashboardError(
            "Failed to get IP location", status_code=500, extra={"message": str(e)}
        ) from e


@router.get("/geolocate")
async def geolocate(
    lat: str | None = Query(None),
    lon: str | None = Query(None),
    method: str = Query("gps"),
) -> dict:
    if not lat or not lon:
        raise MissingParameterError("lat and lon are required")

    return await locate(lat, lon, method)
