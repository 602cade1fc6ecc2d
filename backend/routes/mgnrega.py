"""MGNREGA data routes.

GET /api/districts → districts of a state (24h cache)
GET /api/mgnrega   → district statistics vs. state average (24h cache, stale fallback)
"""

import logging

from fastapi import APIRouter, Query

from errors import DashboardError, MissingParameterError, UpstreamError, UpstreamTimeoutError
from services.data_gov import get_districts
from services.mgnrega import get_district_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/districts")
async def districts(state: str | None = Query(None)) -> dict:
    """Sorted district names for a state, from data.gov.in."""
    if not state:
        raise MissingParameterError("state parameter required")

    try:
        result, from_cache = await get_districts(state)
    except UpstreamTimeoutError as e:
        e.extra.setdefault("districts", [])
        raise
    except UpstreamError as e:
        raise DashboardError(str(e), status_code=500, extra={"districts": []}) from e
    return {**result, "fromCache": from_cache}


@router.get("/mgnrega")
async def mgnrega(
    state: str | None = Query(None),
    district: str | None = Query(None),
    last_months: str | None = Query(None, alias="lastMonths"),
    month: str | None = Query(None),
) -> dict:
    """Latest figures, trend, state average and comparison for one district."""
    if not state or not district:
        raise MissingParameterError("state and district required")

    return await get_district_stats(state, district, month=month, last_months=last_months)
