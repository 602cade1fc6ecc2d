"""data.gov.in client for the MGNREGA district-wise dataset.

The dataset is queried one state at a time (``filters[state_name]``); a
single response holds every district row for that state, which is enough to
compute both the district view and the state averages.
"""

import logging

import httpx

from config import settings
from errors import APIKeyNotConfiguredError, UpstreamError, UpstreamTimeoutError
from services.cache import cache

logger = logging.getLogger(__name__)

DATA_GOV_BASE_URL = "https://api.data.gov.in/resource"
USER_AGENT = "MGNREGA-Dashboard/1.0"
RECORD_LIMIT = 1000
DISTRICTS_TTL = 60 * 60 * 24


def _resource_url() -> str:
    return f"{DATA_GOV_BASE_URL}/{settings.data_gov_resource_id}"


async def fetch_state_records(
    state: str, client: httpx.AsyncClient | None = None
) -> list[dict] | None:
    """Fetch every district row for a state.

    Returns the ``records`` list, or None when the response has none.
    """
    if not settings.data_gov_api_key:
        raise APIKeyNotConfiguredError()

    state_upper = state.upper()
    params = {
        "api-key": settings.data_gov_api_key,
        "format": "json",
        "limit": RECORD_LIMIT,
        "filters[state_name]": state_upper,
    }
    headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

    logger.info("Fetching data.gov.in records for state %s", state_upper)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.upstream_timeout) as own_client:
                resp = await own_client.get(_resource_url(), params=params, headers=headers)
        else:
            resp = await client.get(_resource_url(), params=params, headers=headers)
        resp.raise_for_status()
        data = resp.json()
    except httpx.TimeoutException as e:
        logger.warning("data.gov.in request timed out for %s: %s", state_upper, e)
        raise UpstreamTimeoutError() from e
    except httpx.HTTPStatusError as e:
        logger.warning("data.gov.in returned %s for %s", e.response.status_code, state_upper)
        raise UpstreamError(f"API returned {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.warning("data.gov.in request failed for %s: %s", state_upper, e)
        raise UpstreamError("Failed to fetch data from data.gov.in") from e
    except ValueError as e:
        logger.warning("data.gov.in returned invalid JSON for %s: %s", state_upper, e)
        raise UpstreamError("Failed to parse API response") from e

    records = data.get("records") if isinstance(data, dict) else None
    if not isinstance(records, list):
        return None
    records = well_formed(records)
    logger.info("Received %d records for %s", len(records), state_upper)
    return records


def well_formed(records: list | None) -> list[dict]:
    """Drop rows that are not JSON objects."""
    return [r for r in records or [] if isinstance(r, dict)]


def unique_districts(records: list[dict]) -> list[str]:
    names = (r.get("district_name") for r in well_formed(records))
    return sorted({name for name in names if name and isinstance(name, str)})


async def get_districts(state: str) -> tuple[dict, bool]:
    """District list for a state as ``({districts, count}, from_cache)``.

    Empty results are not cached so a transient upstream hiccup does not
    stick for a day.
    """
    state_upper = state.upper()
    key = f"districts:{state_upper}"
    cached = cache.get(key)
    if cached:
        return cached, True

    records = await fetch_state_records(state_upper)
    districts = unique_districts(records or [])
    if not districts:
        return {"districts": [], "count": 0}, False

    result = {"districts": districts, "count": len(districts)}
    cache.set(key, result, ttl_seconds=DISTRICTS_TTL)
    return result, False


async def lookup_districts(state: str | None) -> list[str]:
    """Best-effort district names for matching geocoder output. Never raises."""
    if not state:
        return []
    try:
        result, _ = await get_districts(state)
        return result["districts"]
    except (UpstreamError, APIKeyNotConfiguredError) as e:
        stale = cache.get(f"districts:{state.upper()}", allow_stale=True)
        if stale:
            logger.warning("Serving stale district list for %s: %s", state, e)
            return stale.get("districts", [])
        logger.warning("District list unavailable for %s: %s", state, e)
        return []
