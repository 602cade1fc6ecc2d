"""District-level MGNREGA statistics built from data.gov.in state records.

The upstream dataset is a single snapshot per district (string-typed
columns, no history). This module turns one state's rows into the dashboard
payload:

- latest: the selected district's headline numbers
- trend: a synthetic 12-month series (see synthesize_trend)
- stateAverage: per-district means across the state
- comparison: the district against those means, plus its rank

Results are cached for a day and served stale when the upstream is down.
"""

import logging
import random
from datetime import date

import pandas as pd

from errors import APIKeyNotConfiguredError, DashboardError, ServiceUnavailableError
from services.cache import cache
from services.data_gov import fetch_state_records, unique_districts, well_formed
from services.regions import map_district_name, normalise_key

logger = logging.getLogger(__name__)

DEFAULT_MONTHS = 12
MAX_MONTHS = 24
STATS_TTL = 60 * 60 * 24

# Work demand by month, oldest first, ending at the current month.
# Rises through the dry season, dips with the monsoon, recovers after.
SEASONAL_PATTERN = [0.75, 0.78, 0.82, 0.88, 0.93, 0.96, 0.91, 0.85, 0.90, 0.95, 0.98, 1.00]

# Upstream column -> metric name
INT_FIELDS = {
    "Total_Individuals_Worked": "workers",
    "Total_Households_Worked": "households",
}
FLOAT_FIELDS = {
    "Women_Persondays": "women_days",
    "SC_persondays": "sc_days",
    "ST_persondays": "st_days",
    "Total_Exp": "expenditure",
    "Average_Wage_rate_per_day_per_person": "wage",
    "Average_days_of_employment_provided_per_Household": "days",
}


def parse_months(value) -> int:
    """Trend window length: an integer in 1..24, else 12."""
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_MONTHS
    if 0 < n <= MAX_MONTHS:
        return n
    return DEFAULT_MONTHS


def build_cache_key(state: str, district: str, month: str | None, months: int) -> str:
    return f"mgnrega:{normalise_key(state)}:{normalise_key(district)}:{month or 'recent'}:{months}"


def _to_float(value) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if pd.notna(result) else 0.0


def _to_int(value) -> int:
    # Matches parseInt on strings like "1234.0"
    return int(_to_float(value))


def record_metrics(record: dict) -> dict:
    """Numeric view of one upstream row; blanks and junk count as 0."""
    metrics = {name: _to_int(record.get(col)) for col, name in INT_FIELDS.items()}
    metrics.update({name: _to_float(record.get(col)) for col, name in FLOAT_FIELDS.items()})
    # The dataset has no total person-days column; women + SC + ST approximates it.
    metrics["person_days"] = metrics["women_days"] + metrics["sc_days"] + metrics["st_days"]
    metrics["district"] = normalise_key(record.get("district_name"))
    return metrics


def find_district_record(records: list[dict] | None, district: str) -> dict | None:
    """Exact (trimmed, case-insensitive) district match."""
    if not records:
        return None

    wanted = normalise_key(district)
    for record in well_formed(records):
        if normalise_key(record.get("district_name") or record.get("district")) == wanted:
            return record

    names = unique_districts(records)
    similar = [n for n in names if wanted in normalise_key(n) or normalise_key(n) in wanted]
    logger.warning(
        "District %r not found among %d districts%s",
        district,
        len(names),
        f" (similar: {', '.join(similar[:3])})" if similar else "",
    )
    return None


def latest_from_record(record: dict) -> dict:
    m = record_metrics(record)
    person_days = m["person_days"]
    return {
        "total_workers": m["workers"],
        "total_jobs": round(person_days),
        "total_expenditure": m["expenditure"],
        "women_share": round(m["women_days"] / person_days, 2) if person_days > 0 else 0.5,
        "average_wage": round(m["wage"]),
        "average_days_worked": round(m["days"]),
        "households_worked": m["households"],
    }


def synthesize_trend(
    latest: dict, today: date | None = None, rng: random.Random | None = None
) -> list[dict]:
    """Monthly series ending at the current month, scaled from ``latest``.

    data.gov.in only publishes the current snapshot, so history is
    approximated from SEASONAL_PATTERN with up to 3% jitter per month.
    """
    rng = rng or random.Random()
    today = today or date.today()
    current = pd.Period(year=today.year, month=today.month, freq="M")
    months_back = len(SEASONAL_PATTERN)

    trend = []
    for i in range(months_back - 1, -1, -1):
        factor = SEASONAL_PATTERN[months_back - 1 - i] * rng.uniform(0.97, 1.03)
        trend.append({
            "month": str(current - i),
            "total_workers": round(latest["total_workers"] * factor),
            "total_jobs": round(latest["total_jobs"] * factor),
            "total_expenditure": round(latest["total_expenditure"] * factor, 1),
            "women_share": round(latest["women_share"] * rng.uniform(0.98, 1.02), 2),
            "average_wage": round(latest["average_wage"] * (0.96 + 0.04 * factor)),
            "average_days_worked": round(latest["average_days_worked"] * factor, 1),
        })
    return trend


def _metrics_frame(records: list[dict]) -> pd.DataFrame:
    return pd.DataFrame([record_metrics(r) for r in records])


def _mean_int(series: pd.Series) -> int:
    return int(round(float(series.mean())))


def state_average(records: list[dict]) -> dict | None:
    """Mean district figures across a state."""
    if not records:
        return None

    df = _metrics_frame(records)
    total_person_days = df["person_days"].sum()

    return {
        "latest": {
            "total_workers": _mean_int(df["workers"]),
            "total_jobs": _mean_int(df["person_days"]),
            "total_expenditure": round(float(df["expenditure"].mean()), 1),
            "average_days_worked": _mean_int(df["days"]),
            "average_wage": _mean_int(df["wage"]),
            "women_share": (
                round(float(df["women_days"].sum() / total_person_days), 2)
                if total_person_days > 0 else 0
            ),
            "households_worked": _mean_int(df["households"]),
        },
        "trend": [],
    }


def _percent_diff(value: float, baseline: float) -> float | None:
    if not baseline:
        return None
    return round((value - baseline) / baseline * 100, 1)


def _percent_of_total(value: float, total: float) -> float | None:
    if not total:
        return None
    return round(value / total * 100, 1)


def compare_to_state(record: dict, records: list[dict]) -> dict | None:
    """Position a district against its state's averages and totals."""
    if not record or not records:
        return None

    district = record_metrics(record)
    df = _metrics_frame(records)
    count = len(df)

    ranked = df.sort_values("workers", ascending=False, kind="stable").reset_index(drop=True)
    matches = ranked.index[ranked["district"] == district["district"]]
    rank = int(matches[0]) + 1 if len(matches) else 0

    return {
        "workerDeltaPct": _percent_diff(district["workers"], float(df["workers"].sum()) / count),
        "jobDeltaPct": _percent_diff(district["person_days"], float(df["person_days"].sum()) / count),
        "expenditureSharePct": _percent_of_total(district["expenditure"], float(df["expenditure"].sum())),
        "rankByWorkers": rank,
        "totalDistricts": count,
        # No history upstream, so no month-over-month change to report
        "momentumPct": 0,
    }


async def fetch_district_stats(state: str, district: str) -> dict | None:
    """Build the district payload from live data.gov.in records.

    Returns None when no API key is configured or the district is not in the
    state's records. Upstream failures raise.
    """
    try:
        records = await fetch_state_records(state)
    except APIKeyNotConfiguredError:
        logger.warning("DATA_GOV_API_KEY not set; skipping upstream fetch")
        return None

    mapped = map_district_name(district)
    if mapped != district:
        logger.info("Mapping district %r -> %r", district, mapped)

    records = well_formed(records)

    record = find_district_record(records, mapped)
    if record is None:
        return None

    state_records = [r for r in records if normalise_key(r.get("state_name")) == normalise_key(state)]
    latest = latest_from_record(record)

    return {
        "latest": latest,
        "trend": synthesize_trend(latest),
        "stateAverage": state_average(state_records),
        "comparison": compare_to_state(record, state_records),
        "source": "upstream",
    }


def _serve_stale(key: str, reason: str) -> dict:
    stale = cache.get(key, allow_stale=True)
    if stale:
        logger.warning("Serving stale data for %s (%s)", key, reason)
        return {"fromCache": True, "stale": True, **stale}
    logger.warning("No data for %s (%s) and nothing cached", key, reason)
    raise ServiceUnavailableError(
        f"Service temporarily unavailable. {reason} and no cached data available."
    )


async def get_district_stats(
    state: str, district: str, month: str | None = None, last_months=None
) -> dict:
    """Cached district statistics with stale fallback.

    Order: fresh cache, live upstream, stale cache, then 503.
    """
    months = parse_months(last_months)
    key = build_cache_key(state, district, month, months)

    cached = cache.get(key)
    if cached:
        return {"fromCache": True, **cached}

    try:
        upstream = await fetch_district_stats(state, district)
    except DashboardError as e:
        logger.warning("Upstream fetch failed for %s/%s: %s", state, district, e)
        upstream = None

    if not upstream:
        return _serve_stale(key, "API is down")

    payload = {
        "latest": upstream["latest"],
        "trend": upstream["trend"][-months:],
        "stateAverage": upstream["stateAverage"],
        "comparison": upstream["comparison"],
        "source": upstream["source"],
    }
    if not payload["latest"] or not payload["trend"]:
        return _serve_stale(key, "Invalid data")

    cache.set(key, payload, ttl_seconds=STATS_TTL)
    return {"fromCache": False, **payload}
