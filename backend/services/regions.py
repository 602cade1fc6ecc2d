"""State and district name normalization.

Geocoders, IP lookup services and data.gov.in all spell places slightly
differently. data.gov.in wants upper-case state names and uses current
district names, so everything is funneled through here before it reaches
the upstream API or a cache key.
"""

# Display name -> data.gov.in state_name
STATE_NAMES = {
    "Uttar Pradesh": "UTTAR PRADESH",
    "Maharashtra": "MAHARASHTRA",
    "Bihar": "BIHAR",
    "West Bengal": "WEST BENGAL",
    "Madhya Pradesh": "MADHYA PRADESH",
    "Tamil Nadu": "TAMIL NADU",
    "Rajasthan": "RAJASTHAN",
    "Karnataka": "KARNATAKA",
    "Gujarat": "GUJARAT",
    "Andhra Pradesh": "ANDHRA PRADESH",
    "Odisha": "ODISHA",
    "Telangana": "TELANGANA",
    "Kerala": "KERALA",
    "Jharkhand": "JHARKHAND",
    "Assam": "ASSAM",
    "Punjab": "PUNJAB",
    "Chhattisgarh": "CHHATTISGARH",
    "Haryana": "HARYANA",
    "Delhi": "DELHI",
    "Jammu and Kashmir": "JAMMU AND KASHMIR",
    "Uttarakhand": "UTTARAKHAND",
    "Himachal Pradesh": "HIMACHAL PRADESH",
    "Tripura": "TRIPURA",
    "Meghalaya": "MEGHALAYA",
    "Manipur": "MANIPUR",
    "Nagaland": "NAGALAND",
    "Goa": "GOA",
    "Arunachal Pradesh": "ARUNACHAL PRADESH",
    "Puducherry": "PUDUCHERRY",
    "Mizoram": "MIZORAM",
    "Chandigarh": "CHANDIGARH",
    "Sikkim": "SIKKIM",
    "Andaman and Nicobar Islands": "ANDAMAN AND NICOBAR ISLANDS",
    "Dadra and Nagar Haveli and Daman and Diu": "DADRA AND NAGAR HAVELI AND DAMAN AND DIU",
    "Ladakh": "LADAKH",
    "Lakshadweep": "LAKSHADWEEP",
}

_STATE_NAMES_LOWER = {name.lower(): api_name for name, api_name in STATE_NAMES.items()}

# Renamed districts: name users still search for -> name in the dataset
DISTRICT_RENAMES = {
    "Allahabad": "Prayagraj",
    "Faizabad": "Ayodhya",
}


def normalize_state_name(name: str | None) -> str | None:
    """Convert a state name from any provider to the data.gov.in spelling."""
    if not name:
        return None
    if name in STATE_NAMES:
        return STATE_NAMES[name]
    return _STATE_NAMES_LOWER.get(name.lower(), name.upper())


def map_district_name(name: str) -> str:
    return DISTRICT_RENAMES.get(name, name)


def normalise_key(value: str | None) -> str:
    """Trimmed lower-case form used for exact matches and cache keys."""
    return str(value).strip().lower() if value else ""


def loose_key(value: str) -> str:
    """Lower-case, without the word "district" and without any whitespace."""
    return "".join(value.lower().replace("district", "").split())


def match_district(candidates: list[str | None], districts: list[str]) -> str | None:
    """Pick the dataset district that best matches any geocoder candidate.

    Candidates are tried in order. Each is matched exactly on its loose key
    first, then by substring containment in either direction.
    """
    if not districts:
        return None

    by_key = {loose_key(name): name for name in districts}

    for candidate in candidates:
        if not candidate:
            continue
        key = loose_key(candidate)
        if not key:
            continue
        if key in by_key:
            return by_key[key]
        for district_key, district in by_key.items():
            if district_key and (district_key in key or key in district_key):
                return district
    return None
