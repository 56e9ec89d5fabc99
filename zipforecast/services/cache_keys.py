from zipforecast.models import Location
from zipforecast.services.cache import rounded_coords

# Bump whenever the cached payload shape changes.
CACHE_SCHEMA_VERSION = "v1"

DEFAULT_COORD_DECIMALS = 2


def cache_key(location: Location, decimals: int = DEFAULT_COORD_DECIMALS) -> str:
    """Cache key for a resolved location.

    Addresses sharing a postal code share one entry. Without a postal code the
    coordinates are rounded (2 decimals is roughly a 1.1 km grid) so nearby
    lookups still share an entry while distant ones do not collide.
    """
    if location.has_postal_code:
        return f"forecast:{location.postal_code.strip()}:{CACHE_SCHEMA_VERSION}"

    rlat, rlon = rounded_coords(location.latitude, location.longitude, decimals)
    return f"forecast:lat_{rlat:.{decimals}f}_lon_{rlon:.{decimals}f}:{CACHE_SCHEMA_VERSION}"
