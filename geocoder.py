# geocoder.py
# Google Maps geocoding adapter used by the location cascade

import os
import math
import logging
from collections import namedtuple

import googlemaps

logger = logging.getLogger(__name__)

# --- Constants ---
BIAS_RADIUS_KM = 50.0            # Search radius around a bias coordinate
GEOCODE_TIMEOUT = 10             # Seconds per Geocoding API request
KM_PER_DEGREE_LAT = 111.32
ACCEPTED_COMPONENT_TYPES = {"locality", "administrative_area_level_1", "country"}


class GeoCoordinate(namedtuple("GeoCoordinate", ["latitude", "longitude"])):
    """A latitude/longitude pair in decimal degrees."""
    __slots__ = ()

    def to_dict(self):
        return {"lat": self.latitude, "lng": self.longitude}


def _wrap_longitude(lng):
    if lng < -180.0:
        return lng + 360.0
    if lng > 180.0:
        return lng - 360.0
    return lng


def bias_bounds(bias, radius_km=BIAS_RADIUS_KM):
    """Builds the viewport box enclosing a circle of radius_km around bias."""
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(bias.latitude))
    south = max(bias.latitude - lat_delta, -90.0)
    north = min(bias.latitude + lat_delta, 90.0)
    # Near the poles the longitude span covers the whole globe
    lng_delta = 180.0 if cos_lat < 1e-6 else radius_km / (KM_PER_DEGREE_LAT * cos_lat)
    if lng_delta >= 180.0:
        return {"southwest": (south, -180.0), "northeast": (north, 180.0)}
    # A box crossing the antimeridian has southwest lng > northeast lng
    return {
        "southwest": (south, _wrap_longitude(bias.longitude - lng_delta)),
        "northeast": (north, _wrap_longitude(bias.longitude + lng_delta)),
    }


def has_valid_address(result):
    """True if a geocoding result names a locality, region or country."""
    for component in result.get("address_components") or []:
        if ACCEPTED_COMPONENT_TYPES.intersection(component.get("types") or []):
            return True
    return False


def geocode(query, bias=None, api_key=None):
    """Resolves a free-text place description to a GeoCoordinate, or None."""
    api_key = api_key or os.getenv("GOOGLE_MAPS_API_KEY")
    if not api_key:
        logger.warning("Geocode skipped: No API Key.")
        return None
    if not query or not query.strip():
        logger.warning("Geocode skipped: No location query provided.")
        return None

    try:
        gmaps = googlemaps.Client(key=api_key, requests_timeout=GEOCODE_TIMEOUT)
        if bias is not None:
            results = gmaps.geocode(query, bounds=bias_bounds(bias))
        else:
            results = gmaps.geocode(query)

        if not results:
            logger.info(f"Geocoding returned no results for '{query[:50]}'")
            return None

        first = results[0]
        if not has_valid_address(first):
            logger.info(f"Geocoding result for '{query[:50]}' rejected: no locality/region/country")
            return None

        loc = first["geometry"]["location"]
        coordinate = GeoCoordinate(float(loc["lat"]), float(loc["lng"]))
        logger.info(f"Geocoding success: '{query[:50]}' -> {first.get('formatted_address', 'N/A')}")
        return coordinate
    except Exception as e:
        logger.error(f"Geocode API Error for '{query[:50]}': {e}", exc_info=False)
        return None
