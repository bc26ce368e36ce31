# exif_gps.py
# Embedded EXIF metadata: GPS position and orientation

import math
import logging
from io import BytesIO

from PIL import Image, ExifTags, UnidentifiedImageError

from geocoder import GeoCoordinate

logger = logging.getLogger(__name__)

GPS_IFD_TAG = 0x8825
ORIENTATION_TAG = 0x0112


# --- EXIF Data Processing ---
def get_exif(image_bytes):
    """Reads the EXIF block from raw image bytes, or None if unreadable."""
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            logger.info(f"Image format identified by Pillow: {image.format}")
            exif = image.getexif()
            if not exif:
                logger.info("No EXIF metadata found in image.")
                return None
            return exif
    except UnidentifiedImageError:
        logger.warning("Cannot identify image format for uploaded bytes.")
        return None
    except Exception as e:
        logger.error(f"Error reading image or EXIF data: {e}", exc_info=True)
        return None


def get_gps_info(exif):
    """Decodes the GPS sub-IFD into a dict keyed by GPS tag name."""
    if not exif:
        return None
    gps_info_raw = exif.get_ifd(GPS_IFD_TAG)
    if not gps_info_raw:
        return None
    return {ExifTags.GPSTAGS.get(k, k): v for k, v in gps_info_raw.items()}


def dms_to_decimal(dms, ref):
    """Converts GPS Degrees/Minutes/Seconds to decimal degrees."""
    if not isinstance(dms, (tuple, list)) or len(dms) < 3:
        logger.warning(f"Invalid DMS format for conversion: {dms}")
        return None
    try:
        decimal = float(dms[0]) + float(dms[1]) / 60.0 + float(dms[2]) / 3600.0
    except (ValueError, TypeError, ZeroDivisionError) as e:
        logger.warning(f"Error converting DMS component to float ({dms}): {e}")
        return None
    if math.isnan(decimal):
        logger.warning(f"DMS component has a zero denominator: {dms}")
        return None
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if ref and ref.strip().upper() in ("S", "W"):
        decimal = -decimal
    return decimal


def get_decimal_coordinates(gps_info):
    """Returns a GeoCoordinate when all four GPS position tags are present."""
    if not gps_info:
        return None
    lat_dms, lon_dms = gps_info.get("GPSLatitude"), gps_info.get("GPSLongitude")
    lat_ref, lon_ref = gps_info.get("GPSLatitudeRef"), gps_info.get("GPSLongitudeRef")
    if not all([lat_dms, lat_ref, lon_dms, lon_ref]):
        return None

    lat = dms_to_decimal(lat_dms, lat_ref)
    lon = dms_to_decimal(lon_dms, lon_ref)
    if lat is None or lon is None:
        logger.warning("DMS to Decimal conversion failed for GPS data.")
        return None
    if abs(lat) > 90.0 or abs(lon) > 180.0:
        logger.warning(f"GPS position out of range: Lat={lat}, Lon={lon}")
        return None
    return GeoCoordinate(lat, lon)


def extract_gps_coordinate(image_bytes):
    """Extracts the embedded GPS position of an image, or None."""
    coordinate = get_decimal_coordinates(get_gps_info(get_exif(image_bytes)))
    if coordinate is not None:
        logger.info(f"EXIF Coords Found: Lat={coordinate.latitude:.6f}, Lon={coordinate.longitude:.6f}")
    else:
        logger.info("No usable EXIF GPS data found.")
    return coordinate


def get_orientation(image_bytes):
    """Returns the EXIF orientation value (1-8), or None."""
    exif = get_exif(image_bytes)
    if not exif:
        return None
    return exif.get(ORIENTATION_TAG)
