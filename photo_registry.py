# photo_registry.py
# In-memory collection of processed photos and the folium map drawn from it

import threading
from html import escape
import logging
from datetime import datetime, timezone

import folium

from geocoder import GeoCoordinate
from geolocation_engine import SOURCE_GPS, SOURCE_DEFAULT

logger = logging.getLogger(__name__)

# San Francisco, used when no location could be determined at all
DEFAULT_COORDINATE = GeoCoordinate(37.7749, -122.4194)
MAX_GALLERY_LABELS = 5

MARKER_COLORS = {
    "gps": "green",
    "user_context": "blue",
    "context_enhanced": "darkblue",
    "landmark": "purple",
    "text": "orange",
    "label": "beige",
    "default": "gray",
}


class Photo:
    """One mapped photo as shown in the gallery and on the map."""

    def __init__(self, photo_id, url, coordinate, timestamp, caption, labels=None, landmarks=None,
                 location_source=SOURCE_DEFAULT):
        self.id = photo_id
        self.url = url
        self.coordinate = coordinate
        self.timestamp = timestamp
        self.caption = caption
        self.labels = list(labels or [])
        self.landmarks = list(landmarks or [])
        self.location_source = location_source

    def to_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "gpsData": self.coordinate.to_dict(),
            "timestamp": self.timestamp,
            "caption": self.caption,
            "labels": self.labels,
            "landmarks": self.landmarks,
            "locationSource": self.location_source,
        }


def choose_location(gps_coordinate, has_gps_data, analysis_payload):
    """Picks GPS, then the AI-detected location, then the default coordinate."""
    if has_gps_data and gps_coordinate is not None:
        return gps_coordinate, SOURCE_GPS
    detected = analysis_payload.get("aiDetectedLocation")
    if not has_gps_data and detected:
        return GeoCoordinate(detected["lat"], detected["lng"]), analysis_payload.get("locationSource")
    return DEFAULT_COORDINATE, SOURCE_DEFAULT


class PhotoRegistry:
    """Append-only list of photos for the current session."""

    def __init__(self):
        self._photos = []
        self._counter = 0
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._photos)

    def add_from_analysis(self, url, gps_coordinate, has_gps_data, analysis_payload, timestamp=None):
        """Creates and appends a Photo from an upload-endpoint payload."""
        coordinate, source = choose_location(gps_coordinate, has_gps_data, analysis_payload)
        with self._lock:
            self._counter += 1
            photo = Photo(
                photo_id=f"photo_{self._counter}",
                url=url,
                coordinate=coordinate,
                timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
                caption=analysis_payload.get("aiCaption"),
                labels=[l.get("description") for l in analysis_payload.get("labels", [])][:MAX_GALLERY_LABELS],
                landmarks=[l.get("description") for l in analysis_payload.get("landmarks", [])],
                location_source=source,
            )
            self._photos.append(photo)
        logger.info(f"Registered {photo.id} at {coordinate.latitude:.4f},{coordinate.longitude:.4f} ({source})")
        return photo

    def all(self):
        with self._lock:
            return list(self._photos)

    def get(self, photo_id):
        with self._lock:
            for photo in self._photos:
                if photo.id == photo_id:
                    return photo
        return None


# --- Map Rendering ---
def _popup_html(photo):
    return (f"<div style='width: 220px;'>"
            f"<img src='{escape(photo.url)}' style='width: 100%;'/>"
            f"<p><strong>{escape(photo.caption or '')}</strong></p>"
            f"<p>{photo.coordinate.latitude:.4f}, {photo.coordinate.longitude:.4f} ({photo.location_source})</p>"
            f"</div>")


def build_map(photos, selected_id=None, zoom=13):
    """Builds a folium map with one marker per photo."""
    selected = next((p for p in photos if p.id == selected_id), None)
    focus = selected or (photos[-1] if photos else None)
    center = focus.coordinate if focus else DEFAULT_COORDINATE

    m = folium.Map(location=[center.latitude, center.longitude], zoom_start=zoom)
    for photo in photos:
        folium.Marker(
            location=[photo.coordinate.latitude, photo.coordinate.longitude],
            popup=folium.Popup(_popup_html(photo), max_width=260),
            tooltip=photo.caption,
            icon=folium.Icon(color=MARKER_COLORS.get(photo.location_source, "lightgray")),
        ).add_to(m)

    if len(photos) > 1 and selected is None:
        lats = [p.coordinate.latitude for p in photos]
        lngs = [p.coordinate.longitude for p in photos]
        m.fit_bounds([[min(lats), min(lngs)], [max(lats), max(lngs)]])
    return m


def render_map(photos, selected_id=None):
    """Returns the standalone HTML document for the photo map."""
    return build_map(photos, selected_id=selected_id).get_root().render()
