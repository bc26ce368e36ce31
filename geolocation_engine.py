# geolocation_engine.py
# Core logic for Photo Mapper: location inference cascade, captions and the per-upload pipeline

import logging
from collections import namedtuple

from geocoder import geocode
from text_candidates import extract_candidates, extract_simple_candidates
from vision_analysis import analyze_image_bytes

logger = logging.getLogger(__name__)

# --- Location Sources ---
SOURCE_GPS = "gps"
SOURCE_USER_CONTEXT = "user_context"
SOURCE_LANDMARK = "landmark"
SOURCE_CONTEXT_ENHANCED = "context_enhanced"
SOURCE_TEXT = "text"
SOURCE_LABEL = "label"
SOURCE_DEFAULT = "default"
ALL_SOURCES = (SOURCE_GPS, SOURCE_USER_CONTEXT, SOURCE_LANDMARK, SOURCE_CONTEXT_ENHANCED,
               SOURCE_TEXT, SOURCE_LABEL, SOURCE_DEFAULT)

# --- Cascade Limits ---
CONTEXT_ENHANCED_LIMIT = 3
TEXT_CANDIDATE_LIMIT = 5
SIMPLE_MATCH_LIMIT = 3
LABEL_LIMIT = 2

# Labels that name a kind of place specific enough to geocode on their own
LOCATION_TYPE_LABELS = {
    "airport", "station", "terminal", "university", "college", "hospital", "museum", "library",
    "cathedral", "church", "temple", "mosque", "synagogue", "stadium", "arena", "theater", "theatre",
    "mall", "market", "bridge", "tower", "lighthouse", "castle", "palace", "fort", "monument",
}
# Generic building types, only tried once an earlier step has established a bias
BUILDING_TYPE_LABELS = {"school", "hotel", "restaurant", "cafe", "bank", "store", "shop"}

DEFAULT_CAPTION = "Beautiful photo captured"

InferenceResult = namedtuple("InferenceResult", ["coordinate", "source"])


class InferenceState:
    """Inputs of one inference run plus the bias accumulator."""

    def __init__(self, user_context, analysis):
        context = (user_context or "").strip()
        self.user_context = context or None
        self.analysis = analysis
        self.all_text = " ".join(analysis.ocr_text) if analysis.ocr_text else ""
        self.bias = None

    def set_bias(self, coordinate):
        """Records the first established coordinate; later calls are no-ops."""
        if self.bias is None and coordinate is not None:
            self.bias = coordinate


def _try_queries(state, queries, geocode_fn, step_name):
    for query in queries:
        logger.info(f"  [{step_name}] Attempting geocoding for: '{query}'")
        coordinate = geocode_fn(query, bias=state.bias)
        if coordinate is not None:
            return coordinate
    return None


def qualifying_labels(labels, bias):
    """Filters labels down to those specific enough to geocode, in label order."""
    selected = []
    for label in labels:
        if not label:
            continue
        key = label.strip().lower()
        if key in LOCATION_TYPE_LABELS or (bias is not None and key in BUILDING_TYPE_LABELS):
            selected.append(label)
    return selected


# --- Cascade Strategies ---
def from_user_context(state, geocode_fn):
    if not state.user_context:
        return None
    return _try_queries(state, [state.user_context], geocode_fn, "user context")


def from_landmark(state, geocode_fn):
    landmarks = state.analysis.landmarks
    if not landmarks or not landmarks[0]:
        return None
    return _try_queries(state, [landmarks[0]], geocode_fn, "landmark")


def from_context_enhanced_text(state, geocode_fn):
    if not state.all_text or not state.user_context:
        return None
    candidates = extract_candidates(state.all_text)[:CONTEXT_ENHANCED_LIMIT]
    queries = [f"{candidate} {state.user_context}" for candidate in candidates]
    return _try_queries(state, queries, geocode_fn, "context + text")


def from_text_candidates(state, geocode_fn):
    if not state.all_text:
        return None
    candidates = extract_candidates(state.all_text)[:TEXT_CANDIDATE_LIMIT]
    return _try_queries(state, candidates, geocode_fn, "text")


def from_simple_text(state, geocode_fn):
    if not state.all_text:
        return None
    for matches in extract_simple_candidates(state.all_text):
        coordinate = _try_queries(state, matches[:SIMPLE_MATCH_LIMIT], geocode_fn, "simple text")
        if coordinate is not None:
            return coordinate
    return None


def from_labels(state, geocode_fn):
    labels = qualifying_labels(state.analysis.labels, state.bias)[:LABEL_LIMIT]
    return _try_queries(state, labels, geocode_fn, "label")


# (source tag, strategy, establishes bias on success)
CASCADE = [
    (SOURCE_USER_CONTEXT, from_user_context, True),
    (SOURCE_LANDMARK, from_landmark, True),
    (SOURCE_CONTEXT_ENHANCED, from_context_enhanced_text, False),
    (SOURCE_TEXT, from_text_candidates, False),
    (SOURCE_TEXT, from_simple_text, False),
    (SOURCE_LABEL, from_labels, False),
]


def infer_location(user_context, analysis, geocode_fn=geocode):
    """Runs the fallback cascade, returning the first resolved coordinate and its source."""
    state = InferenceState(user_context, analysis)
    logger.info("No GPS data available, attempting AI location detection...")
    for source, strategy, sets_bias in CASCADE:
        coordinate = strategy(state, geocode_fn)
        if coordinate is None:
            continue
        if sets_bias:
            state.set_bias(coordinate)
        logger.info(f"Location resolved via '{source}': "
                    f"Lat={coordinate.latitude:.6f}, Lon={coordinate.longitude:.6f}")
        return InferenceResult(coordinate, source)
    logger.info("No location could be inferred from context, landmarks, text or labels.")
    return InferenceResult(None, None)


def resolve_location(has_gps_data, user_context, analysis, geocode_fn=geocode):
    """GPS wins unconditionally; otherwise the inference cascade runs."""
    if has_gps_data:
        return InferenceResult(None, SOURCE_GPS)
    return infer_location(user_context, analysis, geocode_fn=geocode_fn)


# --- Caption Synthesis ---
def synthesize_caption(analysis, inference):
    """Builds a short caption from the detected landmark or top labels."""
    if analysis.landmarks:
        caption = f"Photo taken at {analysis.landmarks[0]}"
    elif analysis.labels:
        caption = f"Photo featuring {', '.join(analysis.labels[:3])}"
    else:
        caption = DEFAULT_CAPTION

    if inference.coordinate is not None and inference.source != SOURCE_GPS:
        caption += f" (location detected by AI from {inference.source})"
    return caption


# --- Main Processing Function ---
def analyze_photo(image_bytes, has_gps_data, user_context=None, vision_client=None, geocode_fn=geocode):
    """Analyzes one uploaded photo and returns the JSON payload for the client."""
    logger.info(f"--- Starting Photo Analysis (GPS present: {has_gps_data}) ---")
    analysis = analyze_image_bytes(image_bytes, client=vision_client)
    inference = resolve_location(has_gps_data, user_context, analysis, geocode_fn=geocode_fn)
    caption = synthesize_caption(analysis, inference)
    logger.info(f"--- Photo Analysis Finished. Source: {inference.source}, Caption: '{caption}' ---")

    return {
        "labels": analysis.raw["labels"],
        "text": analysis.raw["text"],
        "objects": analysis.raw["objects"],
        "landmarks": analysis.raw["landmarks"],
        "aiCaption": caption,
        "aiDetectedLocation": inference.coordinate.to_dict() if inference.coordinate is not None else None,
        "locationSource": inference.source,
    }
