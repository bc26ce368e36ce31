# vision_analysis.py
# Google Cloud Vision adapter: labels, landmarks, OCR text and objects for one image

import os
import logging
from collections import namedtuple

from google.cloud import vision

logger = logging.getLogger(__name__)

MAX_LABELS = 5

AnalysisResult = namedtuple("AnalysisResult", ["labels", "landmarks", "ocr_text", "objects", "raw"])


class VisionAPIError(RuntimeError):
    """Raised when a Vision API response carries an error message."""


def get_vision_client():
    """Creates a Vision client from GOOGLE_APPLICATION_CREDENTIALS or default credentials."""
    cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if cred_path and os.path.exists(cred_path):
        logger.info(f"Vision API Client created using credentials from: {cred_path}")
        return vision.ImageAnnotatorClient.from_service_account_file(cred_path)
    logger.info("Vision API Client created using default credentials.")
    return vision.ImageAnnotatorClient()


def _check_response(response, feature):
    if response.error.message:
        raise VisionAPIError(f"Vision API Error ({feature}): {response.error.message}")
    return response


def _annotation_dicts(annotations, name_attr="description"):
    return [{"description": getattr(a, name_attr), "score": getattr(a, "score", None)} for a in annotations]


def _localize_objects(client, image):
    """Object localization is optional; any failure degrades to an empty list."""
    if not hasattr(client, "object_localization"):
        return []
    try:
        response = _check_response(client.object_localization(image=image), "Objects")
        return _annotation_dicts(response.localized_object_annotations, name_attr="name")
    except Exception as e:
        logger.warning(f"Object localization not available: {e}")
        return []


def analyze_image_bytes(content, client=None):
    """Runs label, text, landmark and object detection on raw image bytes."""
    client = client or get_vision_client()
    image = vision.Image(content=content)

    logger.info("--- Vision API: Label Detection ---")
    label_resp = _check_response(client.label_detection(image=image), "Label")
    logger.info("--- Vision API: Text Detection (OCR) ---")
    text_resp = _check_response(client.text_detection(image=image), "Text")
    logger.info("--- Vision API: Landmark Detection ---")
    landmark_resp = _check_response(client.landmark_detection(image=image), "Landmark")
    objects = _localize_objects(client, image)

    raw = {
        "labels": _annotation_dicts(label_resp.label_annotations),
        "text": [{"description": t.description} for t in text_resp.text_annotations],
        "landmarks": _annotation_dicts(landmark_resp.landmark_annotations),
        "objects": objects,
    }
    labels = tuple(item["description"] for item in raw["labels"][:MAX_LABELS])
    landmarks = tuple(item["description"] for item in raw["landmarks"])
    ocr_text = tuple(item["description"] for item in raw["text"])
    object_names = tuple(item["description"] for item in objects)

    logger.info(f"  Labels: {list(labels)}; Landmarks: {list(landmarks)}; "
                f"OCR fragments: {len(ocr_text)}; Objects: {len(object_names)}")
    return AnalysisResult(labels, landmarks, ocr_text, object_names, raw)
