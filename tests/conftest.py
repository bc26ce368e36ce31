"""Shared fixtures: stub geocoder, fake Vision client and generated test images."""

from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from geocoder import GeoCoordinate
from vision_analysis import AnalysisResult

PARIS = GeoCoordinate(48.8584, 2.2945)
NEW_YORK = GeoCoordinate(40.7829, -73.9654)


class StubGeocoder:
    """Resolves queries from a fixed table and records every call."""

    def __init__(self, known=None):
        self.known = dict(known or {})
        self.calls = []

    def __call__(self, query, bias=None):
        self.calls.append((query, bias))
        return self.known.get(query)

    @property
    def queries(self):
        return [query for query, _ in self.calls]


def _response(**annotations):
    return SimpleNamespace(error=SimpleNamespace(message=""), **annotations)


class FakeVisionClient:
    """Mimics the parts of vision.ImageAnnotatorClient used by the adapter."""

    def __init__(self, labels=(), landmarks=(), texts=(), objects=(), error=None, object_error=None):
        self.labels = labels
        self.landmarks = landmarks
        self.texts = texts
        self.objects = objects
        self.error = error
        self.object_error = object_error

    def label_detection(self, image):
        if self.error:
            raise self.error
        return _response(label_annotations=[SimpleNamespace(description=d, score=0.9) for d in self.labels])

    def text_detection(self, image):
        return _response(text_annotations=[SimpleNamespace(description=d) for d in self.texts])

    def landmark_detection(self, image):
        return _response(landmark_annotations=[SimpleNamespace(description=d, score=0.8) for d in self.landmarks])

    def object_localization(self, image):
        if self.object_error:
            raise self.object_error
        return _response(localized_object_annotations=[SimpleNamespace(name=n, score=0.7) for n in self.objects])


def make_analysis(labels=(), landmarks=(), ocr_text=(), objects=()):
    raw = {
        "labels": [{"description": l, "score": 0.9} for l in labels],
        "text": [{"description": t} for t in ocr_text],
        "landmarks": [{"description": l, "score": 0.8} for l in landmarks],
        "objects": [{"description": o, "score": 0.7} for o in objects],
    }
    return AnalysisResult(tuple(labels[:5]), tuple(landmarks), tuple(ocr_text), tuple(objects), raw)


def _rational_dms(value):
    degrees = int(value)
    minutes = int((value - degrees) * 60)
    seconds = round((value - degrees - minutes / 60) * 3600 * 100)
    return (IFDRational(degrees, 1), IFDRational(minutes, 1), IFDRational(seconds, 100))


def make_jpeg(lat=None, lon=None, lat_ref="N", lon_ref="E", orientation=None, size=(8, 8), gps=None):
    """Builds a small JPEG, optionally carrying GPS and orientation tags.

    A raw gps mapping is written as the GPS IFD as-is, overriding lat/lon.
    """
    image = Image.new("RGB", size, "white")
    exif = Image.Exif()
    if gps is not None:
        exif[0x8825] = gps
    elif lat is not None and lon is not None:
        gps = {2: _rational_dms(lat), 4: _rational_dms(lon)}
        if lat_ref:
            gps[1] = lat_ref
        if lon_ref:
            gps[3] = lon_ref
        exif[0x8825] = gps
    if orientation is not None:
        exif[0x0112] = orientation
    buffer = BytesIO()
    if len(exif):
        image.save(buffer, "JPEG", exif=exif)
    else:
        image.save(buffer, "JPEG")
    return buffer.getvalue()


@pytest.fixture
def stub_geocoder():
    return StubGeocoder()


@pytest.fixture
def vision_client():
    return FakeVisionClient()


@pytest.fixture
def flask_app(tmp_path, vision_client, stub_geocoder):
    from app import create_app

    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "VISION_CLIENT": vision_client,
        "GEOCODE_FN": stub_geocoder,
    })
    return app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
