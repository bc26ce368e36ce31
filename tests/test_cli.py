"""Tests for the command-line front end."""

import json

import photo_mapper_cli
from conftest import make_jpeg


def _fake_pipeline(payload, seen):
    def fake_analyze_photo(image_bytes, has_gps_data, user_context=None):
        seen.append((has_gps_data, user_context))
        return payload
    return fake_analyze_photo


def test_missing_file(tmp_path, capsys):
    assert photo_mapper_cli.run_cli([str(tmp_path / "missing.jpg")]) == 1
    assert "not found" in capsys.readouterr().out


def test_prints_detected_location(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "photo.jpg"
    image_path.write_bytes(make_jpeg())
    seen = []
    payload = {"aiCaption": "Photo featuring airport (location detected by AI from label)",
               "aiDetectedLocation": {"lat": 51.47, "lng": -0.4543}, "locationSource": "label"}
    monkeypatch.setattr(photo_mapper_cli, "analyze_photo", _fake_pipeline(payload, seen))

    assert photo_mapper_cli.run_cli([str(image_path), "--context", "London"]) == 0

    out = capsys.readouterr().out
    assert seen == [(False, "London")]
    assert "Location Source:      label" in out
    assert "Lat=51.470000, Lon=-0.454300" in out


def test_falls_back_to_default_location(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "photo.jpg"
    image_path.write_bytes(make_jpeg())
    payload = {"aiCaption": "Beautiful photo captured", "aiDetectedLocation": None, "locationSource": None}
    monkeypatch.setattr(photo_mapper_cli, "analyze_photo", _fake_pipeline(payload, []))

    assert photo_mapper_cli.run_cli([str(image_path)]) == 0
    out = capsys.readouterr().out
    assert "Location Source:      default" in out
    assert "Lat=37.774900, Lon=-122.419400" in out


def test_json_output(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "photo.jpg"
    image_path.write_bytes(make_jpeg(lat=48.8584, lon=2.2945))
    seen = []
    payload = {"aiCaption": "Beautiful photo captured", "aiDetectedLocation": None, "locationSource": "gps"}
    monkeypatch.setattr(photo_mapper_cli, "analyze_photo", _fake_pipeline(payload, seen))

    assert photo_mapper_cli.run_cli([str(image_path), "--json"]) == 0
    assert json.loads(capsys.readouterr().out) == payload
    assert seen == [(True, None)]


def test_pipeline_error_exit_code(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "photo.jpg"
    image_path.write_bytes(make_jpeg())

    def boom(*args, **kwargs):
        raise RuntimeError("no credentials")

    monkeypatch.setattr(photo_mapper_cli, "analyze_photo", boom)
    assert photo_mapper_cli.run_cli([str(image_path)]) == 1
    assert "no credentials" in capsys.readouterr().out
