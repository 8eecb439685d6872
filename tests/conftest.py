"""Shared fixtures: temp data files, settings overrides and canned API bodies."""

from __future__ import annotations

import json

import httpx
import pytest

from weather_buddy.config import settings
from weather_buddy.memory.locations import LocationDirectory
from weather_buddy.memory.user_preferences import JsonPreferenceStore

LOCATIONS = {
    "北京": {
        "北京": {"code": "101010100", "name": "北京"},
        "朝阳": {"code": "101010900", "name": "北京朝阳"},
        "海淀": {"code": "101010200", "name": "北京海淀"},
    },
    "南京": {
        "江宁": {"code": "101190104", "name": "南京江宁"},
        "浦口": {"code": "101190107", "name": "南京浦口"},
    },
    "苏州": {
        "吴中": {"code": "101190405", "name": "苏州吴中"},
    },
}


def forecast_body(days: int = 3, text_day: str = "多云") -> dict:
    return {
        "code": "200",
        "updateTime": "2025-04-01T10:00+08:00",
        "daily": [
            {
                "fxDate": f"2025-04-0{i + 1}",
                "textDay": text_day,
                "textNight": "晴",
                "tempMin": str(10 + i),
                "tempMax": str(20 + i),
                "windDirDay": "东南风",
                "windScaleDay": "1-3",
                "humidity": "60",
                "precip": "0.0",
                "pop": "10",
            }
            for i in range(days)
        ],
    }


def mock_client(handler):
    """Factory usable in place of a module's ``_client``."""
    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    """Keep every test away from real credentials and the working directory."""
    monkeypatch.setattr(settings, "data_dir", str(tmp_path / "data"))
    monkeypatch.setattr(settings, "charts_dir", str(tmp_path / "charts"))
    monkeypatch.setattr(settings, "preferences_file", "")
    monkeypatch.setattr(settings, "server_base_url", "http://weather.test")
    monkeypatch.setattr(settings, "hefeng_key_id", "")
    monkeypatch.setattr(settings, "hefeng_project_id", "")
    monkeypatch.setattr(settings, "hefeng_api_key", "test-key")
    monkeypatch.setattr(settings, "wxpusher_app_token", "AT_test")
    monkeypatch.setattr(settings, "deepseek_api_key", "")
    monkeypatch.setattr(settings, "default_location_code", "101190104")
    monkeypatch.setattr(settings, "default_city", "南京")
    monkeypatch.setattr(settings, "default_district", "江宁")
    monkeypatch.setattr(settings, "default_push_time", "20:00")


@pytest.fixture
def locations_path(tmp_path, monkeypatch):
    path = tmp_path / "locations.json"
    path.write_text(json.dumps(LOCATIONS, ensure_ascii=False), encoding="utf-8")
    monkeypatch.setattr(settings, "locations_file", str(path))
    return path


@pytest.fixture
def directory(locations_path):
    return LocationDirectory(locations_path)


@pytest.fixture
def prefs_path(tmp_path):
    return tmp_path / "data" / "userPreferences.json"


@pytest.fixture
def store(prefs_path, directory):
    return JsonPreferenceStore(prefs_path, directory)
