"""User preferences store: persists each user's location and daily push time.

The JSON file is the single source of truth: every call does a whole-file
read → mutate → overwrite. Writers are not coordinated, so a scheduler backfill
racing a command write can lose one of the two changes (last writer wins).
Lookups treat an unreadable file as empty; writes refuse to touch it.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Protocol

import structlog

from weather_buddy.config import get_preferences_path, settings
from weather_buddy.errors import StorageError, ValidationError
from weather_buddy.memory.locations import LocationDirectory
from weather_buddy.models.preference import Location, UserPreference

logger = structlog.get_logger()

PUSH_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_SINGLE_DIGIT_HOUR = re.compile(r"^(\d):([0-5]\d)$")


def normalize_push_time(value: str) -> str:
    """Normalize "9:30" → "09:30" and validate 24-hour HH:mm.

    Raises:
        ValidationError: If the value is not a valid time of day.
    """
    value = (value or "").strip()
    match = _SINGLE_DIGIT_HOUR.match(value)
    formatted = f"0{match.group(1)}:{match.group(2)}" if match else value
    if not PUSH_TIME_PATTERN.match(formatted):
        raise ValidationError(f"无效的推送时间格式: {value}", {"push_time": value})
    return formatted


def default_location(directory: LocationDirectory) -> Location:
    """The process-wide default location, fixed by configuration at startup."""
    name = directory.name_of(settings.default_city, settings.default_district)
    return Location(
        city=settings.default_city,
        district=settings.default_district,
        code=settings.default_location_code,
        name=name or f"{settings.default_city}{settings.default_district}",
    )


class PreferenceRepository(Protocol):
    """Storage seam for user preferences; JsonPreferenceStore is the file-backed one."""

    def get(self, uid: str) -> UserPreference: ...

    def set_location(self, uid: str, code: str) -> Location: ...

    def set_push_time(self, uid: str, push_time: str) -> str: ...

    def ensure_defaults(self, uid: str) -> UserPreference: ...


class JsonPreferenceStore:
    """Flat-file store shaped ``{"users": {uid: {"location": {...}, "pushTime": "HH:mm"}}}``."""

    def __init__(self, path: Path | str | None = None, directory: LocationDirectory | None = None):
        self.path = Path(path) if path else get_preferences_path()
        self.directory = directory or LocationDirectory()

    # -- file access -------------------------------------------------------

    def _ensure_file(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("preferences.file_created", path=str(self.path))
        self._write({"users": {}})

    def _load(self) -> dict:
        """Parse the file. Raises StorageError rather than guessing at its contents."""
        self._ensure_file()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("preferences.read_failed", path=str(self.path), error=str(exc))
            raise StorageError(f"读取用户偏好失败: {exc}", str(self.path)) from exc
        if not isinstance(data, dict):
            raise StorageError("用户偏好文件格式错误", str(self.path))
        if not isinstance(data.get("users"), dict):
            data["users"] = {}
        return data

    def _read(self) -> dict:
        """Lenient read for lookups: an unreadable file reads as empty."""
        try:
            return self._load()
        except StorageError:
            return {"users": {}}

    def _write(self, data: dict) -> None:
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    # -- resolution --------------------------------------------------------

    def _resolve_location(self, stored: dict | None) -> Location | None:
        if not isinstance(stored, dict):
            return None
        code = stored.get("code")
        if code and code != "undefined":
            found = self.directory.find_by_code(code)
            if found:
                return found
        city, district = stored.get("city"), stored.get("district")
        if city and district:
            return self.directory.get(city, district)
        return None

    def _resolve(self, uid: str, record: dict | None) -> UserPreference:
        if not isinstance(record, dict):
            record = {}
        location = self._resolve_location(record.get("location")) or default_location(self.directory)
        push_time = record.get("pushTime")
        if not isinstance(push_time, str) or not PUSH_TIME_PATTERN.match(push_time):
            push_time = settings.default_push_time
        return UserPreference(uid=uid, location=location, push_time=push_time)

    @staticmethod
    def _record(data: dict, uid: str) -> dict:
        """Writable record for *uid*; a malformed entry is replaced by an empty one."""
        user = data["users"].get(uid)
        if not isinstance(user, dict):
            if user is not None:
                logger.warning("preferences.malformed_record", uid=uid, kind=type(user).__name__)
            user = data["users"][uid] = {}
        return user

    # -- repository operations --------------------------------------------

    def get(self, uid: str) -> UserPreference:
        """Stored preference, or the configured defaults for anything missing/invalid."""
        record = self._read()["users"].get(uid)
        pref = self._resolve(uid, record)
        logger.debug(
            "preferences.get",
            uid=uid,
            stored=record is not None,
            code=pref.location.code,
            push_time=pref.push_time,
        )
        return pref

    def set_location(self, uid: str, code: str) -> Location:
        location = self.directory.find_by_code(code)
        if location is None:
            logger.warning("preferences.invalid_location", uid=uid, code=code)
            raise ValidationError(f"无效的地区代码: {code}", {"code": code})

        data = self._load()
        user = self._record(data, uid)
        user["location"] = location.model_dump()
        self._write(data)
        logger.info("preferences.location_set", uid=uid, code=code, name=location.name)
        return location

    def set_push_time(self, uid: str, push_time: str) -> str:
        formatted = normalize_push_time(push_time)

        data = self._load()
        self._record(data, uid)["pushTime"] = formatted
        self._write(data)
        logger.info("preferences.push_time_set", uid=uid, push_time=formatted)
        return formatted

    def ensure_defaults(self, uid: str) -> UserPreference:
        """Backfill missing pushTime/location for *uid* with the defaults."""
        data = self._load()
        user = self._record(data, uid)
        missing = []
        if not user.get("pushTime"):
            user["pushTime"] = settings.default_push_time
            missing.append("pushTime")
        if not user.get("location"):
            user["location"] = default_location(self.directory).model_dump()
            missing.append("location")
        if missing:
            self._write(data)
            logger.info("preferences.defaults_backfilled", uid=uid, fields=missing)
        return self._resolve(uid, user)
