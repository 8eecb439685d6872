"""QWeather JWT signing and an injectable expiring token cache."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

import jwt
import structlog

from weather_buddy.config import settings
from weather_buddy.errors import ConfigurationError

logger = structlog.get_logger()

TOKEN_LIFETIME_SEC = 3600
REFRESH_MARGIN_SEC = 300
# Backdate iat to tolerate clock skew against the QWeather servers.
_CLOCK_SKEW_SEC = 30


def generate_weather_jwt(now: float | None = None) -> str:
    """Sign an EdDSA JWT for the QWeather API.

    Raises:
        ConfigurationError: If the key id, project id or private key is missing.
    """
    if not settings.hefeng_key_id or not settings.hefeng_project_id:
        raise ConfigurationError("缺少必要的JWT参数: HEFENG_KEY_ID / HEFENG_PROJECT_ID")

    key_path = Path(settings.hefeng_private_key_path)
    try:
        private_key = key_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"无法读取私钥文件: {key_path}") from exc

    issued_at = int(now if now is not None else time.time()) - _CLOCK_SKEW_SEC
    return jwt.encode(
        {"sub": settings.hefeng_project_id, "iat": issued_at, "exp": issued_at + TOKEN_LIFETIME_SEC},
        private_key,
        algorithm="EdDSA",
        headers={"kid": settings.hefeng_key_id},
    )


class TokenCache:
    """Holds one token and regenerates it *margin* seconds before it expires.

    *factory* produces a fresh token; *clock* returns epoch seconds and can be
    replaced in tests.
    """

    def __init__(
        self,
        factory: Callable[[], str] = generate_weather_jwt,
        lifetime: float = TOKEN_LIFETIME_SEC,
        margin: float = REFRESH_MARGIN_SEC,
        clock: Callable[[], float] = time.time,
    ):
        self._factory = factory
        self._lifetime = lifetime
        self._margin = margin
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0

    def is_stale(self) -> bool:
        return self._token is None or self._clock() >= self._expires_at - self._margin

    def get(self) -> str:
        if self.is_stale():
            now = self._clock()
            self._token = self._factory()
            self._expires_at = now + self._lifetime
            logger.info("token_cache.refreshed", expires_at=int(self._expires_at))
        return self._token

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0


_token_cache: TokenCache | None = None


def get_token_cache() -> TokenCache:
    """Process-wide cache, created lazily on first use."""
    global _token_cache
    if _token_cache is None:
        _token_cache = TokenCache()
    return _token_cache
