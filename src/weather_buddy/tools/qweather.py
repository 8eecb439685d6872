"""QWeather (和风天气) forecast client — async helper functions."""

from __future__ import annotations

import httpx
import structlog

from weather_buddy.config import settings
from weather_buddy.errors import ApiError, ConfigurationError, ForecastError
from weather_buddy.models.weather import ForecastDay, WeatherForecast
from weather_buddy.tools.token_cache import TokenCache, get_token_cache

logger = structlog.get_logger()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_sec)


def _auth(params: dict, token_cache: TokenCache) -> dict[str, str]:
    """Pick JWT or API-key auth. Mutates *params* for the API-key case.

    Returns the extra request headers (empty for API-key auth).
    """
    if settings.hefeng_key_id and settings.hefeng_project_id:
        try:
            token = token_cache.get()
            logger.info("qweather.auth", method="jwt")
            return {"Authorization": f"Bearer {token}"}
        except Exception as exc:
            logger.error("qweather.jwt_failed", error=str(exc))
            if not settings.hefeng_api_key:
                raise ConfigurationError("JWT认证失败且未配置API Key") from exc

    if settings.hefeng_api_key:
        params["key"] = settings.hefeng_api_key
        logger.info("qweather.auth", method="api_key")
        return {}

    raise ConfigurationError("未配置认证信息，请设置JWT相关参数或API Key")


async def fetch_forecast(
    location_code: str,
    location_name: str = "",
    token_cache: TokenCache | None = None,
) -> WeatherForecast:
    """Fetch the multi-day forecast for a QWeather location code.

    Raises:
        ConfigurationError: No usable credentials.
        ApiError: Transport failure, non-2xx status or a non-"200" body code.
    """
    params = {"location": location_code, "lang": "zh"}
    token_cache = token_cache or get_token_cache()
    headers = _auth(params, token_cache)

    logger.info("qweather.fetch.start", location_code=location_code, location_name=location_name)

    try:
        async with _client() as client:
            resp = await client.get(settings.hefeng_api_url, params=params, headers=headers)
            if not resp.is_success:
                logger.error(
                    "qweather.fetch.http_error",
                    status_code=resp.status_code,
                    response_body=resp.text[:500],
                )
                if resp.status_code == 401 and headers:
                    # Re-sign on the next call instead of reusing the rejected token.
                    token_cache.invalidate()
                resp.raise_for_status()
            body = resp.json()
    except httpx.HTTPError as exc:
        raise ApiError(f"获取{location_name or location_code}天气信息失败: {exc}", "qweather", exc) from exc
    except ValueError as exc:
        raise ApiError(f"天气接口返回了无法解析的数据: {exc}", "qweather", exc) from exc

    if not isinstance(body, dict):
        raise ApiError("天气接口返回了无法解析的数据", "qweather")
    if str(body.get("code", "200")) != "200":
        raise ApiError(f"天气接口返回错误码: {body.get('code')}", "qweather")

    forecast = WeatherForecast.model_validate(body)
    forecast.location_code = location_code
    forecast.location_name = location_name or location_code

    logger.info("qweather.fetch.done", location_code=location_code, days=len(forecast.daily))
    return forecast


def get_tomorrow(forecast: WeatherForecast) -> ForecastDay:
    """Return the next calendar day's forecast (daily[1]).

    Raises:
        ForecastError: If fewer than two daily entries were returned.
    """
    if len(forecast.daily) < 2:
        raise ForecastError("无法获取明天的天气数据")
    return forecast.daily[1]
