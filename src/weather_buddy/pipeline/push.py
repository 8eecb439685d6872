"""Push pipeline: fetch forecast → clothing suggestion → render → push."""

from __future__ import annotations

import asyncio

import structlog

from weather_buddy.config import settings
from weather_buddy.memory.user_preferences import JsonPreferenceStore, PreferenceRepository
from weather_buddy.models.preference import Location
from weather_buddy.models.weather import ForecastDay, WeatherForecast
from weather_buddy.render.weather_message import CHART_META, ChartLink, push_summary, render_weather_message
from weather_buddy.tools.deepseek import get_clothing_suggestion
from weather_buddy.tools.quickchart import (
    generate_rainfall_chart,
    generate_temperature_chart,
    generate_wind_chart,
)
from weather_buddy.tools.qweather import fetch_forecast, get_tomorrow
from weather_buddy.tools.wxpusher import get_enabled_uids, push_message

logger = structlog.get_logger()

# Charts need at least three days to be worth drawing.
MIN_CHART_DAYS = 3

_CHART_GENERATORS = {
    "temperature": generate_temperature_chart,
    "rainfall": generate_rainfall_chart,
    "wind": generate_wind_chart,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def resolve_location(uid: str, store: PreferenceRepository) -> Location:
    """The user's stored location, falling back to the configured default code."""
    location = store.get(uid).location
    if not location.code or location.code == "undefined":
        logger.warning("push.location_fallback", uid=uid, stored_code=location.code)
        return Location(
            city=settings.default_city,
            district=settings.default_district,
            code=settings.default_location_code,
            name=f"{settings.default_city}{settings.default_district}",
        )
    return location


async def generate_charts(forecast: WeatherForecast) -> list[ChartLink]:
    """Render the three forecast charts concurrently.

    Failed charts are logged and left out; the rest keep their fixed order.
    """
    days = forecast.daily
    if len(days) < MIN_CHART_DAYS:
        logger.info("push.charts_skipped", days=len(days))
        return []

    semaphore = asyncio.Semaphore(settings.chart_concurrency)

    async def _render(kind: str) -> str:
        async with semaphore:
            return await _CHART_GENERATORS[kind](days, forecast.location_code)

    kinds = list(_CHART_GENERATORS)
    results = await asyncio.gather(*[_render(k) for k in kinds], return_exceptions=True)

    charts: list[ChartLink] = []
    for kind, result in zip(kinds, results):
        if isinstance(result, Exception):
            logger.error("push.chart_failed", kind=kind, error=str(result))
            continue
        title, icon = CHART_META[kind]
        charts.append(ChartLink(kind=kind, title=title, icon=icon, url=result))
    return charts


async def _suggest(day: ForecastDay) -> str | None:
    try:
        return await get_clothing_suggestion(day)
    except Exception as exc:
        logger.warning("push.suggestion_failed", error=str(exc))
        return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def run_push_pipeline(uid: str, store: PreferenceRepository, location: Location | None = None) -> dict:
    """Run fetch → suggest → format → push for one user.

    Args:
        uid: Recipient.
        store: Preference repository used to resolve the user's location.
        location: Overrides the stored location (used by the test-push CLI).

    Returns:
        The push provider's response body.

    Raises:
        ApiError: Forecast fetch or push delivery failed.
        ConfigurationError: A required credential is missing.
        ForecastError: The forecast has no entry for tomorrow.
    """
    location = location or resolve_location(uid, store)
    logger.info("push.pipeline.start", uid=uid, code=location.code, name=location.name)

    forecast = await fetch_forecast(location.code, location.name)
    tomorrow = get_tomorrow(forecast)

    suggestion = await _suggest(tomorrow)
    charts = await generate_charts(forecast)

    html = render_weather_message(forecast, suggestion, charts)
    result = await push_message(html, [uid], is_html=True, summary=push_summary(forecast.location_name, tomorrow))

    logger.info("push.pipeline.done", uid=uid, charts=[c.kind for c in charts], has_suggestion=suggestion is not None)
    return result


async def push_weather(uids: list[str] | None = None, store: PreferenceRepository | None = None) -> int:
    """Push to each of *uids* (all enabled users when None), one at a time.

    Returns the number of successful pushes. A failing user never stops the rest.
    """
    store = store or JsonPreferenceStore()
    if uids is None:
        uids = await get_enabled_uids()

    if not uids:
        logger.warning("push.no_recipients")
        return 0

    sent = 0
    for uid in uids:
        try:
            await run_push_pipeline(uid, store)
            sent += 1
        except Exception:
            logger.exception("push.pipeline.failed", uid=uid)

    logger.info("push.batch.done", total=len(uids), sent=sent)
    return sent
