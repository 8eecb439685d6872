"""HTML rendering for the daily weather push."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from weather_buddy.models.weather import ForecastDay, WeatherForecast
from weather_buddy.tools.deepseek import starts_with_emoji
from weather_buddy.tools.quickchart import to_int, weekday_name

_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

_WEATHER_ICONS: list[tuple[str, str]] = [
    ("晴", "☀️"),
    ("多云", "⛅"),
    ("阴", "☁️"),
    ("小雨", "🌦️"),
    ("中雨", "🌧️"),
    ("大雨", "🌧️"),
    ("暴雨", "⛈️"),
    ("雷阵雨", "⛈️"),
    ("小雪", "🌨️"),
    ("中雪", "🌨️"),
    ("大雪", "❄️"),
    ("雾", "🌫️"),
    ("霾", "🌫️"),
]

_UNSPLASH = "https://images.unsplash.com/photo-{}?q=80&w=1000&auto=format&fit=crop"

# First match wins, so the heavier variants come first.
_BACKGROUNDS: list[tuple[tuple[str, ...], str]] = [
    (("暴雨",), "1605727216801-e27ce1d0cc28"),
    (("大雨",), "1433863448220-78aaa064ff47"),
    (("中雨",), "1515694346937-94d85e41e6f0"),
    (("雨",), "1534274988757-a28bf1a57c17"),
    (("大雪", "暴雪"), "1542601906990-b4d3fb778b09"),
    (("中雪",), "1477601263568-180e2c6d046e"),
    (("雪",), "1491002052546-bf38f186af56"),
    (("晴",), "1419833173245-f59e1b93f9ee"),
    (("多云",), "1534088568595-a066f410bcda"),
    (("阴",), "1499956827185-0d63ee78a910"),
    (("雾",), "1487621167305-5d248087c724"),
    (("霾",), "1535695449338-46723397d2be"),
    (("沙尘", "扬沙"), "1521811559553-2a6ceb56cf58"),
    (("冰雹", "雹"), "1624961688978-18063bec05ad"),
    (("雷", "闪电"), "1461511669078-d46bf351cd6e"),
]
_DEFAULT_BACKGROUND = "1601297183305-6df142704ea2"

_BOTTOM_IMAGES = [
    "https://pic1.imgdb.cn/item/67e0bbaf88c538a9b5c56204.gif",
    "https://pic1.imgdb.cn/item/67eca2a80ba3d5a1d7e9b978.gif",
    "https://pic1.imgdb.cn/item/67eca2a80ba3d5a1d7e9b979.gif",
    "https://pic1.imgdb.cn/item/67eca4710ba3d5a1d7e9bf32.gif",
    "https://pic1.imgdb.cn/item/67eca4a60ba3d5a1d7e9bfa1.gif",
]

_PRECIP_ALERTS: list[tuple[str, str]] = [
    ("大雨", "明天有大雨，出门请带伞，小心路滑"),
    ("暴雨", "明天有暴雨，尽量减少外出活动"),
    ("中雨", "明天有中雨，记得带伞"),
    ("雷阵雨", "明天有雷阵雨，注意防雷防雨"),
    ("大雪", "明天有大雪，注意保暖，路面可能结冰"),
    ("中雪", "明天有中雪，出行注意安全"),
    ("雾", "明天有雾，能见度低，开车注意安全"),
    ("沙尘", "明天有沙尘天气，建议戴口罩"),
    ("霾", "明天有霾，注意防护，戴好口罩"),
]

_WIND_ALERTS = {
    5: "明天风力较大，注意防风",
    6: "明天风力较大，注意防风",
    7: "明天大风，谨慎出行，注意安全",
    8: "明天大风，尽量减少户外活动",
}

_DAY_LABELS = ["今天", "明天", "后天"]


@dataclass
class ChartLink:
    kind: str
    title: str
    icon: str
    url: str


CHART_META = {
    "temperature": ("温度走势图", "📊"),
    "rainfall": ("降水预测", "💧"),
    "wind": ("风力预测", "🌬️"),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def weather_icon(text: str) -> str:
    for key, icon in _WEATHER_ICONS:
        if key in text:
            return icon
    return "🌈"


def weather_background(text: str) -> str:
    for keys, photo in _BACKGROUNDS:
        if any(k in text for k in keys):
            return _UNSPLASH.format(photo)
    return _UNSPLASH.format(_DEFAULT_BACKGROUND)


def weather_alert(day: ForecastDay) -> str | None:
    """Special-weather reminder for *day*, or None."""
    desc = day.text_day + day.text_night
    for key, message in _PRECIP_ALERTS:
        if key in desc:
            return message

    wind = to_int(day.wind_scale_day)
    if wind >= 5 and wind in _WIND_ALERTS:
        return _WIND_ALERTS[wind]

    if to_int(day.temp_max) >= 35:
        return "明天气温较高，注意防暑降温，多喝水"
    if to_int(day.temp_min) <= 0:
        return "明天气温较低，注意保暖"
    return None


def temperature_color(day: ForecastDay) -> str:
    high, low = to_int(day.temp_max), to_int(day.temp_min)
    if high >= 35:
        return "#ff6666"
    if high >= 30:
        return "#ff9900"
    if low <= 0:
        return "#99ccff"
    return "#20a0ff"


def _arrow(previous: int, current: int) -> str:
    if current > previous:
        return "↗️"
    if current < previous:
        return "↘️"
    return "→"


def temperature_trend(days: list[ForecastDay]) -> list[dict]:
    """Three-column today/tomorrow/day-after table data; empty with fewer days."""
    if len(days) < 3:
        return []
    columns = []
    for i, day in enumerate(days[:3]):
        high, low = to_int(day.temp_max), to_int(day.temp_min)
        prev = days[i - 1] if i else None
        columns.append({
            "weekday": weekday_name(day.fx_date),
            "icon": weather_icon(day.text_day),
            "temp_max": high,
            "temp_min": low,
            "max_arrow": _arrow(to_int(prev.temp_max), high) if prev else "",
            "min_arrow": _arrow(to_int(prev.temp_min), low) if prev else "",
            "label": _DAY_LABELS[i],
        })
    return columns


_LEADING_SYMBOLS = re.compile(r"^([^\w\s]+)\s*(.*)$")


def clothing_items(suggestion: str | None) -> list[dict]:
    """Split a suggestion into (emoji, text) rows; lines without an emoji get 👕."""
    items = []
    for line in (suggestion or "").splitlines():
        line = line.strip()
        if not line:
            continue
        match = _LEADING_SYMBOLS.match(line)
        if starts_with_emoji(line) and match:
            items.append({"emoji": match.group(1), "text": match.group(2)})
        else:
            items.append({"emoji": "👕", "text": line})
    return items


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_weather_message(
    forecast: WeatherForecast,
    suggestion: str | None = None,
    charts: list[ChartLink] | None = None,
) -> str:
    """Render tomorrow's forecast card as a standalone HTML document."""
    day = forecast.daily[1]
    return env.get_template("weather_card.html.j2").render(
        location_name=forecast.location_name,
        day=day,
        weekday=weekday_name(day.fx_date),
        weather_icon=weather_icon(day.text_day),
        background_url=weather_background(day.text_day),
        temp_color=temperature_color(day),
        alert=weather_alert(day),
        trend=temperature_trend(forecast.daily),
        charts=charts or [],
        clothing=clothing_items(suggestion),
        bottom_image=random.choice(_BOTTOM_IMAGES),
    )


def push_summary(location_name: str, day: ForecastDay) -> str:
    return f"{location_name}天气预报 {day.fx_date} {day.text_day}"
