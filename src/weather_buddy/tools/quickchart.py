"""QuickChart image rendering: builds Chart.js configs and stores the PNGs."""

from __future__ import annotations

import json
import re
import time
from datetime import date

import httpx
import structlog

from weather_buddy.config import get_charts_dir, settings
from weather_buddy.errors import ApiError
from weather_buddy.models.weather import ForecastDay

logger = structlog.get_logger()

CHART_WIDTH = 600
CHART_HEIGHT = 400
MAX_CHART_DAYS = 7

_WEEKDAYS = ["周一", "周二", "周三", "周四", "周五", "周六", "周日"]
_LEADING_INT = re.compile(r"-?\d+")

_FONT = {"fontColor": "#333", "fontSize": 14, "fontStyle": "bold"}
_WIND_COLORS = [
    "rgba(255, 99, 132, 0.75)",
    "rgba(54, 162, 235, 0.75)",
    "rgba(255, 206, 86, 0.75)",
    "rgba(75, 192, 192, 0.75)",
    "rgba(153, 102, 255, 0.75)",
    "rgba(255, 159, 64, 0.75)",
    "rgba(199, 199, 199, 0.75)",
]


def weekday_name(fx_date: str) -> str:
    """"2025-04-01" → "周二"; empty string when the date cannot be parsed."""
    try:
        return _WEEKDAYS[date.fromisoformat(fx_date).weekday()]
    except ValueError:
        return ""


def to_int(value: str | None) -> int:
    """Leading integer of *value*: "4-5" → 4, "" → 0."""
    match = _LEADING_INT.match(str(value or "").strip())
    return int(match.group(0)) if match else 0


def _to_float(value: str | None) -> float:
    try:
        return float(value or 0)
    except ValueError:
        return 0.0


def _line_dataset(label: str, data: list, rgb: str, alpha: float, **extra) -> dict:
    return {
        "label": label,
        "data": data,
        "borderColor": f"rgb({rgb})",
        "backgroundColor": f"rgba({rgb}, {alpha})",
        "borderWidth": 4,
        "pointBackgroundColor": f"rgb({rgb})",
        "pointBorderColor": "white",
        "pointBorderWidth": 2,
        "pointRadius": 6,
        "tension": 0.2,
        "fill": True,
        **extra,
    }


def _base_options(title: str) -> dict:
    return {
        "responsive": True,
        "title": {"display": True, "text": title, "fontSize": 24, "fontStyle": "bold", "padding": 20, "fontColor": "#333"},
        "legend": {"position": "bottom", "labels": {"usePointStyle": True, "padding": 20, **_FONT}},
        "tooltips": {"enabled": False},
        "layout": {"padding": {"left": 15, "right": 25, "top": 10, "bottom": 15}},
    }


# ---------------------------------------------------------------------------
# Chart configs
# ---------------------------------------------------------------------------


def temperature_chart_config(days: list[ForecastDay]) -> dict:
    data = days[:MAX_CHART_DAYS]
    max_temps = [to_int(d.temp_max) for d in data]
    min_temps = [to_int(d.temp_min) for d in data]
    all_temps = max_temps + min_temps

    options = _base_options("未来温度走势")
    options["scales"] = {
        "yAxes": [{
            "ticks": {"min": min(all_temps) - 2, "max": max(all_temps) + 2, "padding": 10, **_FONT},
            "scaleLabel": {"display": True, "labelString": "温度(°C)", "fontColor": "#333", "fontSize": 14},
            "gridLines": {"color": "rgba(0, 0, 0, 0.07)", "zeroLineColor": "rgba(0, 0, 0, 0.25)"},
        }],
        "xAxes": [{"ticks": {"padding": 10, **_FONT}, "gridLines": {"display": False}}],
    }
    return {
        "type": "line",
        "data": {
            "labels": [weekday_name(d.fx_date) for d in data],
            "datasets": [
                _line_dataset("最高温度(°C)", max_temps, "255, 59, 92", 0.15),
                _line_dataset("最低温度(°C)", min_temps, "34, 142, 215", 0.15),
            ],
        },
        "options": options,
    }


def rainfall_chart_config(days: list[ForecastDay]) -> dict:
    data = days[:MAX_CHART_DAYS]
    pop = [to_int(d.pop) for d in data]
    precip = [_to_float(d.precip) for d in data]

    options = _base_options("降水预测")
    options["scales"] = {
        "yAxes": [
            {
                "id": "y-left",
                "position": "left",
                "ticks": {"min": 0, "max": 100, "padding": 10, **_FONT},
                "scaleLabel": {"display": True, "labelString": "降水概率(%)", "fontColor": "#333", "fontSize": 14},
            },
            {
                "id": "y-right",
                "position": "right",
                "ticks": {"min": 0, "suggestedMax": max(max(precip) + 1, 5), "padding": 10, **_FONT},
                "scaleLabel": {"display": True, "labelString": "降水量(mm)", "fontColor": "#333", "fontSize": 14},
                "gridLines": {"drawOnChartArea": False},
            },
        ],
        "xAxes": [{"ticks": {"padding": 10, **_FONT}, "gridLines": {"display": False}}],
    }
    return {
        "type": "line",
        "data": {
            "labels": [weekday_name(d.fx_date) for d in data],
            "datasets": [
                _line_dataset("降水概率(%)", pop, "34, 142, 215", 0.4, yAxisID="y-left"),
                _line_dataset("降水量(mm)", precip, "75, 192, 192", 0.4, yAxisID="y-right", borderWidth=3),
            ],
        },
        "options": options,
    }


def wind_chart_config(days: list[ForecastDay]) -> dict:
    data = days[:MAX_CHART_DAYS]
    scales = [to_int(d.wind_scale_day) for d in data]

    options = _base_options("风力预测")
    options["legend"]["display"] = False
    options["scales"] = {
        "yAxes": [{
            "ticks": {"min": 0, "max": max(max(scales) + 1, 6), "stepSize": 1, "padding": 10, **_FONT},
            "scaleLabel": {"display": True, "labelString": "风力等级", "fontColor": "#333", "fontSize": 14},
        }],
        "xAxes": [{"ticks": {"padding": 10, **_FONT}, "gridLines": {"display": False}}],
    }
    return {
        "type": "bar",
        "data": {
            "labels": [f"{weekday_name(d.fx_date)}\n{d.wind_dir_day}" for d in data],
            "datasets": [{
                "label": "风力等级",
                "data": scales,
                "backgroundColor": _WIND_COLORS[: len(scales)],
                "borderWidth": 1,
            }],
        },
        "options": options,
    }


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_sec)


async def render_chart(config: dict, file_prefix: str) -> str:
    """Render *config* through QuickChart, save the PNG and return its public URL.

    Raises:
        ApiError: If the chart API call fails.
    """
    params = {"c": json.dumps(config, ensure_ascii=False), "w": CHART_WIDTH, "h": CHART_HEIGHT, "bkg": "white"}

    try:
        async with _client() as client:
            resp = await client.get(settings.quickchart_url, params=params)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("quickchart.render_failed", prefix=file_prefix, error=str(exc))
        raise ApiError(f"生成图表失败: {exc}", "quickchart", exc) from exc

    filename = f"{file_prefix}_{int(time.time() * 1000)}.png"
    (get_charts_dir() / filename).write_bytes(resp.content)

    logger.info("quickchart.render_done", filename=filename, bytes_written=len(resp.content))
    return f"{settings.public_base_url}/charts/{filename}"


async def generate_temperature_chart(days: list[ForecastDay], location_code: str) -> str:
    return await render_chart(temperature_chart_config(days), f"temp_chart_{location_code}")


async def generate_rainfall_chart(days: list[ForecastDay], location_code: str) -> str:
    return await render_chart(rainfall_chart_config(days), f"rain_chart_{location_code}")


async def generate_wind_chart(days: list[ForecastDay], location_code: str) -> str:
    return await render_chart(wind_chart_config(days), f"wind_chart_{location_code}")
