import pytest

from conftest import forecast_body
from weather_buddy.models.weather import ForecastDay, WeatherForecast
from weather_buddy.render import weather_message
from weather_buddy.render.command_card import format_command_response, render_markup
from weather_buddy.render.weather_message import ChartLink


def _day(**fields) -> ForecastDay:
    base = {"fxDate": "2025-04-02", "textDay": "多云", "textNight": "晴", "tempMin": "10", "tempMax": "20"}
    return ForecastDay.model_validate({**base, **fields})


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"textDay": "大雨"}, "明天有大雨，出门请带伞，小心路滑"),
        ({"textNight": "雷阵雨"}, "明天有雷阵雨，注意防雷防雨"),
        ({"windScaleDay": "7-8"}, "明天大风，谨慎出行，注意安全"),
        ({"tempMax": "36"}, "明天气温较高，注意防暑降温，多喝水"),
        ({"tempMin": "-2"}, "明天气温较低，注意保暖"),
        ({}, None),
    ],
)
def test_weather_alert(fields, expected):
    assert weather_message.weather_alert(_day(**fields)) == expected


def test_weather_icon_and_background():
    assert weather_message.weather_icon("小雨转中雨") == "🌦️"
    assert weather_message.weather_icon("冻雨") == "🌈"
    assert "1605727216801" in weather_message.weather_background("暴雨")
    assert weather_message.weather_background("未知") == weather_message._UNSPLASH.format(
        weather_message._DEFAULT_BACKGROUND
    )


@pytest.mark.parametrize(
    "fields, color",
    [({"tempMax": "35"}, "#ff6666"), ({"tempMax": "31"}, "#ff9900"), ({"tempMin": "0"}, "#99ccff"), ({}, "#20a0ff")],
)
def test_temperature_color(fields, color):
    assert weather_message.temperature_color(_day(**fields)) == color


def test_temperature_trend_arrows():
    days = [_day(tempMax="20", tempMin="10"), _day(tempMax="22", tempMin="10"), _day(tempMax="18", tempMin="12")]

    trend = weather_message.temperature_trend(days)

    assert [c["label"] for c in trend] == ["今天", "明天", "后天"]
    assert [c["max_arrow"] for c in trend] == ["", "↗️", "↘️"]
    assert [c["min_arrow"] for c in trend] == ["", "→", "↗️"]
    assert weather_message.temperature_trend(days[:2]) == []


def test_clothing_items_split_emoji():
    items = weather_message.clothing_items("👕 长袖衬衫\n\n带把伞")

    assert items == [{"emoji": "👕", "text": "长袖衬衫"}, {"emoji": "👕", "text": "带把伞"}]
    assert weather_message.clothing_items(None) == []


def test_render_weather_message():
    forecast = WeatherForecast.model_validate(forecast_body(3))
    forecast.location_name = "南京江宁"
    charts = [ChartLink(kind="wind", title="风力预测", icon="🌬️", url="http://weather.test/charts/w.png")]

    html = weather_message.render_weather_message(forecast, "☂️ 无需带伞", charts)

    assert "南京江宁天气预报" in html
    assert "2025-04-02 周三" in html
    assert "http://weather.test/charts/w.png" in html
    assert "无需带伞" in html
    assert "后天" in html


def test_push_summary():
    assert weather_message.push_summary("南京江宁", _day()) == "南京江宁天气预报 2025-04-02 多云"


def test_render_markup():
    html = render_markup("开头\n- 第一\n- 第二\n\n发送`帮助`查看**说明**")

    assert '<ul class="item-list"><li>第一</li><li>第二</li></ul>' in html
    assert '<code class="command">帮助</code>' in html
    assert "<strong>说明</strong>" in html
    assert "<br>" in html


def test_command_card_palette():
    html = format_command_response("地区设置成功", "ok", kind="success")

    assert "#28a745" in html
    assert "✅" in html
    assert "response-success" in html


def test_command_card_unknown_kind_uses_info():
    html = format_command_response("标题", "内容", icon="📖", kind="bogus")

    assert "#3498db" in html
    assert "📖" in html
