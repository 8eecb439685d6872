import json

import httpx
import pytest

from conftest import forecast_body, mock_client
from weather_buddy.errors import ApiError, ForecastError
from weather_buddy.pipeline import push
from weather_buddy.tools import quickchart, qweather, wxpusher


@pytest.fixture
def pushed(monkeypatch):
    """Captures every WxPusher send payload."""
    payloads = []

    def handler(request: httpx.Request) -> httpx.Response:
        payloads.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "data": [{"messageId": len(payloads)}]})

    monkeypatch.setattr(wxpusher, "_client", mock_client(handler))
    return payloads


@pytest.fixture
def weather_api(monkeypatch):
    requested = []
    state = {"body": forecast_body(3)}

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.params["location"])
        return httpx.Response(200, json=state["body"])

    monkeypatch.setattr(qweather, "_client", mock_client(handler))
    state["requested"] = requested
    return state


@pytest.fixture
def chart_api(monkeypatch):
    """QuickChart stub; chart titles listed in ``failing`` get a 500."""
    state = {"failing": set()}

    def handler(request: httpx.Request) -> httpx.Response:
        config = json.loads(request.url.params["c"])
        if config["options"]["title"]["text"] in state["failing"]:
            return httpx.Response(500)
        return httpx.Response(200, content=b"png")

    monkeypatch.setattr(quickchart, "_client", mock_client(handler))
    return state


@pytest.fixture(autouse=True)
def suggestion(monkeypatch):
    async def fake(day):
        return "👕 薄外套\n☂️ 不用带伞"

    monkeypatch.setattr(push, "get_clothing_suggestion", fake)


async def test_pipeline_pushes_html_to_user(store, pushed, weather_api, chart_api):
    store.set_location("u1", "101010900")

    await push.run_push_pipeline("u1", store)

    assert weather_api["requested"] == ["101010900"]
    (payload,) = pushed
    assert payload["uids"] == ["u1"]
    assert payload["contentType"] == wxpusher.CONTENT_TYPE_HTML
    assert payload["summary"] == "北京朝阳天气预报 2025-04-02 多云"
    for title in ("温度走势图", "降水预测", "风力预测"):
        assert title in payload["content"]
    assert "薄外套" in payload["content"]


async def test_rainfall_chart_failure_still_pushes(store, pushed, weather_api, chart_api):
    chart_api["failing"].add("降水预测")

    await push.run_push_pipeline("u1", store)

    content = pushed[0]["content"]
    assert "温度走势图" in content
    assert "风力预测" in content
    assert "降水预测" not in content
    assert "temp_chart_101190104_" in content
    assert "wind_chart_101190104_" in content
    assert "rain_chart_" not in content


async def test_short_forecast_skips_charts(store, pushed, weather_api, chart_api):
    weather_api["body"] = forecast_body(2)

    await push.run_push_pipeline("u1", store)

    assert "温度走势图" not in pushed[0]["content"]


async def test_single_day_forecast_is_forecast_error(store, pushed, weather_api, chart_api):
    weather_api["body"] = forecast_body(1)

    with pytest.raises(ForecastError):
        await push.run_push_pipeline("u1", store)
    assert pushed == []


async def test_suggestion_failure_does_not_block_push(monkeypatch, store, pushed, weather_api, chart_api):
    async def broken(day):
        raise ApiError("down", "deepseek")

    monkeypatch.setattr(push, "get_clothing_suggestion", broken)

    await push.run_push_pipeline("u1", store)

    assert len(pushed) == 1
    assert "薄外套" not in pushed[0]["content"]


async def test_push_weather_continues_past_failures(monkeypatch, store):
    calls = []

    async def fake_pipeline(uid, store, location=None):
        calls.append(uid)
        if uid == "bad":
            raise ApiError("weather down", "qweather")
        return {"success": True}

    monkeypatch.setattr(push, "run_push_pipeline", fake_pipeline)

    sent = await push.push_weather(["a", "bad", "b"], store)

    assert calls == ["a", "bad", "b"]
    assert sent == 2


async def test_push_weather_defaults_to_enabled_users(monkeypatch, store):
    calls = []

    async def fake_uids():
        return ["x", "y"]

    async def fake_pipeline(uid, store, location=None):
        calls.append(uid)

    monkeypatch.setattr(push, "get_enabled_uids", fake_uids)
    monkeypatch.setattr(push, "run_push_pipeline", fake_pipeline)

    assert await push.push_weather(store=store) == 2
    assert calls == ["x", "y"]


def test_resolve_location_falls_back_for_undefined(store, prefs_path):
    prefs_path.parent.mkdir(parents=True, exist_ok=True)
    prefs_path.write_text(json.dumps({"users": {"u1": {"location": {"code": "undefined"}}}}), encoding="utf-8")

    location = push.resolve_location("u1", store)

    assert location.code == "101190104"
    assert location.name == "南京江宁"
