from types import SimpleNamespace

import pytest

from conftest import forecast_body
from weather_buddy.config import settings
from weather_buddy.errors import ApiError, ConfigurationError
from weather_buddy.models.weather import ForecastDay
from weather_buddy.tools import deepseek

TOMORROW = ForecastDay.model_validate(forecast_body(3)["daily"][1])


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _install_fake(monkeypatch, completions: FakeCompletions) -> dict:
    created = {}

    def fake_client(**kwargs):
        created.update(kwargs)
        return SimpleNamespace(chat=SimpleNamespace(completions=completions))

    monkeypatch.setattr(deepseek, "AsyncOpenAI", fake_client)
    return created


def test_format_suggestion_adds_default_emojis():
    text = "穿薄外套和长裤\n☂️ 不需要带伞\n早晚温差大注意添衣"

    assert deepseek.format_suggestion(text).splitlines() == [
        "👕 穿薄外套和长裤",
        "☂️ 不需要带伞",
        "🔆 早晚温差大注意添衣",
    ]


def test_format_suggestion_short_reply_uses_fallback():
    assert deepseek.format_suggestion("好") == deepseek.FALLBACK_SUGGESTION
    assert deepseek.format_suggestion("") == deepseek.FALLBACK_SUGGESTION


def test_build_prompt_includes_weather_fields():
    prompt = deepseek.build_prompt(TOMORROW)

    assert "日期：2025-04-02" in prompt
    assert "温度范围：11°C 至 21°C" in prompt
    assert "风力：1-3级" in prompt


async def test_get_clothing_suggestion(monkeypatch):
    monkeypatch.setattr(settings, "deepseek_api_key", "sk-test")
    completions = FakeCompletions(content="👕 穿长袖衬衫配薄外套\n☂️ 无需携带雨具\n🔆 注意防晒补水")
    created = _install_fake(monkeypatch, completions)

    suggestion = await deepseek.get_clothing_suggestion(TOMORROW)

    assert suggestion.startswith("👕 穿长袖衬衫")
    assert created["base_url"] == settings.deepseek_base_url
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["max_tokens"] == 300


async def test_missing_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        await deepseek.get_clothing_suggestion(TOMORROW)


async def test_empty_reply_is_api_error(monkeypatch):
    monkeypatch.setattr(settings, "deepseek_api_key", "sk-test")
    _install_fake(monkeypatch, FakeCompletions(content=""))

    with pytest.raises(ApiError):
        await deepseek.get_clothing_suggestion(TOMORROW)
