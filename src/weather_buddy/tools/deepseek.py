"""DeepSeek clothing suggestion — async helper function."""

from __future__ import annotations

import unicodedata

import structlog
from openai import AsyncOpenAI, OpenAIError

from weather_buddy.config import settings
from weather_buddy.errors import ApiError, ConfigurationError
from weather_buddy.models.weather import ForecastDay

logger = structlog.get_logger()

# ---------------------------------------------------------------------------
# Prompt template
# ---------------------------------------------------------------------------

CLOTHING_PROMPT = """\
你是一位专业的时尚顾问，请根据以下天气信息，给出简洁精炼的穿衣建议：

日期：{fx_date}
白天天气：{text_day}
夜间天气：{text_night}
温度范围：{temp_min}°C 至 {temp_max}°C
风向：{wind_dir_day}
风力：{wind_scale_day}级
相对湿度：{humidity}%

请提供以下三点简短建议，每点不超过15字：
1. 建议穿着的衣物类型
2. 是否需要携带雨具
3. 其他注意事项

回答格式要求：
• 使用emoji表情开头
• 每条建议一行
• 总字数不超过80字
• 不要有任何多余的解释"""

FALLBACK_SUGGESTION = "无法生成合适的穿衣建议"
_DEFAULT_EMOJIS = ["👕", "☂️", "🔆"]


def build_prompt(day: ForecastDay) -> str:
    return CLOTHING_PROMPT.format(
        fx_date=day.fx_date,
        text_day=day.text_day,
        text_night=day.text_night,
        temp_min=day.temp_min,
        temp_max=day.temp_max,
        wind_dir_day=day.wind_dir_day,
        wind_scale_day=day.wind_scale_day,
        humidity=day.humidity,
    )


def starts_with_emoji(line: str) -> bool:
    return bool(line) and unicodedata.category(line[0]) == "So"


def format_suggestion(text: str) -> str:
    """Make sure every non-empty line begins with an emoji."""
    text = (text or "").strip()
    if len(text) < 10:
        return FALLBACK_SUGGESTION

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return "\n".join(
        line if starts_with_emoji(line) else f"{_DEFAULT_EMOJIS[i % len(_DEFAULT_EMOJIS)]} {line}"
        for i, line in enumerate(lines)
    )


async def get_clothing_suggestion(day: ForecastDay) -> str:
    """Ask the LLM for a short clothing suggestion for *day*.

    Raises:
        ConfigurationError: DEEPSEEK_API_KEY is not set.
        ApiError: The completion call failed or returned nothing.
    """
    if not settings.deepseek_api_key:
        raise ConfigurationError("未设置DEEPSEEK_API_KEY环境变量")

    logger.info("deepseek.suggestion.start", fx_date=day.fx_date, model=settings.deepseek_model)

    client = AsyncOpenAI(
        api_key=settings.deepseek_api_key,
        base_url=settings.deepseek_base_url,
        timeout=settings.http_timeout_sec,
    )
    try:
        response = await client.chat.completions.create(
            model=settings.deepseek_model,
            messages=[{"role": "user", "content": build_prompt(day)}],
            temperature=0.7,
            max_tokens=300,
        )
    except OpenAIError as exc:
        raise ApiError(f"获取穿衣建议失败: {exc}", "deepseek", exc) from exc

    if not response.choices or not response.choices[0].message.content:
        raise ApiError("DeepSeek返回了空的穿衣建议", "deepseek")

    suggestion = format_suggestion(response.choices[0].message.content)
    logger.info("deepseek.suggestion.done", length=len(suggestion))
    return suggestion
