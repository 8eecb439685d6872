"""Inbound text command dispatch.

Every command produces an HTML card (see ``render.command_card``). ``handle``
never raises: bad input and store errors come back as warning/error cards.
"""

from __future__ import annotations

import re

import structlog
from markupsafe import escape

from weather_buddy.errors import ValidationError
from weather_buddy.memory.locations import PROVINCES, LocationDirectory, match_province
from weather_buddy.memory.user_preferences import JsonPreferenceStore, PreferenceRepository
from weather_buddy.models.reply import CommandReply
from weather_buddy.render.command_card import format_command_response

logger = structlog.get_logger()

HOT_CITIES = [
    "北京", "上海", "广州", "深圳", "南京", "杭州", "重庆", "成都",
    "武汉", "西安", "苏州", "天津", "长沙", "郑州", "青岛",
]

_SET_LOCATION = re.compile(r"^设置地区[：:]\s*(.+?)\s+(.+)$")
_CITY_DETAIL = re.compile(r"^查看城市详情[：:]\s*(.+)$")
_PROVINCE_DETAIL = re.compile(r"^查看城市[：:]\s*(.+)$")
_SET_PUSH_TIME = re.compile(r"^设置推送时间[：:]\s*(\d{1,2}:\d{2})$")

_PUSH_TIME_EXAMPLE = "例如：`设置推送时间：8:30` 或 `设置推送时间：20:00`"

# ---------------------------------------------------------------------------
# Card styles
# ---------------------------------------------------------------------------

_GRID_CSS = """
    .city-grid, .district-grid {
      display: grid;
      grid-template-columns: repeat(3, 1fr);
      gap: 10px;
      margin: 15px 0;
    }
    .city-item {
      background-color: #f0f8ff;
      border: 1px solid #d0e6ff;
      border-radius: 8px;
      padding: 10px;
      text-align: center;
      font-weight: bold;
      color: #2c3e50;
    }
    .district-item {
      background-color: #f5f5f5;
      border: 1px solid #e0e0e0;
      border-radius: 6px;
      padding: 8px;
      text-align: center;
      color: #333;
    }
    .city-tips {
      background-color: #f9f9f9;
      border-radius: 8px;
      padding: 12px 15px;
      margin-top: 15px;
      font-size: 14px;
    }
    .city-tips p { margin: 8px 0; }
    .usage-tip {
      background-color: #f0f8ff;
      border-left: 3px solid #3498db;
      padding: 10px 15px;
      margin-top: 15px;
      font-size: 14px;
    }
"""

_HELP_CSS = """
    .cmd-group {
      display: flex;
      flex-wrap: wrap;
      align-items: center;
      margin-bottom: 10px;
      padding-bottom: 8px;
      border-bottom: 1px solid #eee;
    }
    .group-icon { font-size: 15px; margin-right: 4px; }
    .group-title { font-weight: bold; margin-right: 8px; font-size: 14px; min-width: 55px; }
    .location .group-title { color: #3498db; }
    .time .group-title { color: #e67e22; }
    .other .group-title { color: #27ae60; }
    .group-items { display: flex; flex-wrap: wrap; flex: 1; gap: 2px; }
    .cmd-tag {
      background: #f5f7fa;
      border-radius: 4px;
      padding: 3px 6px;
      margin: 2px;
      font-size: 12px;
      white-space: nowrap;
      border-left: 2px solid;
    }
    .location .cmd-tag { border-left-color: #3498db; }
    .time .cmd-tag { border-left-color: #e67e22; }
    .other .cmd-tag { border-left-color: #27ae60; }
    .param { color: #e74c3c; font-style: italic; }
    .examples { background: #f8f9fa; border-radius: 6px; padding: 8px; font-size: 11px; }
    .example-title { font-weight: bold; margin-bottom: 5px; color: #7f8c8d; }
    .example-row { display: flex; margin-bottom: 4px; align-items: center; }
    .example-cmd {
      background: #f0f0f0;
      padding: 2px 5px;
      border-radius: 3px;
      margin-right: 6px;
      font-family: monospace;
    }
    .example-desc { color: #7f8c8d; }
"""

_HELP_GROUPS = [
    ("location", "📍", "地区相关", [
        "地区列表",
        '查看城市：<span class="param">省份名</span>',
        '查看城市详情：<span class="param">城市名</span>',
        '设置地区：<span class="param">城市 区县</span>',
        "当前地区",
    ]),
    ("time", "⏰", "推送时间", [
        "查看推送时间",
        '设置推送时间：<span class="param">HH:mm</span>',
    ]),
    ("other", "ℹ️", "其他命令", ["帮助"]),
]

_HELP_EXAMPLES = [
    ("查看城市：江苏", "列出江苏省的所有城市"),
    ("查看城市详情：南京", "查看南京市的所有区县"),
    ("设置地区：南京 江宁", "将地区设为南京江宁"),
    ("设置推送时间：8:30", "设置每天8:30推送天气"),
]


def _grid(css_class: str, items: list[str]) -> str:
    cells = "".join(f'<div class="{css_class}-item">{escape(item)}</div>' for item in items)
    return f'<div class="{css_class}-grid">{cells}</div>'


def _format_error(usage: str, example: str) -> str:
    return format_command_response(
        "格式错误",
        f"格式错误！\n\n请使用以下格式：\n`{usage}`\n\n例如：`{example}`",
        "⚠️",
        "warning",
    )


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def handle_set_location(message: str, uid: str, store: PreferenceRepository, directory: LocationDirectory) -> str:
    match = _SET_LOCATION.match(message)
    if not match:
        return _format_error("设置地区：城市 区县", "设置地区：北京 朝阳")

    city = re.sub(r"市$", "", match.group(1).strip())
    district = re.sub(r"[区县]$", "", match.group(2).strip())
    logger.debug("commands.set_location.parsed", uid=uid, city=city, district=district)

    location = directory.get(city, district)
    if location is None:
        suggestions = "、".join(directory.all_cities()[:10])
        content = (
            f"未找到 **{escape(city)}{escape(district)}**\n\n"
            "请检查城市和区县名称是否正确。\n\n"
            f"**热门城市**：\n{suggestions}\n\n"
            "更多城市请使用`地区列表`命令查看"
        )
        return format_command_response("地区未找到", content, "🔍", "warning")

    try:
        store.set_location(uid, location.code)
    except Exception as exc:
        logger.exception("commands.set_location.failed", uid=uid, code=location.code)
        content = f"设置地区失败：{escape(str(exc))}\n\n请稍后重试，或检查地区名称是否正确。"
        return format_command_response("设置失败", content, "❌", "error")

    content = f"您的地区已成功设置为 **{escape(city)}{escape(district)}**\n\n系统将根据此地区为您提供天气预报服务。"
    return format_command_response("地区设置成功", content, "✅", "success")


def handle_list_locations(directory: LocationDirectory) -> str:
    cities = directory.all_cities()
    hot = [c for c in HOT_CITIES if c in cities]
    tips = (
        '<div class="city-tips">'
        "<p>如需查看更多城市，请发送以下命令：</p>"
        "<p><code>查看城市：省份名</code>（例如：<code>查看城市：江苏</code>）</p>"
        "<p><code>查看城市详情：城市名</code>（例如：<code>查看城市详情：南京</code>）</p>"
        "<p>设置地区的格式为：<code>设置地区：城市 区县</code></p>"
        "<p>例如：<code>设置地区：南京 江宁</code></p>"
        "</div>"
    )
    content = f"以下是热门城市列表：\n\n{_grid('city', hot)}{tips}"
    return format_command_response("热门城市列表", content, "🏙️", "info", _GRID_CSS)


def handle_city_detail(name: str, directory: LocationDirectory) -> str:
    city = directory.find_city(name)
    if city is None:
        content = f'未找到城市"{escape(name)}"。\n\n请检查城市名称是否正确，或使用`地区列表`查看所有支持的城市。'
        return format_command_response("城市未找到", content, "🔍", "warning")

    tip = f'<div class="usage-tip">设置此地区请使用：<code>设置地区：{escape(city)} 区县名</code></div>'
    content = f"{escape(city)}的区县列表：\n\n{_grid('district', directory.districts(city))}{tip}"
    return format_command_response(f"{city}区县列表", content, "🏙️", "info", _GRID_CSS)


def handle_province_detail(name: str, directory: LocationDirectory) -> str:
    province = match_province(name)
    if province is None:
        content = (
            f'未找到省份"{escape(name)}"。\n\n'
            f"支持的省份有：\n{'、'.join(PROVINCES)}\n\n"
            "请检查省份名称是否正确。"
        )
        return format_command_response("省份未找到", content, "🔍", "warning")

    cities = directory.province_cities(province)
    if not cities:
        content = f"未找到{province}的城市数据。\n\n请尝试查看其他省份，或使用`地区列表`查看所有支持的城市。"
        return format_command_response("数据未找到", content, "🔍", "warning")

    tip = (
        '<div class="usage-tip">要查看特定城市的区县列表，请发送：<code>查看城市详情：城市名</code>'
        f"<br>例如：<code>查看城市详情：{escape(cities[0])}</code></div>"
    )
    content = f"{province}的城市列表：\n\n{_grid('city', cities)}{tip}"
    return format_command_response(f"{province}城市列表", content, "🏙️", "info", _GRID_CSS)


def handle_current_location(uid: str, store: PreferenceRepository) -> str:
    location = store.get(uid).location
    content = (
        f"您当前设置的地区是：**{escape(location.name)}**\n\n"
        "如需修改，请使用`设置地区：城市 区县`命令\n"
        "例如：`设置地区：北京 朝阳`"
    )
    return format_command_response("当前地区信息", content, "📍", "info")


def handle_set_push_time(message: str, uid: str, store: PreferenceRepository) -> str:
    match = _SET_PUSH_TIME.match(message)
    if not match:
        return _format_error("设置推送时间：小时:分钟", "设置推送时间：8:30")

    try:
        push_time = store.set_push_time(uid, match.group(1))
    except ValidationError:
        content = (
            "设置推送时间失败，时间格式不正确。\n\n"
            "请使用时间格式：小时:分钟，例如：8:30、9:50、20:00\n"
            "小时范围：0-23，分钟范围：00-59。"
        )
        return format_command_response("设置失败", content, "❌", "error")
    except Exception as exc:
        logger.exception("commands.set_push_time.failed", uid=uid)
        content = f"设置推送时间失败：{escape(str(exc))}\n\n请检查时间格式是否正确（HH:mm），例如：20:00"
        return format_command_response("设置失败", content, "❌", "error")

    content = f"您的天气推送时间已成功设置为 **{push_time}**\n\n系统将在每天的这个时间为您推送天气预报。"
    return format_command_response("推送时间已设置", content, "⏰", "success")


def handle_get_push_time(uid: str, store: PreferenceRepository) -> str:
    push_time = store.get(uid).push_time
    content = (
        f"您当前的天气推送时间设置为：**{push_time}**\n\n"
        "系统将在每天的这个时间为您推送天气预报。\n\n"
        f"如需修改，请使用`设置推送时间：小时:分钟`命令\n{_PUSH_TIME_EXAMPLE}"
    )
    return format_command_response("推送时间信息", content, "⏰", "info")


def handle_help() -> str:
    groups = "".join(
        f'<div class="cmd-group {css}"><span class="group-icon">{icon}</span>'
        f'<span class="group-title">{title}</span><div class="group-items">'
        + "".join(f'<div class="cmd-tag">{tag}</div>' for tag in tags)
        + "</div></div>"
        for css, icon, title, tags in _HELP_GROUPS
    )
    examples = "".join(
        f'<div class="example-row"><span class="example-cmd">{cmd}</span>'
        f'<span class="example-desc">{desc}</span></div>'
        for cmd, desc in _HELP_EXAMPLES
    )
    content = f'{groups}<div class="examples"><div class="example-title">使用示例：</div>{examples}</div>'
    return format_command_response("使用帮助", content, "📖", "info", _HELP_CSS)


def handle_unknown() -> str:
    content = "抱歉，我无法理解您的命令。\n\n请发送`帮助`查看支持的命令列表。"
    return format_command_response("未识别的命令", content, "❓", "warning")


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def reply_title(message: str) -> str:
    """Push summary used when sending the reply to *message*."""
    if message == "帮助":
        return "使用帮助"
    if message.startswith("查看城市详情"):
        return "城市区县列表"
    if message.startswith("查看城市"):
        return "省份城市列表"
    if message == "地区列表":
        return "热门城市列表"
    if message.startswith("设置地区"):
        return "地区设置结果"
    if message == "当前地区":
        return "当前地区信息"
    if message == "查看推送时间":
        return "推送时间信息"
    if message.startswith("设置推送时间"):
        return "推送时间设置结果"
    return "消息回复"


def _dispatch(message: str, uid: str, store: PreferenceRepository, directory: LocationDirectory) -> str:
    if message.startswith("设置地区"):
        return handle_set_location(message, uid, store, directory)
    if message == "地区列表":
        return handle_list_locations(directory)
    if message.startswith("查看城市详情"):
        match = _CITY_DETAIL.match(message)
        if not match:
            return _format_error("查看城市详情：城市名", "查看城市详情：南京")
        return handle_city_detail(match.group(1).strip(), directory)
    if message.startswith("查看城市"):
        match = _PROVINCE_DETAIL.match(message)
        if not match:
            return _format_error("查看城市：省份名", "查看城市：江苏")
        return handle_province_detail(match.group(1).strip(), directory)
    if message == "当前地区":
        return handle_current_location(uid, store)
    if message.startswith("设置推送时间"):
        return handle_set_push_time(message, uid, store)
    if message == "查看推送时间":
        return handle_get_push_time(uid, store)
    if message == "帮助":
        return handle_help()
    return handle_unknown()


def handle(
    message: str,
    uid: str,
    store: PreferenceRepository | None = None,
    directory: LocationDirectory | None = None,
) -> CommandReply:
    """Run the command in *message* for *uid* and build the reply card."""
    message = (message or "").strip()
    directory = directory or LocationDirectory()
    store = store or JsonPreferenceStore(directory=directory)
    logger.info("commands.received", uid=uid, message=message)

    try:
        content = _dispatch(message, uid, store, directory)
    except Exception as exc:
        logger.exception("commands.failed", uid=uid, message=message)
        content = format_command_response(
            "处理失败", f"处理命令时出错：{escape(str(exc))}\n\n请稍后重试。", "❌", "error"
        )
    return CommandReply(content=content, is_html=True, title=reply_title(message))


# ---------------------------------------------------------------------------
# Conversational fallbacks
# ---------------------------------------------------------------------------

GREETINGS = {"你好", "hello", "hi", "嗨", "您好", "早上好", "下午好", "晚上好"}
GREETING_TEXT = '您好！我是天气助手，可以为您提供实时天气信息和穿衣建议。\n发送"帮助"查看我能做什么。'
HINT_TEXT = '发送"帮助"即可获取使用说明。'

INTENT_GREETING = "greeting"
INTENT_PUSH = "push"
INTENT_HINT = "hint"


def chat_intent(message: str) -> str | None:
    """Classify small talk that bypasses the command table, or None."""
    message = (message or "").strip()
    if message == "推送测试":
        return INTENT_PUSH
    if message.lower() in GREETINGS:
        return INTENT_GREETING
    if "天气" in message or "气温" in message or message == "查询":
        return INTENT_PUSH
    if message in ("?", "？") or "怎么用" in message or "如何使用" in message:
        return INTENT_HINT
    return None


def chat_reply(intent: str) -> CommandReply:
    """Plain-text reply for the greeting and hint intents."""
    if intent == INTENT_GREETING:
        return CommandReply(content=GREETING_TEXT, is_html=False, title="天气助手问候")
    return CommandReply(content=HINT_TEXT, is_html=False, title="使用帮助提示")
