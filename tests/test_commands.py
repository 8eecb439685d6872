import pytest

from weather_buddy.commands import handler
from weather_buddy.commands.handler import INTENT_GREETING, INTENT_HINT, INTENT_PUSH, chat_intent, handle


def test_set_location_stores_code(store, directory):
    reply = handle("设置地区：北京 朝阳", "u1", store, directory)

    assert reply.is_html
    assert reply.title == "地区设置结果"
    assert "地区设置成功" in reply.content
    assert store.get("u1").location.code == "101010900"


def test_set_location_strips_suffixes(store, directory):
    handle("设置地区:南京市 浦口区", "u1", store, directory)

    assert store.get("u1").location.code == "101190107"


def test_set_location_unknown_place(store, directory):
    reply = handle("设置地区：北京 火星", "u1", store, directory)

    assert "地区未找到" in reply.content
    assert "北京、南京、苏州" in reply.content
    assert store.get("u1").location.code == "101190104"


def test_set_location_bad_format(store, directory):
    reply = handle("设置地区北京", "u1", store, directory)

    assert "格式错误" in reply.content


def test_set_location_store_failure_is_error_card(store, directory, monkeypatch):
    def boom(uid, code):
        raise OSError("disk full")

    monkeypatch.setattr(store, "set_location", boom)

    reply = handle("设置地区：北京 朝阳", "u1", store, directory)

    assert "设置失败" in reply.content
    assert "disk full" in reply.content


def test_set_and_get_push_time(store, directory):
    reply = handle("设置推送时间：8:30", "u1", store, directory)

    assert "推送时间已设置" in reply.content
    assert reply.title == "推送时间设置结果"
    assert store.get("u1").push_time == "08:30"

    reply = handle("查看推送时间", "u1", store, directory)
    assert "08:30" in reply.content
    assert reply.title == "推送时间信息"


def test_set_push_time_out_of_range(store, directory):
    reply = handle("设置推送时间：25:00", "u1", store, directory)

    assert "设置失败" in reply.content
    assert store.get("u1").push_time == "20:00"


def test_set_push_time_bad_format(store, directory):
    assert "格式错误" in handle("设置推送时间：八点", "u1", store, directory).content


def test_set_push_time_with_unreadable_store(store, directory, prefs_path):
    prefs_path.parent.mkdir(parents=True, exist_ok=True)
    prefs_path.write_text('{"users": {"u2": ', encoding="utf-8")

    reply = handle("设置推送时间：8:30", "u1", store, directory)

    assert "设置失败" in reply.content
    assert prefs_path.read_text(encoding="utf-8") == '{"users": {"u2": '


def test_current_location(store, directory):
    store.set_location("u1", "101190107")

    reply = handle("当前地区", "u1", store, directory)

    assert "南京浦口" in reply.content
    assert reply.title == "当前地区信息"


def test_list_locations_shows_known_hot_cities(store, directory):
    reply = handle("地区列表", "u1", store, directory)

    assert '<div class="city-item">南京</div>' in reply.content
    assert '<div class="city-item">上海</div>' not in reply.content
    assert reply.title == "热门城市列表"


def test_city_detail(store, directory):
    reply = handle("查看城市详情：南京", "u1", store, directory)

    assert "南京区县列表" in reply.content
    assert '<div class="district-item">江宁</div>' in reply.content
    assert reply.title == "城市区县列表"
    assert "城市未找到" in handle("查看城市详情：拉萨", "u1", store, directory).content


def test_province_detail(store, directory):
    reply = handle("查看城市：江苏", "u1", store, directory)

    assert "江苏城市列表" in reply.content
    assert '<div class="city-item">苏州</div>' in reply.content
    assert reply.title == "省份城市列表"
    assert "省份未找到" in handle("查看城市：火星", "u1", store, directory).content
    assert "数据未找到" in handle("查看城市：广东", "u1", store, directory).content


def test_help(store, directory):
    reply = handle("帮助", "u1", store, directory)

    assert "使用帮助" in reply.content
    assert "设置推送时间：" in reply.content
    assert reply.title == "使用帮助"


def test_unknown_command_never_raises(store, directory):
    reply = handle("随便说点什么", "u1", store, directory)

    assert reply.is_html
    assert "未识别的命令" in reply.content
    assert reply.title == "消息回复"


def test_user_text_is_escaped(store, directory):
    reply = handle("查看城市详情：<script>", "u1", store, directory)

    assert "<script>" not in reply.content
    assert "&lt;script&gt;" in reply.content


@pytest.mark.parametrize(
    "message, intent",
    [
        ("你好", INTENT_GREETING),
        ("Hello", INTENT_GREETING),
        ("推送测试", INTENT_PUSH),
        ("明天天气怎么样", INTENT_PUSH),
        ("查询", INTENT_PUSH),
        ("？", INTENT_HINT),
        ("这个怎么用", INTENT_HINT),
        ("设置地区：北京 朝阳", None),
        ("帮助", None),
    ],
)
def test_chat_intent(message, intent):
    assert chat_intent(message) == intent


def test_chat_replies_are_plain_text():
    greeting = handler.chat_reply(INTENT_GREETING)
    hint = handler.chat_reply(INTENT_HINT)

    assert not greeting.is_html
    assert greeting.content.startswith("您好！我是天气助手")
    assert hint.content == '发送"帮助"即可获取使用说明。'
