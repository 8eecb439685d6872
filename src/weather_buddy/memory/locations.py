"""Location directory: static city → district → {code, name} reference data."""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from weather_buddy.config import get_locations_path
from weather_buddy.models.preference import Location

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Province → prefecture-level cities
# ---------------------------------------------------------------------------

PROVINCES: dict[str, list[str]] = {
    "北京": ["北京"],
    "上海": ["上海"],
    "天津": ["天津"],
    "重庆": ["重庆"],
    "河北": ["石家庄", "唐山", "秦皇岛", "邯郸", "邢台", "保定", "张家口", "承德", "沧州", "廊坊", "衡水"],
    "山西": ["太原", "大同", "阳泉", "长治", "晋城", "朔州", "晋中", "运城", "忻州", "临汾", "吕梁"],
    "辽宁": [
        "沈阳", "大连", "鞍山", "抚顺", "本溪", "丹东", "锦州",
        "营口", "阜新", "辽阳", "盘锦", "铁岭", "朝阳", "葫芦岛",
    ],
    "吉林": ["长春", "吉林", "四平", "辽源", "通化", "白山", "松原", "白城"],
    "黑龙江": [
        "哈尔滨", "齐齐哈尔", "鸡西", "鹤岗", "双鸭山", "大庆",
        "伊春", "佳木斯", "七台河", "牡丹江", "黑河", "绥化",
    ],
    "江苏": [
        "南京", "无锡", "徐州", "常州", "苏州", "南通", "连云港",
        "淮安", "盐城", "扬州", "镇江", "泰州", "宿迁",
    ],
    "浙江": ["杭州", "宁波", "温州", "嘉兴", "湖州", "绍兴", "金华", "衢州", "舟山", "台州", "丽水"],
    "安徽": [
        "合肥", "芜湖", "蚌埠", "淮南", "马鞍山", "淮北", "铜陵", "安庆",
        "黄山", "阜阳", "宿州", "滁州", "六安", "宣城", "池州", "亳州",
    ],
    "福建": ["福州", "厦门", "莆田", "三明", "泉州", "漳州", "南平", "龙岩", "宁德"],
    "江西": ["南昌", "景德镇", "萍乡", "九江", "新余", "鹰潭", "赣州", "吉安", "宜春", "抚州", "上饶"],
    "山东": [
        "济南", "青岛", "淄博", "枣庄", "东营", "烟台", "潍坊", "济宁",
        "泰安", "威海", "日照", "临沂", "德州", "聊城", "滨州", "菏泽",
    ],
    "河南": [
        "郑州", "开封", "洛阳", "平顶山", "安阳", "鹤壁", "新乡", "焦作", "濮阳",
        "许昌", "漯河", "三门峡", "南阳", "商丘", "信阳", "周口", "驻马店", "济源",
    ],
    "湖北": ["武汉", "黄石", "十堰", "宜昌", "襄阳", "鄂州", "荆门", "孝感", "荆州", "黄冈", "咸宁", "随州"],
    "湖南": [
        "长沙", "株洲", "湘潭", "衡阳", "邵阳", "岳阳", "常德",
        "张家界", "益阳", "郴州", "永州", "怀化", "娄底",
    ],
    "广东": [
        "广州", "韶关", "深圳", "珠海", "汕头", "佛山", "江门", "湛江", "茂名", "肇庆", "惠州",
        "梅州", "汕尾", "河源", "阳江", "清远", "东莞", "中山", "潮州", "揭阳", "云浮",
    ],
    "广西": [
        "南宁", "柳州", "桂林", "梧州", "北海", "防城港", "钦州",
        "贵港", "玉林", "百色", "贺州", "河池", "来宾", "崇左",
    ],
    "海南": ["海口", "三亚", "三沙", "儋州"],
    "四川": [
        "成都", "自贡", "攀枝花", "泸州", "德阳", "绵阳", "广元", "遂宁", "内江",
        "乐山", "南充", "眉山", "宜宾", "广安", "达州", "雅安", "巴中", "资阳",
    ],
    "贵州": ["贵阳", "六盘水", "遵义", "安顺", "毕节", "铜仁"],
    "云南": ["昆明", "曲靖", "玉溪", "保山", "昭通", "丽江", "普洱", "临沧"],
    "西藏": ["拉萨", "日喀则", "昌都", "林芝", "山南", "那曲", "阿里"],
    "陕西": ["西安", "铜川", "宝鸡", "咸阳", "渭南", "延安", "汉中", "榆林", "安康", "商洛"],
    "甘肃": ["兰州", "嘉峪关", "金昌", "白银", "天水", "武威", "张掖", "平凉", "酒泉", "庆阳", "定西", "陇南"],
    "青海": ["西宁", "海东"],
    "宁夏": ["银川", "石嘴山", "吴忠", "固原", "中卫"],
    "新疆": ["乌鲁木齐", "克拉玛依", "吐鲁番", "哈密"],
    "香港": ["香港"],
    "澳门": ["澳门"],
    "台湾": ["台湾"],
}

# Municipalities match by exact name, everything else by substring.
_MUNICIPALITIES = {"北京", "上海", "天津", "重庆"}


class LocationDirectory:
    """Read-only lookup over the packaged locations JSON.

    The file is re-read on every call, so edits to it take effect without a
    restart.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else get_locations_path()

    def _load(self) -> dict[str, dict[str, dict]]:
        if not self.path.exists():
            logger.error("locations.file_missing", path=str(self.path))
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("locations.read_failed", path=str(self.path))
            return {}

    def all_cities(self) -> list[str]:
        return list(self._load().keys())

    def districts(self, city: str) -> list[str]:
        return list(self._load().get(city, {}).keys())

    def get(self, city: str, district: str) -> Location | None:
        entry = self._load().get(city, {}).get(district)
        if not entry:
            return None
        return Location(city=city, district=district, code=entry["code"], name=entry.get("name") or f"{city}{district}")

    def name_of(self, city: str, district: str) -> str | None:
        loc = self.get(city, district)
        return loc.name if loc else None

    def find_by_code(self, code: str) -> Location | None:
        for city, districts in self._load().items():
            for district, entry in districts.items():
                if entry.get("code") == code:
                    return Location(
                        city=city,
                        district=district,
                        code=code,
                        name=entry.get("name") or f"{city}{district}",
                    )
        return None

    def find_city(self, name: str) -> str | None:
        """Exact city match first, then the first city whose name contains *name*."""
        cities = self.all_cities()
        if name in cities:
            return name
        return next((c for c in cities if name in c), None)

    def province_cities(self, province: str) -> list[str]:
        """Directory cities belonging to *province* (see PROVINCES)."""
        cities = self.all_cities()
        if province in _MUNICIPALITIES:
            return [c for c in cities if c == province]
        members = PROVINCES.get(province, [])
        return [c for c in cities if any(m in c for m in members)]


def match_province(name: str) -> str | None:
    """Resolve a user-typed province name (exact, then fuzzy either way)."""
    if name in PROVINCES:
        return name
    return next((p for p in PROVINCES if p in name or name in p), None)
