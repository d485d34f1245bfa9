"""Static catalogue of supported hot-search sources."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class Source(str, Enum):
    """Upstream platforms the engine knows how to query."""

    # 视频/社区
    BILIBILI = "Bilibili"
    ACFUN = "Acfun"
    WEIBO = "Weibo"
    ZHIHU = "Zhihu"
    ZHIHU_DAILY = "ZhihuDaily"
    DOUYIN = "Douyin"
    KUAISHOU = "Kuaishou"
    DOUBAN_MOVIE = "DoubanMovie"
    DOUBAN_GROUP = "DoubanGroup"
    TIEBA = "Tieba"
    HUPU = "Hupu"
    NGABBS = "Ngabbs"
    V2EX = "V2ex"
    POJIE_52 = "_52pojie"
    HOSTLOC = "Hostloc"
    COOLAPK = "Coolapk"

    # 新闻/资讯
    BAIDU = "Baidu"
    THE_PAPER = "ThePaper"
    TOUTIAO = "Toutiao"
    QQ_NEWS = "QqNews"
    SINA = "Sina"
    SINA_NEWS = "SinaNews"
    NETEASE_NEWS = "NeteaseNews"
    HUXIU = "Huxiu"
    IFANR = "Ifanr"

    # 技术/IT
    SSPAI = "Sspai"
    ITHOME = "ITHome"
    ITHOME_XIJIAYI = "ITHomeXijiayi"
    JUEJIN = "Juejin"
    JIANSHU = "Jianshu"
    GUOKR = "Guokr"
    KR_36 = "_36Kr"
    CTO_51 = "_51Cto"
    CSDN = "Csdn"
    NODESEEK = "Nodeseek"
    HELLO_GITHUB = "HelloGithub"

    # 游戏
    LOL = "Lol"
    GENSHIN = "Genshin"
    HONKAI = "Honkai"
    STARRAIL = "Starrail"

    # 其他
    WEREAD = "Weread"
    WEATHER_ALARM = "WeatherAlarm"
    EARTHQUAKE = "Earthquake"
    HISTORY = "History"

    def __str__(self) -> str:
        return self.value


# Upstream ``type`` query parameter per source.
SOURCE_QUERY_MAP: dict[Source, str] = {
    Source.BILIBILI: "bilibili",
    Source.ACFUN: "acfun",
    Source.WEIBO: "weibo",
    Source.ZHIHU: "zhihu",
    Source.ZHIHU_DAILY: "zhihu-daily",
    Source.DOUYIN: "douyin",
    Source.KUAISHOU: "kuaishou",
    Source.DOUBAN_MOVIE: "douban-movie",
    Source.DOUBAN_GROUP: "douban-group",
    Source.TIEBA: "tieba",
    Source.HUPU: "hupu",
    Source.NGABBS: "ngabbs",
    Source.V2EX: "v2ex",
    Source.POJIE_52: "52pojie",
    Source.HOSTLOC: "hostloc",
    Source.COOLAPK: "coolapk",
    Source.BAIDU: "baidu",
    Source.THE_PAPER: "thepaper",
    Source.TOUTIAO: "toutiao",
    Source.QQ_NEWS: "qq-news",
    Source.SINA: "sina",
    Source.SINA_NEWS: "sina-news",
    Source.NETEASE_NEWS: "netease-news",
    Source.HUXIU: "huxiu",
    Source.IFANR: "ifanr",
    Source.SSPAI: "sspai",
    Source.ITHOME: "ithome",
    Source.ITHOME_XIJIAYI: "ithome-xijiayi",
    Source.JUEJIN: "juejin",
    Source.JIANSHU: "jianshu",
    Source.GUOKR: "guokr",
    Source.KR_36: "36kr",
    Source.CTO_51: "51cto",
    Source.CSDN: "csdn",
    Source.NODESEEK: "nodeseek",
    Source.HELLO_GITHUB: "hellogithub",
    Source.LOL: "lol",
    Source.GENSHIN: "genshin",
    Source.HONKAI: "honkai",
    Source.STARRAIL: "starrail",
    Source.WEREAD: "weread",
    Source.WEATHER_ALARM: "weatheralarm",
    Source.EARTHQUAKE: "earthquake",
    Source.HISTORY: "history",
}

SOURCE_CATEGORIES: dict[str, tuple[Source, ...]] = {
    "视频/社区": (
        Source.BILIBILI,
        Source.ACFUN,
        Source.WEIBO,
        Source.ZHIHU,
        Source.ZHIHU_DAILY,
        Source.DOUYIN,
        Source.KUAISHOU,
        Source.DOUBAN_MOVIE,
        Source.DOUBAN_GROUP,
        Source.TIEBA,
        Source.HUPU,
        Source.NGABBS,
        Source.V2EX,
        Source.POJIE_52,
        Source.HOSTLOC,
        Source.COOLAPK,
    ),
    "新闻/资讯": (
        Source.BAIDU,
        Source.THE_PAPER,
        Source.TOUTIAO,
        Source.QQ_NEWS,
        Source.SINA,
        Source.SINA_NEWS,
        Source.NETEASE_NEWS,
        Source.HUXIU,
        Source.IFANR,
    ),
    "技术/IT": (
        Source.SSPAI,
        Source.ITHOME,
        Source.ITHOME_XIJIAYI,
        Source.JUEJIN,
        Source.JIANSHU,
        Source.GUOKR,
        Source.KR_36,
        Source.CTO_51,
        Source.CSDN,
        Source.NODESEEK,
        Source.HELLO_GITHUB,
    ),
    "游戏": (Source.LOL, Source.GENSHIN, Source.HONKAI, Source.STARRAIL),
    "其他": (Source.WEREAD, Source.WEATHER_ALARM, Source.EARTHQUAKE, Source.HISTORY),
}

SOURCE_LABELS: dict[Source, str] = {
    Source.BILIBILI: "Bilibili",
    Source.ACFUN: "AcFun",
    Source.WEIBO: "微博",
    Source.ZHIHU: "知乎",
    Source.ZHIHU_DAILY: "知乎日报",
    Source.DOUYIN: "抖音",
    Source.KUAISHOU: "快手",
    Source.DOUBAN_MOVIE: "豆瓣电影",
    Source.DOUBAN_GROUP: "豆瓣小组",
    Source.TIEBA: "贴吧",
    Source.HUPU: "虎扑",
    Source.NGABBS: "NGA",
    Source.V2EX: "V2EX",
    Source.POJIE_52: "吾爱破解",
    Source.HOSTLOC: "Hostloc",
    Source.COOLAPK: "酷安",
    Source.BAIDU: "百度",
    Source.THE_PAPER: "澎湃",
    Source.TOUTIAO: "头条",
    Source.QQ_NEWS: "腾讯新闻",
    Source.SINA: "新浪热搜",
    Source.SINA_NEWS: "新浪新闻",
    Source.NETEASE_NEWS: "网易新闻",
    Source.HUXIU: "虎嗅",
    Source.IFANR: "爱范儿",
    Source.SSPAI: "少数派",
    Source.ITHOME: "IT之家",
    Source.ITHOME_XIJIAYI: "IT之家喜加一",
    Source.JUEJIN: "掘金",
    Source.JIANSHU: "简书",
    Source.GUOKR: "果壳",
    Source.KR_36: "36氪",
    Source.CTO_51: "51CTO",
    Source.CSDN: "CSDN",
    Source.NODESEEK: "NodeSeek",
    Source.HELLO_GITHUB: "HelloGitHub",
    Source.LOL: "英雄联盟",
    Source.GENSHIN: "原神",
    Source.HONKAI: "崩坏3",
    Source.STARRAIL: "星穹铁道",
    Source.WEREAD: "微信读书",
    Source.WEATHER_ALARM: "天气预警",
    Source.EARTHQUAKE: "地震速报",
    Source.HISTORY: "历史上的今天",
}


def parse_source(name: str | Source | None) -> Source | None:
    """Resolve a user supplied name to a ``Source``; ``None`` when unknown."""

    if isinstance(name, Source):
        return name
    if not name:
        return None
    text = str(name).strip()
    try:
        return Source(text)
    except ValueError:
        pass
    lowered = text.lower()
    for source in Source:
        if source.value.lower() == lowered or source.name.lower() == lowered:
            return source
    return None


def parse_source_list(names: Iterable[str | Source]) -> list[Source]:
    """Expand comma separated names, dropping unknown entries and duplicates."""

    resolved: list[Source] = []
    for raw in names:
        parts = [raw] if isinstance(raw, Source) else str(raw).split(",")
        for part in parts:
            source = parse_source(part)
            if source is not None and source not in resolved:
                resolved.append(source)
    return resolved


def category_of(source: Source) -> str | None:
    for category, members in SOURCE_CATEGORIES.items():
        if source in members:
            return category
    return None


__all__ = [
    "SOURCE_CATEGORIES",
    "SOURCE_LABELS",
    "SOURCE_QUERY_MAP",
    "Source",
    "category_of",
    "parse_source",
    "parse_source_list",
]
