import datetime

# 中国标准时间（无夏令时），支付宝等国内开放平台要求的时间戳时区
CST = datetime.timezone(datetime.timedelta(hours=8), name="CST")


def utc_timestamp() -> int:
    """当前 UTC 秒级时间戳"""
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def utc_timestamp_ms() -> int:
    """当前 UTC 毫秒级时间戳"""
    return int(datetime.datetime.now(datetime.UTC).timestamp() * 1000)


def utc_date_string(timestamp: int) -> str:
    """把秒级时间戳转换为 UTC 日期字符串 YYYY-MM-DD"""
    return datetime.datetime.fromtimestamp(timestamp, tz=datetime.UTC).strftime("%Y-%m-%d")


def cst_now_string(fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """当前北京时间的格式化字符串"""
    return datetime.datetime.now(CST).strftime(fmt)
