"""
時間相關工具（寫入 DB 一律使用 naive UTC）
"""
from datetime import datetime, timezone
from typing import Callable, Optional
import re

# 可注入的時鐘（測試時替換為固定時間）
Clock = Callable[[], datetime]

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


def utc_now() -> datetime:
    """回傳目前 UTC 時間（naive datetime，供寫入 DB 使用）。"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_datetime(date_str: str, hhmm: str) -> Optional[datetime]:
    """
    將 YYYY-MM-DD 與 HH:MM 組合為 UTC 時間，格式錯誤時回傳 None。
    """
    date_match = _DATE_RE.match(date_str or "")
    time_match = _TIME_RE.match(hhmm or "")
    if not date_match or not time_match:
        return None
    hh, mm = int(time_match.group(1)), int(time_match.group(2))
    if hh > 23 or mm > 59:
        return None
    try:
        return datetime(
            int(date_match.group(1)), int(date_match.group(2)), int(date_match.group(3)), hh, mm
        )
    except ValueError:
        return None


def format_date(dt: Optional[datetime]) -> str:
    """YYYY-MM-DD"""
    return dt.strftime("%Y-%m-%d") if dt else ""


def format_time_range(start: datetime, end: datetime) -> str:
    """HH:MM–HH:MM"""
    return f"{start.strftime('%H:%M')}–{end.strftime('%H:%M')}"


