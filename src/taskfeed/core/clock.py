"""时钟 -- 去重日界与截止窗口的时间基准，可注入以便测试"""

from datetime import UTC, datetime, timedelta, tzinfo
from typing import Protocol


class Clock(Protocol):
    """时间源接口"""

    def now(self) -> datetime:
        """返回带时区的当前时间"""
        ...


class SystemClock:
    """系统时钟（UTC）"""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """固定时钟，可手动推进"""

    def __init__(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> None:
        self._current = self._current + delta

    def set(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        self._current = current


def start_of_day(moment: datetime, tz: tzinfo) -> datetime:
    """moment 在 tz 中所属日历日的午夜（UTC 表示）"""
    local = moment.astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(UTC)


def local_day(moment: datetime, tz: tzinfo) -> str:
    """moment 在 tz 中的日历日（YYYY-MM-DD）"""
    return moment.astimezone(tz).date().isoformat()
