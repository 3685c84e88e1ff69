"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、提醒时区、分页与历史查询默认值等可配置常量。
"""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKFEED_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKFEED_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskfeed.db"),
    )


def get_timezone() -> ZoneInfo:
    """获取提醒去重的"本地"时区（按天去重以该时区的午夜为界）"""
    name = os.environ.get("TASKFEED_TIMEZONE", "UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("invalid_timezone_config", env_var="TASKFEED_TIMEZONE", value=name)
        return ZoneInfo("UTC")


def _int_env(name: str, default: int) -> int:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        log.warning("invalid_int_config", env_var=name, value=val, fallback=default)
        return default


# 历史查询默认条数
DEFAULT_HISTORY_LIMIT: int = _int_env("TASKFEED_HISTORY_LIMIT", 50)

# 通知列表默认每页条数
DEFAULT_PAGE_LIMIT: int = _int_env("TASKFEED_PAGE_LIMIT", 20)

# 通知列表每页上限
MAX_PAGE_LIMIT: int = 100

# 截止提醒窗口（小时）：deadline 落在 [now, now+24h] 内
REMINDER_WINDOW_HOURS: int = 24

# 通知标题/正文长度上限
TITLE_MAX_LENGTH: int = 200
MESSAGE_MAX_LENGTH: int = 1000
