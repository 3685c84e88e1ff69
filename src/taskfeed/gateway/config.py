"""GatewayConfig -- Gateway 运行时配置加载

从环境变量加载配置，非法数值记录告警后回退到默认值，不阻塞启动。
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

DEFAULT_REMINDER_INTERVAL_S = 3600


class GatewayConfig(BaseModel):
    """Gateway 配置 -- 从环境变量加载

    环境变量:
        TASKFEED_REMINDER_INTERVAL_S: 提醒扫描间隔（秒，默认 3600，0 表示关闭后台扫描）
    """

    reminder_interval_s: int = Field(
        default=DEFAULT_REMINDER_INTERVAL_S,
        ge=0,
        description="提醒扫描间隔（秒），0 关闭后台循环",
    )

    @property
    def reminders_enabled(self) -> bool:
        return self.reminder_interval_s > 0


def load_gateway_config() -> GatewayConfig:
    """从环境变量加载 Gateway 配置

    环境变量映射:
        TASKFEED_REMINDER_INTERVAL_S -> reminder_interval_s (默认 3600)

    Returns:
        GatewayConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKFEED_REMINDER_INTERVAL_S"):
        try:
            interval = int(val)
            if interval < 0:
                raise ValueError(val)
            kwargs["reminder_interval_s"] = interval
        except ValueError:
            log.warning(
                "invalid_reminder_interval_config",
                env_var="TASKFEED_REMINDER_INTERVAL_S",
                value=val,
                fallback=DEFAULT_REMINDER_INTERVAL_S,
            )

    return GatewayConfig(**kwargs)
