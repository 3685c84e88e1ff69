"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
标准库 logging（uvicorn、aiosqlite）通过 ProcessorFormatter 使用同一渲染器。
"""

import logging
import os

import structlog


def setup_logging() -> None:
    """初始化 structlog 配置

    环境变量:
        TASKFEED_LOG_FORMAT: "json" 结构化输出 / "dev"（默认）可读输出
        TASKFEED_LOG_LEVEL: 日志级别（默认 INFO）
    """
    log_format = os.environ.get("TASKFEED_LOG_FORMAT", "dev")
    log_level = os.environ.get("TASKFEED_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # aiosqlite 的 DEBUG 日志逐条打印 SQL
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
