"""structlog 配置模块

dev 模式：彩色控制台输出
json 模式：每行一个 JSON 对象，便于容器日志采集
web3 / httpx / uvicorn 的标准库日志经 ProcessorFormatter 走同一渲染器。
"""

import logging
import os

import structlog

# 第三方库默认日志过于冗长，只保留 WARNING 以上
_NOISY_LOGGERS = ("httpx", "httpcore", "web3.providers", "web3.manager", "uvicorn.access")


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "json" 或 "dev"，None 时读取 ZKPULL_LOG_FORMAT（默认 dev）
        log_level: 日志级别，None 时读取 ZKPULL_LOG_LEVEL（默认 INFO）
    """
    log_format = log_format or os.environ.get("ZKPULL_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("ZKPULL_LOG_LEVEL", "INFO")
    as_json = log_format == "json"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if as_json:
        shared_processors.append(structlog.processors.format_exc_info)

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if as_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
