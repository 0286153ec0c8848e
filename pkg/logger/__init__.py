"""
pkg.logger - 统一的日志入口

应用启动时调用 init_logger()，之后各处通过 logger 代理对象记录日志：

    from pkg.logger import init_logger, logger

    init_logger(level="DEBUG", base_log_dir=Path("/var/log/third_party"))
    logger.info("Application started")

未调用 init_logger() 时，logger 直接转发到 loguru 的默认 logger，
第三方登录模块作为库单独使用时不会因为日志未初始化而报错。
"""

from datetime import UTC, time, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import loguru

from pkg.logger.handler import LogFormat, LoggerHandler, RetentionType, RotationType, mask_sensitive

if TYPE_CHECKING:
    from loguru import Logger

_logger_manager: "LoggerHandler | None" = None
_logger: "Logger | None" = None


class _LoggerProxy:
    """转发到当前生效的 logger，init_logger() 前后导入的引用都能拿到最新配置"""

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        return getattr(_logger if _logger is not None else loguru.logger, name)

    def __repr__(self) -> str:
        return f"<LoggerProxy initialized={_logger is not None}>"


def init_logger(
    *,
    level: str = "INFO",
    base_log_dir: Path | None = None,
    rotation: RotationType = time(0, 0, 0, tzinfo=UTC),
    retention: RetentionType = timedelta(days=30),
    compression: str | None = None,
    use_utc: bool = True,
    enqueue: bool = True,
    log_format: LogFormat | str = LogFormat.TEXT,
    write_to_file: bool = True,
    write_to_console: bool = True,
) -> "Logger":
    """
    初始化应用层 Logger，参数含义见 LoggerHandler。

    :param write_to_file: 是否写入文件
    :param write_to_console: 是否输出到控制台
    :return: 初始化后的 loguru Logger
    """
    global _logger_manager, _logger

    _logger_manager = LoggerHandler(
        level=level,
        base_log_dir=base_log_dir,
        rotation=rotation,
        retention=retention,
        compression=compression,
        use_utc=use_utc,
        enqueue=enqueue,
        log_format=LogFormat(log_format),
    )
    _logger = _logger_manager.setup(write_to_file=write_to_file, write_to_console=write_to_console)
    return _logger


def get_logger_manager() -> LoggerHandler:
    if _logger_manager is None:
        raise RuntimeError("LoggerHandler not initialized. Call init_logger() first.")
    return _logger_manager


logger: "Logger" = _LoggerProxy()  # type: ignore[assignment]

__all__ = [
    "LoggerHandler",
    "LogFormat",
    "RotationType",
    "RetentionType",
    "init_logger",
    "get_logger_manager",
    "logger",
    "mask_sensitive",
]
