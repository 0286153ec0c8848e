import sys
from collections.abc import Mapping
from datetime import UTC, datetime, time, timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any

import loguru

from pkg.toolkit import context
from pkg.toolkit.json import orjson_dumps

_DEFAULT_BASE_LOG_DIR = Path("/tmp/third_party_auth_logs")

RotationType = str | int | time | timedelta
RetentionType = str | int | timedelta

# json_content 中需要脱敏的字段（token、密钥、授权码、签名）
SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "auth_token",
        "code",
        "auth_code",
        "tmp_auth_code",
        "secret",
        "client_secret",
        "secret_key",
        "private_key",
        "sign",
        "signature",
        "UserAccessToken",
        "UserRefreshToken",
        "TmpSecretKey",
        "Token",
    }
)
MASK = "******"


class LogFormat(StrEnum):
    """日志格式枚举"""

    JSON = "json"
    TEXT = "text"


def mask_sensitive(data: Any) -> Any:
    """递归替换敏感字段的值"""
    if isinstance(data, Mapping):
        return {k: MASK if k in SENSITIVE_KEYS and v else mask_sensitive(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [mask_sensitive(v) for v in data]
    return data


class LoggerHandler:
    """
    基于 loguru 的日志管理器

    - 控制台 / 文件两种输出，文本或 JSON Lines 格式
    - 每条日志带上当前请求的 trace_id
    - bind(json_content=...) 附带的结构化数据会先脱敏再输出
    """

    NAMESPACE: str = "third_party"

    def __init__(
        self,
        *,
        level: str = "INFO",
        base_log_dir: Path | None = None,
        rotation: RotationType = time(0, 0, 0, tzinfo=UTC),
        retention: RetentionType = timedelta(days=30),
        compression: str | None = None,
        use_utc: bool = True,
        enqueue: bool = True,
        log_format: LogFormat = LogFormat.TEXT,
    ):
        """
        :param level: 日志等级
        :param base_log_dir: 日志文件目录
        :param rotation: 文件轮转策略，默认每天 00:00 (UTC)
        :param retention: 文件保留时长
        :param compression: 压缩格式 (e.g., "zip")
        :param use_utc: 日志时间是否使用 UTC
        :param enqueue: 是否通过队列异步写入
        :param log_format: 日志格式
        """
        self._logger = loguru.logger
        self._is_initialized = False

        self.level = level
        self.base_log_dir = base_log_dir or _DEFAULT_BASE_LOG_DIR
        self.rotation = rotation
        self.retention = retention
        self.compression = compression
        self.use_utc = use_utc
        self.enqueue = enqueue
        self.log_format = LogFormat(log_format)

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    def setup(self, *, write_to_file: bool = True, write_to_console: bool = True) -> "loguru.Logger":
        """移除已有的输出并按当前配置重新添加"""
        self._logger.remove()
        self._logger.configure(
            extra={"trace_id": None, "log_namespace": self.NAMESPACE, "json_content": None},
            patcher=self._patch_record,
        )

        is_json = self.log_format == LogFormat.JSON
        if write_to_console:
            self._logger.add(
                sink=sys.stderr,
                level=self.level,
                enqueue=self.enqueue,
                colorize=not is_json,
                diagnose=False,
                format=self._json_formatter if is_json else self._console_formatter,
            )

        if write_to_file:
            self.base_log_dir.mkdir(parents=True, exist_ok=True)
            self._logger.add(
                sink=self.base_log_dir / "{time:YYYY-MM-DD}.log",
                level=self.level,
                rotation=self.rotation,
                retention=self.retention,
                compression=self.compression,
                enqueue=self.enqueue,
                diagnose=False,
                format=self._json_formatter if is_json else self._file_formatter,
            )

        self._logger.info(f"Logger initialized. Format: {self.log_format} | Level: {self.level} | UTC: {self.use_utc}")
        self._is_initialized = True
        return self._logger

    def _patch_record(self, record: Any) -> None:
        if self.use_utc:
            record["time"] = record["time"].astimezone(UTC)

        extra = record["extra"]
        if extra.get("trace_id") is None:
            extra["trace_id"] = context.get_trace_id()
        if extra.get("json_content") is not None:
            extra["json_content"] = mask_sensitive(extra["json_content"])

    # --- 格式化器 ---

    @staticmethod
    def _console_formatter(record: Any) -> str:
        fmt = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSSZ}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<magenta>{extra[trace_id]}</magenta> - <level>{message}</level>"
        )
        if record["extra"].get("json_content") is not None:
            record["extra"]["_json_text"] = orjson_dumps(record["extra"]["json_content"], default=str)
            fmt += "\n<cyan>{extra[_json_text]}</cyan>"
        return fmt + "\n{exception}"

    @staticmethod
    def _file_formatter(record: Any) -> str:
        fmt = "{time:YYYY-MM-DD HH:mm:ss.SSSZ} | {level: <8} | {name}:{function}:{line} | {extra[trace_id]} - {message}"
        if record["extra"].get("json_content") is not None:
            record["extra"]["_json_text"] = orjson_dumps(record["extra"]["json_content"], default=str)
            fmt += "\n{extra[_json_text]}"
        return fmt + "\n{exception}"

    @staticmethod
    def _json_formatter(record: Any) -> str:
        extra = record["extra"]
        log_record = {
            "time": _iso_utc(record["time"]),
            "level": record["level"].name,
            "trace_id": extra.get("trace_id"),
            "namespace": extra.get("log_namespace"),
            "location": f"{record['name']}.{record['function']}:{record['line']}",
            "message": record["message"],
        }
        if extra.get("json_content") is not None:
            log_record["json_content"] = extra["json_content"]
        if record["exception"] is not None:
            log_record["exception"] = repr(record["exception"].value)

        extra["_json_out"] = orjson_dumps(log_record, default=str)
        return "{extra[_json_out]}\n"


def _iso_utc(value: datetime) -> str:
    """ISO 8601，UTC 时区以 Z 结尾，精确到毫秒"""
    text = value.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")
