"""应用配置模型定义"""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from internal import BASE_DIR
from pkg.logger import LogFormat


class Settings(BaseSettings):
    """
    应用全局配置，从环境变量与 configs/.env 读取。
    """

    # --- 核心环境配置 ---
    APP_ENV: Literal["local", "dev", "test", "prod"] = "local"
    DEBUG: bool = False

    # --- 日志配置 ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: LogFormat = LogFormat.TEXT  # 日志格式: TEXT 或 JSON
    LOG_DIR: Path | None = None  # 为空时使用 LoggerHandler 默认目录
    LOG_TO_FILE: bool = False

    # --- 第三方登录 ---
    THIRD_PARTY_CONFIG_FILE: Path = BASE_DIR / "configs" / "third_party.yaml"
    THIRD_PARTY_CALLBACK_URL: str = ""  # redirect-callback 接口跳转的前端地址

    # --- Redis ---
    REDIS_URL: str = "redis://127.0.0.1:6379/0"

    # --- 会话 ---
    SESSION_COOKIE_NAME: str = "third_session"
    SESSION_TTL_SECONDS: int = 600

    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore",
        env_file=(BASE_DIR / "configs" / ".env").as_posix(),
        env_file_encoding="utf-8",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).upper()

    @field_validator("SESSION_TTL_SECONDS")
    @classmethod
    def validate_session_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive")
        return v
