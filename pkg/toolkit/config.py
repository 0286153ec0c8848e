"""
配置文件加载

按扩展名选择解析器，支持 JSON (.json)、YAML (.yaml/.yml)、TOML (.toml)。
第三方应用配置（appid、secret、回调地址）一般放在 YAML 中。
"""

import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, ClassVar

import yaml

from pkg.toolkit.json import orjson_loads


def _parse_yaml(text: str) -> Any:
    # 空文件返回 None
    return yaml.safe_load(text) or {}


class ConfigLoader:
    """配置文件加载器"""

    parsers: ClassVar[dict[str, Callable[[str], Any]]] = {
        ".json": orjson_loads,
        ".yaml": _parse_yaml,
        ".yml": _parse_yaml,
        ".toml": tomllib.loads,
    }

    @classmethod
    def load(cls, file_path: str | Path, encoding: str = "utf-8") -> dict[str, Any]:
        """
        读取并解析配置文件

        Raises:
            FileNotFoundError: 文件不存在
            ValueError: 不支持的文件格式，或文件顶层不是字典
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"配置文件不存在: {path}")

        parser = cls.parsers.get(path.suffix.lower())
        if parser is None:
            raise ValueError(f"不支持的配置文件格式: {path.suffix}")

        data = parser(path.read_text(encoding=encoding))
        if not isinstance(data, dict):
            raise ValueError(f"配置文件顶层必须是字典: {path}")
        return data


def load_config(file_path: str | Path, encoding: str = "utf-8") -> dict[str, Any]:
    return ConfigLoader.load(file_path, encoding)
