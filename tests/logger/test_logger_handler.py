import json
import sys

import pytest
from loguru import logger as loguru_logger

import pkg.logger as logger_module
from pkg.logger import LogFormat, get_logger_manager, init_logger, logger, mask_sensitive
from pkg.toolkit import context


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    """
    将日志输出重定向到临时目录，测试结束后恢复 loguru 默认输出。
    """
    monkeypatch.setattr(logger_module, "_logger", None)
    monkeypatch.setattr(logger_module, "_logger_manager", None)

    yield tmp_path / "logs"

    context.clear()
    loguru_logger.remove()
    loguru_logger.add(sys.stderr)


def read_logs(base_dir) -> str:
    return "".join(p.read_text(encoding="utf-8") for p in sorted(base_dir.glob("*.log")))


class TestLoggerProxy:
    def test_fallback_before_init(self, log_dir):
        """测试未初始化时转发到 loguru 默认 logger"""
        logger.info("library logging before init")

        with pytest.raises(RuntimeError, match="init_logger"):
            get_logger_manager()


class TestLoggerHandler:
    """测试文本与 JSON 两种日志格式"""

    def test_text_format_with_trace_id(self, log_dir):
        init_logger(base_log_dir=log_dir, enqueue=False, write_to_console=False)
        context.init("trace-abc")

        logger.info("third-party user resolved")
        loguru_logger.remove()

        content = read_logs(log_dir)
        assert "third-party user resolved" in content
        assert "trace-abc" in content
        assert get_logger_manager().is_initialized is True

    def test_json_format(self, log_dir):
        init_logger(base_log_dir=log_dir, enqueue=False, write_to_console=False, log_format=LogFormat.JSON)

        logger.bind(json_content={"platform": "gitee"}).warning("provider error")
        loguru_logger.remove()

        lines = [json.loads(line) for line in read_logs(log_dir).splitlines() if line.strip()]
        record = next(r for r in lines if r["message"] == "provider error")
        assert record["level"] == "WARNING"
        assert record["trace_id"] == "-"
        assert record["json_content"] == {"platform": "gitee"}
        assert record["time"].endswith("Z")

    def test_level_filter(self, log_dir):
        init_logger(level="WARNING", base_log_dir=log_dir, enqueue=False, write_to_console=False)

        logger.info("hidden message")
        logger.error("visible message")
        loguru_logger.remove()

        content = read_logs(log_dir)
        assert "hidden message" not in content
        assert "visible message" in content

    def test_json_content_masked(self, log_dir):
        init_logger(base_log_dir=log_dir, enqueue=False, write_to_console=False, log_format=LogFormat.JSON)

        logger.bind(json_content={"access_token": "tok-1", "openid": "o-1"}).info("token exchanged")
        loguru_logger.remove()

        content = read_logs(log_dir)
        assert "tok-1" not in content
        assert "o-1" in content


def test_mask_sensitive_nested():
    data = {
        "access_token": "x",
        "nested": {"secret": "s", "items": [{"code": "c"}]},
        "openid": "o",
        "refresh_token": "",
    }

    assert mask_sensitive(data) == {
        "access_token": "******",
        "nested": {"secret": "******", "items": [{"code": "******"}]},
        "openid": "o",
        "refresh_token": "",
    }
