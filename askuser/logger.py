"""日志配置模块：分级日志与载荷脱敏。

stdout 是 MCP 的传输通道，日志一律写入 stderr。
"""

from __future__ import annotations

import logging
import re
import sys

# 日志器名称常量
LOGGER_NAME = "askuser"

# ── 脱敏正则 ──────────────────────────────────────────────

# 长 base64 串（图片载荷），可带 data URI 前缀
_BASE64_BLOB_PATTERN = re.compile(
    r"(?:data:[\w.+\-]+/[\w.+\-]+;base64,)?[A-Za-z0-9+/]{64,}={0,2}",
)

# 绝对路径（Unix / Windows）
_ABS_PATH_PATTERN = re.compile(
    r"(?<![:/\w])/(?!/)(?:[\w.\-]+/)+[\w.\-]+|(?<!\w)[A-Z]:\\(?:[\w.\-]+\\)+[\w.\-]+",
)


def _sanitize(text: str) -> str:
    """对日志文本中的图片载荷和本地路径进行脱敏。"""
    text = _BASE64_BLOB_PATTERN.sub(
        lambda m: f"<base64:{len(m.group(0))} chars>", text
    )

    # 绝对路径脱敏：保留文件名，隐藏目录结构
    def _mask_path(match: re.Match[str]) -> str:
        path = match.group(0)
        sep = "\\" if "\\" in path else "/"
        parts = path.split(sep)
        filename = parts[-1] if parts else path
        return f"<path>/{filename}"

    text = _ABS_PATH_PATTERN.sub(_mask_path, text)

    return text


class SanitizingFormatter(logging.Formatter):
    """自动脱敏的日志格式化器。"""

    def format(self, record: logging.LogRecord) -> str:
        original = super().format(record)
        return _sanitize(original)


_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """配置并返回 askuser 根日志器。

    Args:
        level: 日志级别字符串，支持 DEBUG/INFO/WARNING/ERROR。

    Returns:
        配置好的 Logger 实例。
    """
    level_upper = level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    # 避免重复添加 handler
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(numeric_level)
        formatter = SanitizingFormatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(numeric_level)

    # 阻止日志向上传播到 root logger
    logger.propagate = False

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """获取 askuser 命名空间下的子日志器。

    Args:
        name: 子模块名称，如 "mcp"、"popup"。
              为 None 时返回根日志器。
    """
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def log_tool_call(
    logger: logging.Logger,
    tool_name: str,
    arguments: dict | str,
    result: str | None = None,
    error: str | None = None,
) -> None:
    """记录工具调用信息（仅 DEBUG 级别）。"""
    logger.debug(
        "工具调用 [%s] 参数: %s | 结果: %s",
        tool_name,
        arguments,
        error if error else (result or "无"),
    )
