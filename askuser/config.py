"""配置管理模块：加载环境变量、.env 文件、JSON 配置文件和默认值。"""

from __future__ import annotations

import json
import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


class ConfigError(Exception):
    """配置缺失或校验失败时抛出的异常。"""


_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_DEFAULT_POPUP_COMMAND: tuple[str, ...] = ("askuser-ui",)
_DEFAULT_CONFIG_FILE = "~/.askuser/config.json"

_ENV_POPUP_COMMAND = "ASKUSER_POPUP_COMMAND"
_ENV_POPUP_TIMEOUT = "ASKUSER_POPUP_TIMEOUT_SECONDS"
_ENV_LOG_LEVEL = "ASKUSER_LOG_LEVEL"
_ENV_CONFIG_FILE = "ASKUSER_CONFIG_FILE"
_ENV_CONTINUE_PROMPT = "ASKUSER_CONTINUE_PROMPT"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AskUserConfig:
    """不可变的全局配置对象。"""

    popup_command: tuple[str, ...] = _DEFAULT_POPUP_COMMAND
    # None 表示不限时等待用户回答
    popup_timeout_seconds: float | None = None
    log_level: str = "INFO"
    config_file: str = _DEFAULT_CONFIG_FILE
    continue_prompt: str | None = None


def load_runtime_env() -> None:
    """加载当前工作目录 .env（不覆盖已存在环境变量）。"""
    dotenv_path = Path.cwd() / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False)


def _parse_log_level(value: str | None) -> str:
    """解析日志级别。"""
    if value is None:
        return "INFO"
    normalized = value.strip().upper()
    if normalized not in _ALLOWED_LOG_LEVELS:
        raise ConfigError(
            f"配置项 {_ENV_LOG_LEVEL} 必须是 "
            f"{sorted(_ALLOWED_LOG_LEVELS)} 之一，当前值: {value!r}"
        )
    return normalized


def _parse_timeout(value: str | None) -> float | None:
    """解析弹窗超时秒数，0 或未设置表示不限时。"""
    if value is None or not value.strip():
        return None
    try:
        result = float(value)
    except ValueError:
        raise ConfigError(f"配置项 {_ENV_POPUP_TIMEOUT} 必须为数字，当前值: {value!r}")
    if result < 0:
        raise ConfigError(f"配置项 {_ENV_POPUP_TIMEOUT} 不能为负数，当前值: {result}")
    return result or None


def _parse_popup_command(value: str | None) -> tuple[str, ...]:
    """按 shell 规则拆分弹窗命令。"""
    if value is None or not value.strip():
        return _DEFAULT_POPUP_COMMAND
    try:
        parts = shlex.split(value)
    except ValueError as exc:
        raise ConfigError(f"配置项 {_ENV_POPUP_COMMAND} 无法解析: {exc}") from exc
    if not parts or not parts[0]:
        raise ConfigError(f"配置项 {_ENV_POPUP_COMMAND} 不能为空命令，当前值: {value!r}")
    return tuple(parts)


def load_continue_prompt(config_path: str | Path | None) -> str | None:
    """从 JSON 配置文件读取 reply_config.continue_prompt。

    文件缺失、JSON 非法或结构不符时记录警告并返回 None，从不抛出异常。
    """
    if config_path is None:
        return None
    path = Path(config_path).expanduser()
    if not path.is_file():
        logger.debug("配置文件不存在，使用默认继续提示词: %s", path)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("读取配置文件失败，使用默认继续提示词: %s (%s)", path, exc)
        return None

    reply_config = data.get("reply_config") if isinstance(data, dict) else None
    if not isinstance(reply_config, dict):
        logger.warning("配置文件缺少 reply_config 对象: %s", path)
        return None
    prompt = reply_config.get("continue_prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        logger.warning("reply_config.continue_prompt 不是非空字符串: %s", path)
        return None
    return prompt


def _config_file_from_env() -> str:
    return (os.environ.get(_ENV_CONFIG_FILE) or "").strip() or _DEFAULT_CONFIG_FILE


def resolve_continue_prompt() -> str | None:
    """只解析“继续”提示词：环境变量优先，其次 JSON 配置文件。

    不校验其他配置项，任何读取失败都返回 None。
    """
    load_runtime_env()
    prompt = (os.environ.get(_ENV_CONTINUE_PROMPT) or "").strip() or None
    if prompt is None:
        prompt = load_continue_prompt(_config_file_from_env())
    return prompt


def load_config() -> AskUserConfig:
    """加载配置。优先级：环境变量 > .env 文件 > JSON 配置文件 > 默认值。

    值非法时抛出 ConfigError；继续提示词的读取失败不会抛出。
    """
    load_runtime_env()

    popup_command = _parse_popup_command(os.environ.get(_ENV_POPUP_COMMAND))
    popup_timeout_seconds = _parse_timeout(os.environ.get(_ENV_POPUP_TIMEOUT))
    log_level = _parse_log_level(os.environ.get(_ENV_LOG_LEVEL))
    return AskUserConfig(
        popup_command=popup_command,
        popup_timeout_seconds=popup_timeout_seconds,
        log_level=log_level,
        config_file=_config_file_from_env(),
        continue_prompt=resolve_continue_prompt(),
    )
