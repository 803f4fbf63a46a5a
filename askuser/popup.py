"""弹窗调用边界：把 PopupRequest 交给外部交互界面并取回原始响应。

界面本身（渲染、收集输入）不在本项目范围内，这里只负责进程调用。
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from collections.abc import Sequence
from typing import Protocol

from askuser.errors import PopupFailedError
from askuser.logger import get_logger
from askuser.models import PopupRequest

logger = get_logger("popup")

# 错误信息中保留的 stderr 长度上限
_MAX_STDERR_CHARS = 500

POPUP_CANCELLED_REASON = "用户取消"
POPUP_TIMEOUT_REASON = "timeout"


class PopupInvoker(Protocol):
    """外部交互界面的抽象：提交请求，阻塞等待用户回答。"""

    async def invoke(self, request: PopupRequest) -> bytes:
        """返回原始响应字节；失败时抛出 PopupFailedError。"""
        ...


class SubprocessPopupInvoker:
    """以子进程方式启动弹窗：``<command> --mcp-request <file>``，从 stdout 读取回答。

    请求以 JSON 写入临时文件；进程退出码非 0、stdout 为空（用户关闭弹窗）
    或超时都视为失败。调用被取消时会终止弹窗进程。
    """

    def __init__(
        self,
        command: Sequence[str],
        timeout: float | None = None,
    ) -> None:
        if not command:
            raise ValueError("弹窗命令不能为空。")
        self._command = list(command)
        self._timeout = timeout

    @property
    def command(self) -> list[str]:
        return list(self._command)

    async def invoke(self, request: PopupRequest) -> bytes:
        fd, request_path = tempfile.mkstemp(prefix="askuser_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(request.to_dict(), fp, ensure_ascii=False)
            return await self._run(request.id, request_path)
        finally:
            try:
                os.unlink(request_path)
            except OSError:
                logger.debug("清理请求文件失败: %s", request_path, exc_info=True)

    async def _run(self, request_id: str, request_path: str) -> bytes:
        argv = [*self._command, "--mcp-request", request_path]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise PopupFailedError(f"无法启动弹窗进程 {self._command[0]}: {exc}") from exc

        logger.debug("弹窗进程已启动: pid=%s request_id=%s", proc.pid, request_id)
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            logger.warning("弹窗等待超时: request_id=%s", request_id)
            raise PopupFailedError(POPUP_TIMEOUT_REASON) from None
        except asyncio.CancelledError:
            _kill(proc)
            logger.info("调用已取消，关闭弹窗: request_id=%s", request_id)
            # 回收已终止的进程，再次取消也不会中断回收
            await asyncio.shield(proc.wait())
            raise

        if proc.returncode != 0:
            msg = stderr.decode(errors="replace").strip()[:_MAX_STDERR_CHARS]
            raise PopupFailedError(f"弹窗进程退出码 {proc.returncode}: {msg}")
        if not stdout.strip():
            raise PopupFailedError(POPUP_CANCELLED_REASON)
        return stdout


def _kill(proc: asyncio.subprocess.Process) -> None:
    """终止仍在运行的弹窗进程。"""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
