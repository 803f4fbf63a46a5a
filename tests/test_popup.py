"""SubprocessPopupInvoker 测试：使用真实子进程模拟弹窗。"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import pytest

from askuser.errors import PopupFailedError
from askuser.models import PopupRequest
from askuser.popup import (
    POPUP_CANCELLED_REASON,
    POPUP_TIMEOUT_REASON,
    SubprocessPopupInvoker,
)

# 子进程参数：python -c <script> --mcp-request <file>，请求文件路径为 sys.argv[2]
_ECHO_REQUEST = "import sys; sys.stdout.buffer.write(open(sys.argv[2], 'rb').read())"
_PRINT_PATH = "import sys; sys.stdout.write(sys.argv[2])"
_FAIL = "import sys; sys.stderr.write('boom'); sys.exit(3)"
_SILENT = "pass"
_SLEEP = "import time; time.sleep(30)"
# 记录自身 pid 与请求文件路径后挂起，写入临时文件再改名保证读到完整内容
_RECORD_AND_SLEEP = (
    "import json, os, sys, time\n"
    "tmp = {marker!r} + '.tmp'\n"
    "with open(tmp, 'w') as f:\n"
    "    json.dump(dict(pid=os.getpid(), request_path=sys.argv[2]), f)\n"
    "os.replace(tmp, {marker!r})\n"
    "time.sleep(30)\n"
)


def _script(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def _request(options: list[str] | None = None) -> PopupRequest:
    return PopupRequest(
        id="req-42",
        message="**继续吗？**",
        predefined_options=options,
        is_markdown=True,
    )


class TestSubprocessPopupInvoker:
    @pytest.mark.asyncio
    async def test_request_file_is_passed_to_popup(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_ECHO_REQUEST))
        raw = await invoker.invoke(_request(["是", "否"]))
        assert json.loads(raw) == {
            "id": "req-42",
            "message": "**继续吗？**",
            "predefined_options": ["是", "否"],
            "is_markdown": True,
        }

    @pytest.mark.asyncio
    async def test_absent_options_serialized_as_null(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_ECHO_REQUEST))
        raw = await invoker.invoke(_request(None))
        assert json.loads(raw)["predefined_options"] is None

    @pytest.mark.asyncio
    async def test_request_file_removed_afterwards(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_PRINT_PATH))
        raw = await invoker.invoke(_request())
        path = raw.decode("utf-8")
        assert path.endswith(".json")
        assert not os.path.exists(path)

    @pytest.mark.asyncio
    async def test_non_zero_exit_fails(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_FAIL))
        with pytest.raises(PopupFailedError) as exc_info:
            await invoker.invoke(_request())
        assert "3" in exc_info.value.reason
        assert "boom" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_empty_stdout_means_cancelled(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_SILENT))
        with pytest.raises(PopupFailedError) as exc_info:
            await invoker.invoke(_request())
        assert exc_info.value.reason == POPUP_CANCELLED_REASON

    @pytest.mark.asyncio
    async def test_missing_command_fails(self) -> None:
        invoker = SubprocessPopupInvoker(["askuser-definitely-missing-popup-binary"])
        with pytest.raises(PopupFailedError, match="无法启动弹窗进程"):
            await invoker.invoke(_request())

    @pytest.mark.asyncio
    async def test_timeout_kills_popup(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_SLEEP), timeout=0.3)
        with pytest.raises(PopupFailedError) as exc_info:
            await invoker.invoke(_request())
        assert exc_info.value.reason == POPUP_TIMEOUT_REASON

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        invoker = SubprocessPopupInvoker(_script(_SLEEP))
        task = asyncio.create_task(invoker.invoke(_request()))
        await asyncio.sleep(0.3)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_cancellation_kills_popup(self, tmp_path: Path) -> None:
        marker = tmp_path / "popup.json"
        script = _RECORD_AND_SLEEP.format(marker=str(marker))
        invoker = SubprocessPopupInvoker(_script(script))
        task = asyncio.create_task(invoker.invoke(_request()))

        for _ in range(100):
            if marker.exists():
                break
            await asyncio.sleep(0.05)
        info = json.loads(marker.read_text(encoding="utf-8"))
        assert os.path.exists(info["request_path"])

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        with pytest.raises(ProcessLookupError):
            os.kill(info["pid"], 0)
        assert not os.path.exists(info["request_path"])

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValueError):
            SubprocessPopupInvoker([])

    def test_command_is_copied(self) -> None:
        command = ["popup", "--flag"]
        invoker = SubprocessPopupInvoker(command)
        command.append("--other")
        assert invoker.command == ["popup", "--flag"]
