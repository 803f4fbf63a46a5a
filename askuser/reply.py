"""结构化响应构建：弹窗（包括无界面模式）统一使用这里生成回答。"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from askuser.models import ImageAttachment

DEFAULT_CONTINUE_PROMPT = "请按照最佳实践继续"


def build_continue_reply(continue_prompt: str | None = None) -> str:
    """返回"继续"操作的提示词；未配置或为空时回退到默认提示词。"""
    if isinstance(continue_prompt, str) and continue_prompt.strip():
        return continue_prompt
    return DEFAULT_CONTINUE_PROMPT


def build_mcp_response(
    user_input: str | None,
    selected_options: Iterable[str],
    images: Iterable[ImageAttachment],
    request_id: str | None,
    source: str,
) -> dict[str, Any]:
    """构建结构化格式的响应文档。"""
    return {
        "user_input": user_input,
        "selected_options": list(selected_options),
        "images": [image.to_dict() for image in images],
        "metadata": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "source": source,
        },
    }


def build_send_response(
    user_input: str | None,
    selected_options: Iterable[str],
    images: Iterable[ImageAttachment],
    request_id: str | None,
    source: str,
) -> str:
    """构建"发送"操作的 JSON 响应文本。"""
    response = build_mcp_response(
        user_input, selected_options, images, request_id, source
    )
    return json.dumps(response, ensure_ascii=False)


def build_continue_response(
    request_id: str | None,
    source: str,
    continue_prompt: str | None = None,
) -> str:
    """构建"继续"操作的 JSON 响应文本。"""
    response = build_mcp_response(
        build_continue_reply(continue_prompt), [], [], request_id, source
    )
    return json.dumps(response, ensure_ascii=False)
