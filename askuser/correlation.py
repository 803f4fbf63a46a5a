"""请求关联 ID 生成。"""

from __future__ import annotations

import uuid


def generate_request_id() -> str:
    """生成一次弹窗交互的唯一请求 ID（128 位随机 UUID）。"""
    return str(uuid.uuid4())
