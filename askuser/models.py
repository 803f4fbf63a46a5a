"""数据模型：交互请求、弹窗请求与规范化的交互结果。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InteractionRequest:
    """经过校验的 ask_user_question 调用参数。"""

    message: str
    predefined_options: tuple[str, ...] = ()
    is_markdown: bool = True


@dataclass(frozen=True)
class PopupRequest:
    """发送给弹窗的请求。

    predefined_options 为 None 表示不显示选项按钮，永远不会是空列表。
    """

    id: str
    message: str
    predefined_options: list[str] | None
    is_markdown: bool

    def to_dict(self) -> dict[str, Any]:
        """序列化为弹窗约定的 JSON 结构。"""
        return {
            "id": self.id,
            "message": self.message,
            "predefined_options": (
                list(self.predefined_options)
                if self.predefined_options is not None
                else None
            ),
            "is_markdown": self.is_markdown,
        }


@dataclass(frozen=True)
class ImageAttachment:
    """图片附件，data 为 base64 编码。"""

    data: str
    media_type: str
    filename: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "media_type": self.media_type,
            "filename": self.filename,
        }


@dataclass(frozen=True)
class InteractionResult:
    """规范化的用户回答，两种响应格式最终都收敛为该结构。"""

    user_text: str | None = None
    selected_options: tuple[str, ...] = ()
    images: tuple[ImageAttachment, ...] = ()

    @property
    def is_empty(self) -> bool:
        return (
            not (self.user_text or "").strip()
            and not self.selected_options
            and not self.images
        )
