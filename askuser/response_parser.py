"""弹窗响应解析：结构化格式与旧版内容块格式的双格式兼容。

解析顺序固定：先尝试结构化格式（JSON 对象），失败再尝试旧版内容块
序列（JSON 数组），两者都不匹配时抛出 UnrecognizedSchemaError。
两种形态按结构互斥，因此顺序判定没有歧义。
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Union

from askuser.errors import InvalidAttachmentError, UnrecognizedSchemaError
from askuser.logger import get_logger
from askuser.models import ImageAttachment, InteractionResult

logger = get_logger("parser")

# 旧版多个 text 块之间的拼接符
LEGACY_TEXT_SEPARATOR = "\n"

# 诊断信息中保留的原始载荷长度上限
MAX_FRAGMENT_CHARS = 200

_STRUCTURED_REQUIRED_KEYS = frozenset({"selected_options", "images", "metadata"})


@dataclass(frozen=True)
class ResponseMetadata:
    """响应元数据，仅用于追踪，不参与结果计算。"""

    timestamp: str | None = None
    request_id: str | None = None
    source: str | None = None


@dataclass(frozen=True)
class StructuredReply:
    """当前的结构化响应格式。"""

    user_input: str | None
    selected_options: tuple[str, ...]
    images: tuple[ImageAttachment, ...]
    metadata: ResponseMetadata

    def to_result(self) -> InteractionResult:
        for image in self.images:
            _validate_image(image)
        return InteractionResult(
            user_text=self.user_input,
            selected_options=self.selected_options,
            images=self.images,
        )


@dataclass(frozen=True)
class LegacyBlock:
    """旧版内容块：type 为 text 或 image，其余类型解析时跳过。"""

    type: str
    text: str | None = None
    image: ImageAttachment | None = None


@dataclass(frozen=True)
class LegacyReply:
    """旧版内容块序列格式。"""

    blocks: tuple[LegacyBlock, ...]

    def to_result(self) -> InteractionResult:
        texts: list[str] = []
        images: list[ImageAttachment] = []
        for block in self.blocks:
            if block.type == "text" and block.text is not None:
                texts.append(block.text)
            elif block.type == "image" and block.image is not None:
                _validate_image(block.image)
                images.append(block.image)
            elif block.type not in ("text", "image"):
                logger.debug("跳过未知内容块类型: %s", block.type)

        user_text = LEGACY_TEXT_SEPARATOR.join(texts)
        return InteractionResult(
            user_text=user_text or None,
            selected_options=(),
            images=tuple(images),
        )


RawReply = Union[StructuredReply, LegacyReply]


def _validate_image(image: ImageAttachment) -> None:
    """校验图片附件：data 非空且为合法 base64，media_type 非空。"""
    if not image.media_type.strip():
        raise InvalidAttachmentError("图片附件缺少 media_type")
    if not image.data:
        raise InvalidAttachmentError("图片附件数据为空")
    try:
        base64.b64decode(image.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidAttachmentError(f"图片附件不是合法的 base64 数据: {exc}") from exc


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _optional_str(value: Any) -> bool:
    return value is None or isinstance(value, str)


def _decode_image(item: Any) -> ImageAttachment | None:
    if not isinstance(item, dict):
        return None
    data = item.get("data")
    media_type = item.get("media_type")
    filename = item.get("filename")
    if not isinstance(data, str) or not isinstance(media_type, str):
        return None
    if not _optional_str(filename):
        return None
    return ImageAttachment(data=data, media_type=media_type, filename=filename)


def _decode_structured(doc: Any) -> StructuredReply | None:
    if not isinstance(doc, dict) or not _STRUCTURED_REQUIRED_KEYS <= doc.keys():
        return None

    user_input = doc.get("user_input")
    if not _optional_str(user_input):
        return None
    if not _is_str_list(doc["selected_options"]):
        return None

    raw_images = doc["images"]
    if not isinstance(raw_images, list):
        return None
    images: list[ImageAttachment] = []
    for item in raw_images:
        image = _decode_image(item)
        if image is None:
            return None
        images.append(image)

    raw_metadata = doc["metadata"]
    if not isinstance(raw_metadata, dict):
        return None
    meta_fields = {
        key: raw_metadata.get(key) for key in ("timestamp", "request_id", "source")
    }
    if not all(_optional_str(v) for v in meta_fields.values()):
        return None

    return StructuredReply(
        user_input=user_input,
        selected_options=tuple(doc["selected_options"]),
        images=tuple(images),
        metadata=ResponseMetadata(**meta_fields),
    )


def _decode_legacy(doc: Any) -> LegacyReply | None:
    if not isinstance(doc, list):
        return None

    blocks: list[LegacyBlock] = []
    for item in doc:
        if not isinstance(item, dict) or not isinstance(item.get("type"), str):
            return None
        block_type = item["type"]

        if block_type == "text":
            text = item.get("text")
            if not _optional_str(text):
                return None
            blocks.append(LegacyBlock(type=block_type, text=text))
        elif block_type == "image":
            image: ImageAttachment | None = None
            source = item.get("source")
            if source is not None:
                if not isinstance(source, dict) or not isinstance(source.get("type"), str):
                    return None
                image = _decode_image(
                    {"data": source.get("data"), "media_type": source.get("media_type")}
                )
                if image is None:
                    return None
            blocks.append(LegacyBlock(type=block_type, image=image))
        else:
            # 未知类型只保留 type，字段结构不做校验
            blocks.append(LegacyBlock(type=block_type))
    return LegacyReply(blocks=tuple(blocks))


def _fragment(raw: bytes | str) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return raw[:MAX_FRAGMENT_CHARS]


def decode_raw_reply(raw: bytes | str) -> RawReply:
    """将原始响应解码为 StructuredReply 或 LegacyReply。

    Raises:
        UnrecognizedSchemaError: 非法 JSON 或两种格式都不匹配。
    """
    try:
        doc = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise UnrecognizedSchemaError(_fragment(raw)) from None

    structured = _decode_structured(doc)
    if structured is not None:
        return structured

    legacy = _decode_legacy(doc)
    if legacy is not None:
        logger.debug("弹窗响应使用旧版内容块格式")
        return legacy

    raise UnrecognizedSchemaError(_fragment(raw))


def parse_popup_response(raw: bytes | str) -> InteractionResult:
    """将弹窗原始响应解析为规范化的 InteractionResult。

    Raises:
        UnrecognizedSchemaError: 两种格式都不匹配。
        InvalidAttachmentError: 图片附件数据不合法。
    """
    return decode_raw_reply(raw).to_result()
