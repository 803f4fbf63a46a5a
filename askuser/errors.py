"""异常分级：工具调用、弹窗交互与响应解析的错误类型。

所有异常都只作用于单次调用；转换为 MCP 协议错误的逻辑集中在 mcp_server 中。
"""

from __future__ import annotations


class AskUserError(Exception):
    """askuser 所有异常的基类。"""


class UnknownToolError(AskUserError):
    """调用了未注册的工具名。"""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"未知的工具: {name}")


class InvalidParamsError(AskUserError):
    """工具参数缺失或类型错误。"""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"参数解析失败: {reason}")


class AdapterError(AskUserError):
    """交互适配层失败的基类。"""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class PopupFailedError(AdapterError):
    """弹窗无法启动、被用户取消、超时或传输失败。"""

    def __str__(self) -> str:
        return f"弹窗调用失败: {self.reason}"


class MalformedReplyError(AdapterError):
    """弹窗返回了无法识别的响应。"""

    def __str__(self) -> str:
        return f"弹窗响应格式错误: {self.reason}"


class ParseError(AskUserError):
    """响应解析失败的基类。"""


class UnrecognizedSchemaError(ParseError):
    """响应既不是结构化格式，也不是旧版内容块格式。"""

    def __init__(self, fragment: str) -> None:
        self.fragment = fragment
        super().__init__(f"无法识别的响应格式: {fragment!r}")


class InvalidAttachmentError(ParseError):
    """图片附件数据不合法（空数据、非 base64 或缺少类型）。"""
