"""MCP Server 模块：将 ask_user_question 暴露为 MCP 工具供外部 AI 客户端调用。

通过 stdio 传输方式与客户端通信，符合 MCP SDK 标准实现。
"""

from __future__ import annotations

import asyncio
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from askuser import __version__
from askuser.adapter import InteractionAdapter
from askuser.config import load_config
from askuser.errors import (
    AdapterError,
    InvalidParamsError,
    UnknownToolError,
)
from askuser.logger import get_logger, log_tool_call, setup_logging
from askuser.models import InteractionRequest, InteractionResult
from askuser.popup import SubprocessPopupInvoker

logger = get_logger("mcp")

SERVER_NAME = "ask_user_question-mcp"
TOOL_NAME = "ask_user_question"
TOOL_DESCRIPTION = (
    "Ask the user a question with predefined options. Use this when you need "
    "the user to make a choice between specific options. You can provide up to "
    "4 options, each with a label and description. NEVER include \"other\" as an "
    "option - the user can always automatically provide a custom response."
)

TOOL_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "message": {
            "type": "string",
            "description": "要显示给用户的消息",
        },
        "predefined_options": {
            "type": "array",
            "items": {"type": "string"},
            "description": "预定义的选项列表（可选）",
        },
        "is_markdown": {
            "type": "boolean",
            "description": "消息是否为Markdown格式，默认为true",
            "default": True,
        },
    },
    "required": ["message"],
}

SELECTED_OPTIONS_PREFIX = "选择的选项: "


def _format_mcp_error(error_type: str, message: str) -> str:
    """统一 MCP 错误文本格式，包含错误类型与描述。"""
    return f"{error_type}: {message}"


def _mcp_error(code: int, error_type: str, message: str) -> McpError:
    return McpError(
        types.ErrorData(code=code, message=_format_mcp_error(error_type, message))
    )


def describe_tool() -> types.Tool:
    """返回 ask_user_question 的 MCP 工具定义。"""
    return types.Tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        inputSchema=TOOL_INPUT_SCHEMA,
    )


def parse_arguments(arguments: dict[str, Any] | None) -> InteractionRequest:
    """将工具调用参数校验并转换为 InteractionRequest。

    缺省值：predefined_options 为空，is_markdown 为 True；未知字段忽略。

    Raises:
        InvalidParamsError: message 缺失/为空，或字段类型错误。
    """
    args = arguments if arguments is not None else {}
    if not isinstance(args, dict):
        raise InvalidParamsError("参数必须是对象")

    message = args.get("message")
    if message is None:
        raise InvalidParamsError("缺少必填字段 message")
    if not isinstance(message, str):
        raise InvalidParamsError("message 必须是字符串")
    if not message.strip():
        raise InvalidParamsError("message 不能为空")

    options = args.get("predefined_options")
    if options is None:
        options = []
    if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
        raise InvalidParamsError("predefined_options 必须是字符串数组")

    is_markdown = args.get("is_markdown", True)
    if not isinstance(is_markdown, bool):
        raise InvalidParamsError("is_markdown 必须是布尔值")

    return InteractionRequest(
        message=message,
        predefined_options=tuple(options),
        is_markdown=is_markdown,
    )


def render_result_content(
    result: InteractionResult,
) -> list[types.TextContent | types.ImageContent]:
    """将规范化结果转换为 MCP 内容列表：最多一个文本项，后接图片项。"""
    text_parts: list[str] = []
    if result.selected_options:
        text_parts.append(SELECTED_OPTIONS_PREFIX + ", ".join(result.selected_options))
    user_text = result.user_text or ""
    if user_text.strip():
        text_parts.append(user_text)

    content: list[types.TextContent | types.ImageContent] = []
    if text_parts:
        content.append(types.TextContent(type="text", text="\n\n".join(text_parts)))
    for image in result.images:
        content.append(
            types.ImageContent(type="image", data=image.data, mimeType=image.media_type)
        )
    return content


async def invoke_tool(
    adapter: InteractionAdapter,
    name: str,
    arguments: dict[str, Any] | None,
) -> list[types.TextContent | types.ImageContent]:
    """校验工具名与参数，委托 adapter 提问并返回 MCP 内容。

    Raises:
        UnknownToolError / InvalidParamsError / AdapterError
    """
    if name != TOOL_NAME:
        raise UnknownToolError(name)
    request = parse_arguments(arguments)
    result = await adapter.ask(request)
    if result.is_empty:
        logger.info("用户未提供任何内容")
    return render_result_content(result)


def create_mcp_server(adapter: InteractionAdapter) -> Server:
    """创建只暴露 ask_user_question 的 MCP Server。

    Args:
        adapter: 负责弹窗交互的 InteractionAdapter。

    Returns:
        配置好 handler 的 MCP Server 实例。
    """
    server = Server(SERVER_NAME, version=__version__, instructions=TOOL_DESCRIPTION)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        """返回唯一的工具定义。"""
        return [describe_tool()]

    async def handle_call_tool(req: types.CallToolRequest) -> types.ServerResult:
        """执行工具调用；内部异常映射为带错误码的 MCP 协议错误。"""
        name = req.params.name
        arguments = req.params.arguments
        logger.debug("收到工具调用请求: %s", name)
        try:
            content = await invoke_tool(adapter, name, arguments)
        except UnknownToolError as exc:
            log_tool_call(logger, name, arguments or {}, error=str(exc))
            raise _mcp_error(
                types.INVALID_REQUEST, "UnknownToolError", str(exc)
            ) from exc
        except InvalidParamsError as exc:
            log_tool_call(logger, name, arguments or {}, error=str(exc))
            raise _mcp_error(
                types.INVALID_PARAMS, "InvalidParamsError", str(exc)
            ) from exc
        except AdapterError as exc:
            logger.warning("工具调用失败 [%s]: %s", name, exc)
            raise _mcp_error(
                types.INTERNAL_ERROR, type(exc).__name__, str(exc)
            ) from exc

        log_tool_call(logger, name, arguments or {}, result=f"{len(content)} 项内容")
        return types.ServerResult(types.CallToolResult(content=content, isError=False))

    # tools/call 异常原样抛出为 JSON-RPC 错误
    server.request_handlers[types.CallToolRequest] = handle_call_tool

    return server


async def _run_stdio_server_async() -> None:
    """异步启动 MCP Server（stdio 传输）。"""
    config = load_config()
    setup_logging(config.log_level)

    invoker = SubprocessPopupInvoker(
        config.popup_command, timeout=config.popup_timeout_seconds
    )
    adapter = InteractionAdapter(invoker)
    server = create_mcp_server(adapter)
    logger.info("MCP Server 启动，弹窗命令: %s", " ".join(config.popup_command))

    async with stdio_server() as (read_stream, write_stream):
        init_options = server.create_initialization_options()
        await server.run(read_stream, write_stream, init_options)


def run_stdio_server() -> None:
    """以 stdio 传输方式启动 MCP Server。"""
    asyncio.run(_run_stdio_server_async())
