"""命令行入口：启动 MCP Server，或以无界面模式生成弹窗响应。"""

from __future__ import annotations

import argparse
import base64
import json
import mimetypes
import sys
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.markup import escape as rich_escape

from askuser import __version__
from askuser.config import ConfigError, resolve_continue_prompt
from askuser.models import ImageAttachment
from askuser.prompts import generate_full_prompt
from askuser.reply import build_continue_response, build_send_response

# 诊断信息走 stderr，stdout 只输出响应 JSON
console = Console(stderr=True)

HEADLESS_SOURCE = "cli"


def _read_request_id(path: str | None) -> str | None:
    """从 --mcp-request 指定的请求文件中读取请求 ID。"""
    if not path:
        return None
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"无法读取请求文件 {path}: {exc}") from exc
    request_id = data.get("id") if isinstance(data, dict) else None
    return request_id if isinstance(request_id, str) else None


def _load_image(path: str) -> ImageAttachment:
    """读取本地图片并编码为 base64 附件。"""
    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except OSError as exc:
        raise ValueError(f"无法读取图片 {path}: {exc}") from exc
    media_type, _ = mimetypes.guess_type(file_path.name)
    return ImageAttachment(
        data=base64.b64encode(raw).decode("ascii"),
        media_type=media_type or "application/octet-stream",
        filename=file_path.name,
    )


def _cmd_serve(_args: argparse.Namespace) -> int:
    from askuser.mcp_server import run_stdio_server

    try:
        run_stdio_server()
    except ConfigError as exc:
        console.print(f"[red]✗ 配置错误：{rich_escape(str(exc))}[/red]")
        return 1
    return 0


def _cmd_reply(args: argparse.Namespace) -> int:
    try:
        request_id = _read_request_id(args.mcp_request)
        images = [_load_image(p) for p in args.image]
    except ValueError as exc:
        console.print(f"[red]✗ {rich_escape(str(exc))}[/red]")
        return 1
    sys.stdout.write(
        build_send_response(args.text, args.option, images, request_id, HEADLESS_SOURCE)
        + "\n"
    )
    return 0


def _cmd_continue(args: argparse.Namespace) -> int:
    try:
        request_id = _read_request_id(args.mcp_request)
    except ValueError as exc:
        console.print(f"[red]✗ {rich_escape(str(exc))}[/red]")
        return 1
    sys.stdout.write(
        build_continue_response(
            request_id, HEADLESS_SOURCE, resolve_continue_prompt()
        )
        + "\n"
    )
    return 0


def _cmd_prompt(_args: argparse.Namespace) -> int:
    Console().print(generate_full_prompt(), markup=False, highlight=False, soft_wrap=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="askuser-mcp",
        description="ask_user_question MCP Server：弹窗向用户提问并等待回答",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="以 stdio 传输启动 MCP Server（默认）")
    serve.set_defaults(func=_cmd_serve)

    reply = sub.add_parser("reply", help="无界面模式：输出结构化的用户回答")
    reply.add_argument("--mcp-request", metavar="FILE", help="弹窗请求文件")
    reply.add_argument("--text", default=None, help="用户输入的文本")
    reply.add_argument(
        "--option", action="append", default=[], help="选中的选项，可重复"
    )
    reply.add_argument(
        "--image", action="append", default=[], metavar="PATH", help="附带图片，可重复"
    )
    reply.set_defaults(func=_cmd_reply)

    cont = sub.add_parser("continue", help="无界面模式：输出“继续”响应")
    cont.add_argument("--mcp-request", metavar="FILE", help="弹窗请求文件")
    cont.set_defaults(func=_cmd_continue)

    prompt = sub.add_parser("prompt", help="打印参考提示词")
    prompt.set_defaults(func=_cmd_prompt)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 入口函数。"""
    parser = build_parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", _cmd_serve)
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
