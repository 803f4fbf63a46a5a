"""交互适配层：构建弹窗请求、等待用户回答并解析为规范化结果。"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from askuser.correlation import generate_request_id
from askuser.errors import MalformedReplyError, ParseError, PopupFailedError
from askuser.logger import get_logger
from askuser.models import InteractionRequest, InteractionResult, PopupRequest
from askuser.popup import POPUP_TIMEOUT_REASON, PopupInvoker
from askuser.response_parser import parse_popup_response

logger = get_logger("adapter")


class InteractionAdapter:
    """单次 ask_user_question 调用的编排器。

    每次调用都是一次独立的阻塞往返，不在调用之间保留任何状态；
    并发弹窗的互斥由外部界面自行负责。
    """

    def __init__(
        self,
        invoker: PopupInvoker,
        id_factory: Callable[[], str] = generate_request_id,
    ) -> None:
        self._invoker = invoker
        self._id_factory = id_factory

    def build_popup_request(self, request: InteractionRequest) -> PopupRequest:
        """由交互请求生成弹窗请求；空选项列表折叠为 None。"""
        return PopupRequest(
            id=self._id_factory(),
            message=request.message,
            predefined_options=(
                list(request.predefined_options)
                if request.predefined_options
                else None
            ),
            is_markdown=request.is_markdown,
        )

    async def ask(self, request: InteractionRequest) -> InteractionResult:
        """弹窗提问并返回用户回答。

        Raises:
            PopupFailedError: 弹窗启动失败、被取消、超时或传输失败。
            MalformedReplyError: 弹窗返回了无法解析的响应。
        """
        popup_request = self.build_popup_request(request)
        logger.debug(
            "发起弹窗请求: id=%s options=%s markdown=%s",
            popup_request.id,
            popup_request.predefined_options,
            popup_request.is_markdown,
        )

        try:
            raw = await self._invoker.invoke(popup_request)
        except PopupFailedError:
            raise
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise PopupFailedError(POPUP_TIMEOUT_REASON) from exc
        except OSError as exc:
            raise PopupFailedError(str(exc)) from exc

        try:
            result = parse_popup_response(raw)
        except ParseError as exc:
            logger.error("弹窗响应解析失败: id=%s %s", popup_request.id, exc)
            raise MalformedReplyError(str(exc)) from exc

        logger.debug(
            "收到用户回答: id=%s options=%d images=%d",
            popup_request.id,
            len(result.selected_options),
            len(result.images),
        )
        return result
