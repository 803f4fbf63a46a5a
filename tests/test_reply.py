"""结构化响应构建与"继续"回退测试。"""

from __future__ import annotations

import json
from datetime import datetime

from askuser.models import ImageAttachment
from askuser.reply import (
    DEFAULT_CONTINUE_PROMPT,
    build_continue_reply,
    build_continue_response,
    build_mcp_response,
    build_send_response,
)
from askuser.response_parser import StructuredReply, decode_raw_reply, parse_popup_response
from tests.fakes import PNG_BASE64


class TestBuildContinueReply:
    def test_unavailable_config_returns_default_verbatim(self) -> None:
        assert build_continue_reply() == DEFAULT_CONTINUE_PROMPT
        assert build_continue_reply(None) == "请按照最佳实践继续"

    def test_blank_prompt_falls_back(self) -> None:
        assert build_continue_reply("   ") == DEFAULT_CONTINUE_PROMPT

    def test_configured_prompt_used(self) -> None:
        assert build_continue_reply("继续下一步") == "继续下一步"


class TestBuildMcpResponse:
    def test_document_shape(self) -> None:
        image = ImageAttachment(data=PNG_BASE64, media_type="image/png", filename="a.png")
        doc = build_mcp_response("hi", ["x"], [image], "req-1", "popup")
        assert doc["user_input"] == "hi"
        assert doc["selected_options"] == ["x"]
        assert doc["images"] == [
            {"data": PNG_BASE64, "media_type": "image/png", "filename": "a.png"}
        ]
        assert doc["metadata"]["request_id"] == "req-1"
        assert doc["metadata"]["source"] == "popup"
        assert datetime.fromisoformat(doc["metadata"]["timestamp"]).tzinfo is not None

    def test_send_response_parses_back(self) -> None:
        raw = build_send_response("答案", ["a", "b"], [], "req-2", "popup")
        reply = decode_raw_reply(raw)
        assert isinstance(reply, StructuredReply)
        assert reply.metadata.request_id == "req-2"
        result = reply.to_result()
        assert result.user_text == "答案"
        assert result.selected_options == ("a", "b")

    def test_send_response_keeps_non_ascii(self) -> None:
        assert "答案" in build_send_response("答案", [], [], None, "popup")


class TestBuildContinueResponse:
    def test_default_prompt(self) -> None:
        raw = build_continue_response("req-3", "popup")
        doc = json.loads(raw)
        assert doc["user_input"] == DEFAULT_CONTINUE_PROMPT
        assert doc["selected_options"] == []
        assert doc["images"] == []
        assert doc["metadata"]["request_id"] == "req-3"

    def test_configured_prompt(self) -> None:
        result = parse_popup_response(build_continue_response(None, "popup", "接着来"))
        assert result.user_text == "接着来"
