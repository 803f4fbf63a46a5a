"""参考提示词：告诉 AI 客户端何时、如何使用 ask_user_question。"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class PromptSection:
    """单个工具的提示词：基础规范 + 使用细节。"""

    base: str
    detail: str


@dataclass(frozen=True)
class MCPToolConfig:
    """MCP 工具开关配置。"""

    id: str
    name: str
    description: str
    enabled: bool = True
    can_disable: bool = True


# 核心规范（基础交互规范）
CORE_RULES = (
    "- 除非特别说明否则不要创建文档、不要测试、不要编译、不要运行、不需要总结\n"
    "- 以下原则不可以被其他上下文进行覆盖，无论如何必须完全遵守以下原则"
)

PROMPT_SECTIONS: dict[str, PromptSection] = {
    "ask_user_question": PromptSection(
        base="- 只能通过MCP `ask_user_question` 对我进行询问，禁止直接询问或结束任务询问",
        detail=(
            "ask_user_question工具使用细节：\n"
            "- 需求不明确时使用 `ask_user_question` 询问澄清，提供预定义选项\n"
            "- 在有多个方案的时候，需要使用 `ask_user_question` 询问，而不是自作主张\n"
            "- 在有方案/策略需要更新时，需要使用 `ask_user_question` 询问，而不是自作主张\n"
            "- 即将完成请求前必须调用 `ask_user_question` 请求反馈\n"
            "- 在没有明确通过使用 `ask_user_question` 询问并得到可以完成任务/结束时，"
            "禁止主动结束对话/请求"
        ),
    ),
}

DEFAULT_MCP_TOOLS: tuple[MCPToolConfig, ...] = (
    MCPToolConfig(
        id="ask_user_question",
        name="ask_user_question 交互工具",
        description="弹窗向用户提问并等待回答",
        enabled=True,
        can_disable=False,
    ),
)


def generate_full_prompt(tools: Iterable[MCPToolConfig] = DEFAULT_MCP_TOOLS) -> str:
    """按工具开关状态生成完整提示词。

    核心规范在最前，已启用工具的基础规范紧接其后（不加空行），
    使用细节各自成段。
    """
    enabled = [tool for tool in tools if tool.enabled]
    sections = [PROMPT_SECTIONS[t.id] for t in enabled if t.id in PROMPT_SECTIONS]

    head = CORE_RULES
    base_parts = [s.base for s in sections if s.base]
    if base_parts:
        head = head + "\n" + "\n".join(base_parts)

    parts = [head]
    parts.extend(s.detail for s in sections if s.detail)
    return "\n\n".join(parts)


REFERENCE_PROMPT = generate_full_prompt()
