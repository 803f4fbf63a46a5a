"""askuser-mcp：通过 MCP 工具向用户弹窗提问并等待回答。"""

__version__ = "0.1.0"

__all__ = ["__version__"]
