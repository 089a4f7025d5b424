"""Tests for tool registry."""

import pytest

from talkplanner.tools import Tool, ToolResult, ToolRegistry


class EchoTool(Tool):
    """Simple echo tool for testing."""

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echoes the input message"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"},
                "times": {"type": "integer", "description": "Repeat count"},
            },
            "required": ["message"],
        }

    async def execute(self, message: str, times: int = 1) -> ToolResult:
        return ToolResult(success=True, output=message * times)


class BrokenTool(EchoTool):
    @property
    def name(self) -> str:
        return "broken"

    async def execute(self, message: str, times: int = 1) -> ToolResult:
        raise RuntimeError("upstream down")


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture
def echo_tool() -> EchoTool:
    return EchoTool()


def test_register_tool(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    assert "echo" in registry.list_tools()


def test_register_duplicate_raises(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    with pytest.raises(ValueError, match="already registered"):
        registry.register(echo_tool)


def test_get_tool(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    tool = registry.get("echo")
    assert tool is echo_tool


def test_get_unknown_tool(registry: ToolRegistry) -> None:
    assert registry.get("unknown") is None


def test_unregister(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    registry.unregister("echo")
    registry.unregister("echo")
    assert registry.list_tools() == []


def test_get_tools_schema(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    schemas = registry.get_tools_schema()
    assert len(schemas) == 1
    assert schemas[0]["type"] == "function"
    assert schemas[0]["function"]["name"] == "echo"


@pytest.mark.asyncio
async def test_dispatch_success(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    result = await registry.dispatch("echo", {"message": "hello"})
    assert result.success is True
    assert result.output == "hello"


@pytest.mark.asyncio
async def test_dispatch_drops_null_args(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    result = await registry.dispatch("echo", {"message": "hi", "times": None})
    assert result.output == "hi"


@pytest.mark.asyncio
async def test_dispatch_unknown_tool(registry: ToolRegistry) -> None:
    result = await registry.dispatch("unknown", {})
    assert result.success is False
    assert "Unknown tool" in result.error


@pytest.mark.asyncio
async def test_dispatch_missing_required_arg(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    result = await registry.dispatch("echo", {})
    assert result.success is False
    assert "Missing required" in result.error


@pytest.mark.asyncio
async def test_dispatch_unexpected_arg(registry: ToolRegistry, echo_tool: EchoTool) -> None:
    registry.register(echo_tool)
    result = await registry.dispatch("echo", {"message": "hi", "loud": True})
    assert result.success is False
    assert result.error.startswith("Invalid arguments")


@pytest.mark.asyncio
async def test_dispatch_tool_exception(registry: ToolRegistry) -> None:
    registry.register(BrokenTool())
    result = await registry.dispatch("broken", {"message": "hi"})
    assert result.success is False
    assert result.error == "Tool execution failed: upstream down"


def test_validate_args_type_check(echo_tool: EchoTool) -> None:
    valid, error = echo_tool.validate_args({"message": 123})
    assert valid is False
    assert "must be a string" in error


def test_validate_args_bool_is_not_integer(echo_tool: EchoTool) -> None:
    valid, error = echo_tool.validate_args({"message": "x", "times": True})
    assert valid is False
    assert "must be an integer" in error
