"""MCP server exposing the bootstrap to agents."""
import asyncio
import json
from typing import Any, Dict, List

import mcp.types as types
from mcp.server import stdio
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions

from selfenv import __version__
from selfenv.bootstrap import (
    ensure_self_venv,
    get_self_venv_dir,
    get_shims_dir,
    is_up_to_date,
)
from selfenv.config import get_app_dir
from selfenv.environments.environment import SELF_VERSION, read_tool_version, read_venv_marker
from selfenv.errors import SelfEnvError, log_error
from selfenv.logging import configure_logging, get_logger
from selfenv.tui import redirect_to_stderr
from selfenv.types import CommandOutput, PythonVersionRequest

logger = get_logger("server")

tools = [
    types.Tool(
        name="self_env_ensure",
        description="Bootstrap the private interpreter environment if it is missing or outdated",
        inputSchema={
            "type": "object",
            "properties": {
                "toolchain": {
                    "type": "string",
                    "description": "Interpreter to build the environment with, e.g. cpython@3.11",
                },
                "output": {
                    "type": "string",
                    "enum": [o.value for o in CommandOutput],
                    "description": "How much progress output to produce",
                },
            },
        },
    ),
    types.Tool(
        name="self_env_status",
        description="Report where the private environment lives and whether it is current",
        inputSchema={"type": "object", "properties": {}},
    ),
]


def _text(payload: Dict[str, Any]) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(payload))]


def status() -> Dict[str, Any]:
    venv_dir = get_self_venv_dir()
    return {
        "app_dir": str(get_app_dir()),
        "venv_dir": str(venv_dir),
        "shims_dir": str(get_shims_dir()),
        "exists": venv_dir.is_dir(),
        "tool_version": read_tool_version(venv_dir),
        "expected_tool_version": SELF_VERSION,
        "up_to_date": venv_dir.is_dir() and is_up_to_date(),
        "python": (read_venv_marker(venv_dir) or {}).get("python"),
    }


async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
    try:
        logger.debug(f"Tool call received: {name} with arguments {arguments}")

        if name == "self_env_ensure":
            output = CommandOutput(arguments.get("output") or CommandOutput.QUIET.value)
            toolchain = arguments.get("toolchain")
            request = PythonVersionRequest.parse(toolchain) if toolchain else None
            # stdout carries the protocol
            with redirect_to_stderr():
                venv_dir = await ensure_self_venv(output, request)
            return _text({"success": True, "data": {"venv_dir": str(venv_dir), **status()}})

        elif name == "self_env_status":
            return _text({"success": True, "data": status()})

        return _text({"success": False, "error": f"Unknown tool: {name}"})

    except SelfEnvError as e:
        log_error(e, {"tool": name}, logger)
        return _text({"success": False, "error": str(e), "code": e.code, "details": e.details})
    except ValueError as e:
        return _text({"success": False, "error": str(e)})


async def init_server() -> Server:
    logger.info(f"Registered tools: {', '.join(t.name for t in tools)}")

    server = Server("selfenv")

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        logger.debug("Tools requested")
        return tools

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        return await handle_call_tool(name, arguments or {})

    return server


async def serve() -> None:
    configure_logging()
    logger.info("Starting selfenv MCP server")
    server = await init_server()
    async with stdio.stdio_server() as (read_stream, write_stream):
        init_options = InitializationOptions(
            server_name="selfenv",
            server_version=__version__,
            capabilities=types.ServerCapabilities(
                tools=types.ToolsCapability(listChanged=False),
                logging=types.LoggingCapability(),
            ),
        )
        await server.run(read_stream, write_stream, init_options)


def main() -> None:
    """Run the MCP server."""
    asyncio.run(serve())
