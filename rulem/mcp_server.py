"""MCP stdio server exposing each rule file as a tool."""

from __future__ import annotations

from typing import Callable, Mapping, Optional

from mcp.server.fastmcp import FastMCP

from rulem import config as config_store
from rulem.config import Config
from rulem.constants import APP_NAME
from rulem.log import Logger, get_logger
from rulem.repository.preparation import prepare_all_repositories
from rulem.rules.discovery import discover_rule_tools
from rulem.rules.models import RuleFileTool
from rulem.tasks import CancelToken, check_cancelled

SERVER_INSTRUCTIONS = (
    "Each tool returns the Markdown body of one AI-assistant rule file. "
    "Call the tool whose description matches the task to load its guidance."
)


def make_rule_handler(
    tool: RuleFileTool, cancel_token: Optional[CancelToken] = None
) -> Callable[[], str]:
    body = tool.rule_file.body

    def handler() -> str:
        check_cancelled(cancel_token, f"tool {tool.tool_name}")
        return body

    handler.__name__ = tool.tool_name
    handler.__doc__ = tool.tool_description
    return handler


def register_rule_tools(
    server: FastMCP,
    tools: Mapping[str, RuleFileTool],
    cancel_token: Optional[CancelToken] = None,
) -> None:
    for name, tool in tools.items():
        server.add_tool(
            make_rule_handler(tool, cancel_token),
            name=name,
            description=tool.tool_description,
        )


def build_server(
    config: Config,
    logger: Optional[Logger] = None,
    cancel_token: Optional[CancelToken] = None,
) -> FastMCP:
    log = logger or get_logger(__name__)
    preparation = prepare_all_repositories(
        config.repositories, logger=log, cancel_token=cancel_token
    )
    for failure in preparation.failures:
        log.warning("Repository unavailable for MCP", detail=failure.describe())

    discovery = discover_rule_tools(preparation.prepared, logger=log, cancel_token=cancel_token)
    server = FastMCP(APP_NAME, instructions=SERVER_INSTRUCTIONS)
    register_rule_tools(server, discovery.tools, cancel_token)
    log.info("MCP server ready", tool_count=len(discovery.tools))
    return server


def run(logger: Optional[Logger] = None) -> None:
    log = logger or get_logger(__name__)
    config = config_store.load()
    cancel_token = CancelToken()
    server = build_server(config, logger=log, cancel_token=cancel_token)
    try:
        server.run("stdio")
    finally:
        cancel_token.cancel()
        log.info("MCP server stopped")
