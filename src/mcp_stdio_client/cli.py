"""MCP stdio client CLI.

Usage:
    mcp-stdio-client probe -- npx -y @modelcontextprotocol/server-filesystem .
    mcp-stdio-client probe --call read_file --arguments '{"path": "README.md"}' -- CMD ARGS...
    mcp-stdio-client servers mcp.json             # Connect to all configured servers
    mcp-stdio-client servers mcp.json -f json     # JSON output for scripting

Protocol traffic never touches this process's stdout; logs go to stderr.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from . import __version__
from .config import ServerConfig, load_servers_config
from .errors import McpClientError, ServerStartupError
from .manager import close_servers, connect_servers
from .session import McpClient

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

PREVIEW_LENGTH = 80


def truncate(text: str | None, max_len: int = PREVIEW_LENGTH) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def preview_content(content: Any) -> str:
    """One-line preview of tool result content."""
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict) and isinstance(first.get("text"), str):
            return truncate(first["text"].replace("\n", " "))
    if content is None:
        return ""
    return truncate(json.dumps(content, ensure_ascii=False))


def tool_names(tools: list[Any]) -> list[str]:
    """Names of the listed tools, "?" for entries without one."""
    return [str(t.get("name", "?")) if isinstance(t, dict) else "?" for t in tools]


def parse_env_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


@click.group()
@click.version_option(__version__, prog_name="mcp-stdio-client")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol activity to stderr")
def main(verbose: bool) -> None:
    """MCP stdio client - talk to MCP servers running as subprocesses."""
    # Logs go to stderr; stdout is reserved for command output
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


# =============================================================================
# Probe
# =============================================================================


@main.command(context_settings={"ignore_unknown_options": True})
@click.option("--env", "env_pairs", multiple=True, help="Extra environment variable (KEY=VALUE)")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for each response")
@click.option("--call", "tool_name", default=None, help="Tool to call after listing tools")
@click.option(
    "--arguments",
    "arguments_json",
    default="{}",
    help="Tool arguments as a JSON object (used with --call)",
)
@click.argument("server_command", nargs=-1, required=True, type=click.UNPROCESSED)
def probe(
    env_pairs: tuple[str, ...],
    timeout: float | None,
    tool_name: str | None,
    arguments_json: str,
    server_command: tuple[str, ...],
) -> None:
    """Initialize a server, list its tools and optionally call one.

    Examples:

        # Check that a server starts and answers
        mcp-stdio-client probe -- npx -y @modelcontextprotocol/server-filesystem .

        # Call a tool
        mcp-stdio-client probe --call read_file --arguments '{"path": "README.md"}' -- CMD
    """
    try:
        arguments = json.loads(arguments_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--arguments") from e
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--arguments")

    config_data: dict[str, Any] = {
        "command": server_command[0],
        "args": list(server_command[1:]),
        "env": parse_env_pairs(env_pairs),
    }
    if timeout is not None:
        config_data["timeout"] = timeout
    try:
        config = ServerConfig.model_validate(config_data)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    try:
        asyncio.run(_probe(config, tool_name, arguments))
    except McpClientError as e:
        click.echo(f"Probe failed: {e}", err=True)
        sys.exit(1)


async def _probe(config: ServerConfig, tool_name: str | None, arguments: dict[str, Any]) -> None:
    client = McpClient.from_config(config)
    click.echo(f"Connecting to {' '.join([config.command, *config.args])}...")
    try:
        await client.initialize()
        server_name = (client.server_info or {}).get("name", "unknown")
        click.echo(f"Initialized: {server_name}")

        tools = await client.list_tools()
        names = ", ".join(tool_names(tools))
        click.echo(f"{len(tools)} tools: {names}")

        if tool_name:
            content = await client.call_tool(tool_name, arguments)
            click.echo(f"{tool_name} preview: {preview_content(content)}")

        click.echo("Probe passed")
    finally:
        await client.close()


# =============================================================================
# Servers
# =============================================================================


@main.command("servers")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
def servers_command(config_file: str, output_format: str) -> None:
    """Connect to every server in CONFIG_FILE and list their tools.

    CONFIG_FILE is YAML or JSON with servers under "mcpServers",
    "servers", or at the top level.
    """
    try:
        configs = load_servers_config(config_file)
        summary = asyncio.run(_collect_tools(configs))
    except ServerStartupError as e:
        for name, exc in sorted(e.failures.items()):
            click.echo(f"Server {name} failed: {exc}", err=True)
        sys.exit(1)
    except McpClientError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == FORMAT_JSON:
        click.echo(json.dumps(summary, indent=2))
        return

    if not summary:
        click.echo("No servers configured")
        return

    click.echo(f"{'SERVER':<20} {'VERSION':<10} TOOLS")
    click.echo("-" * 60)
    for name, info in summary.items():
        tools = ", ".join(info["tools"]) or "-"
        click.echo(f"{truncate(name, 20):<20} {info['version'] or '-':<10} {truncate(tools, 60)}")


async def _collect_tools(configs: dict[str, ServerConfig]) -> dict[str, dict[str, Any]]:
    clients = await connect_servers(configs)
    try:
        tool_lists = await asyncio.gather(*(c.list_tools() for c in clients.values()))
        summary: dict[str, dict[str, Any]] = {}
        for (name, client), tools in zip(clients.items(), tool_lists):
            server_info = client.server_info or {}
            summary[name] = {
                "server": server_info.get("name"),
                "version": server_info.get("version"),
                "tools": tool_names(tools),
            }
        return summary
    finally:
        await close_servers(clients)
