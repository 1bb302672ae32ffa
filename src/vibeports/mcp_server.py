"""MCP server exposing registry actions as tools.

Tool input schemas are derived by FastMCP from the action signatures.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from . import __version__
from .actions import Actions

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

TOOL_DESCRIPTIONS: dict[str, str] = {
    "ports.allocate": "Allocate a port for (project, branch, purpose, name); idempotent",
    "ports.claim": "Claim a port that is free on this host; savage reclaims an occupied bound port",
    "ports.get": "Get the port bound to a key",
    "ports.deleteByKey": "Delete a binding by key",
    "ports.deleteByPort": "Delete a binding by port",
    "ports.deleteByRange": "Delete all bindings with a port in START-END",
    "ports.list": "List bindings with optional filters",
    "ports.find": "Find a free OS port (skipping registered and reserved ports by default)",
    "ports.migrate.status": "Show code and registry schema versions",
    "ports.purpose.set": "Set or override a purpose range",
    "ports.purpose.get": "Get the effective range of a purpose (custom or builtin)",
    "ports.purpose.list": "List custom purpose ranges",
    "ports.purpose.delete": "Delete a custom purpose range",
    "ports.reserved.add": "Reserve a port with an optional reason",
    "ports.reserved.remove": "Unreserve a port",
    "ports.reserved.list": "List reserved ports",
}


def create_server(db_path: str | Path | None = None) -> FastMCP:
    """Create an MCP server with one tool per registry action.

    Args:
        db_path: Registry file. If None, resolved per call from the environment.

    Returns:
        Configured FastMCP server instance
    """
    try:
        from mcp.server.fastmcp import FastMCP
    except ImportError as e:
        raise ImportError(
            "MCP package not installed. Install with: pip install 'vibeports[mcp]'"
        ) from e

    server = FastMCP("vibeports", instructions=f"vibeports {__version__}: local port registry")
    for name, action in Actions(db_path).named().items():
        server.add_tool(action, name=name, description=TOOL_DESCRIPTIONS[name])
    return server


def run_server(db_path: str | Path | None = None) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    create_server(db_path).run()
