"""MCP command - serve registry actions to automation clients over stdio."""

from .common import db_option


def mcp(db: str | None = db_option()) -> None:
    """Run the MCP server on stdio (requires the 'mcp' extra).

    Examples:
        vibeports mcp
        vibeports mcp --db ~/work/ports.sqlite3
    """
    from ..mcp_server import run_server

    run_server(db)
