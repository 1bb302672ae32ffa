"""Command modules for the vibeports CLI."""

from .allocate import allocate
from .auto import auto_app
from .claim import claim
from .delete import delete
from .find import find
from .get import get
from .list import list_cmd
from .mcp import mcp
from .migrate import migrate_status
from .purpose import purpose_app
from .reserved import reserved_app

__all__ = [
    "allocate",
    "auto_app",
    "claim",
    "delete",
    "find",
    "get",
    "list_cmd",
    "mcp",
    "migrate_status",
    "purpose_app",
    "reserved_app",
]
