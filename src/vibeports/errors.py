"""Error types raised by the vibeports registry."""


class VibePortsError(Exception):
    """Base class for all registry errors."""

    code = "error"


class InvalidArgumentError(VibePortsError, ValueError):
    """Raised for malformed purposes, out-of-bounds ports or conflicting flags."""

    code = "invalid_argument"


class NotFoundError(VibePortsError):
    """Raised when a key or port has no binding."""

    code = "not_found"


class AlreadyExistsError(VibePortsError):
    """Raised when allocating with fail_if_exists and the key is already bound."""

    code = "already_exists"

    def __init__(self, message: str, port: int) -> None:
        super().__init__(message)
        self.port = port


class NoRangeConfiguredError(VibePortsError):
    """Raised when a purpose has neither a custom nor a built-in range."""

    code = "no_range_configured"


class RangeExhaustedError(VibePortsError):
    """Raised when every port in a purpose range is taken."""

    code = "range_exhausted"


class NoFreePortError(VibePortsError):
    """Raised when no candidate in a range is free at the OS level."""

    code = "no_free_port"


class UnsupportedSchemaError(VibePortsError):
    """Raised when the registry file is newer than this version understands."""

    code = "unsupported_schema"


class ReclaimFailedError(VibePortsError):
    """Raised when a port is still occupied after termination attempts."""

    code = "reclaim_failed"


class ExternalToolUnavailableError(VibePortsError):
    """Raised by a pid provider whose tool is missing or timed out.

    Never leaves the system module: providers that raise it are treated as
    returning no owners.
    """

    code = "external_tool_unavailable"
