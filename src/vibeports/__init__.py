"""vibeports - local port registry for development workloads."""

__version__ = "0.1.0"

from .claim import Claimer
from .context import GitKeys, derive_git_keys
from .db import Database
from .errors import (
    AlreadyExistsError,
    ExternalToolUnavailableError,
    InvalidArgumentError,
    NoFreePortError,
    NoRangeConfiguredError,
    NotFoundError,
    RangeExhaustedError,
    ReclaimFailedError,
    UnsupportedSchemaError,
    VibePortsError,
)
from .ranges import BUILTIN_RANGES, PurposeRange, normalize_purpose, resolve_range
from .registry import Binding, BindingKey, RangeDeleteResult, Registry
from .schema import CODE_SCHEMA_VERSION, SchemaStatus
from .system import ReclaimResult, SystemScanner

__all__ = [
    "__version__",
    "AlreadyExistsError",
    "Binding",
    "BindingKey",
    "BUILTIN_RANGES",
    "Claimer",
    "CODE_SCHEMA_VERSION",
    "Database",
    "derive_git_keys",
    "ExternalToolUnavailableError",
    "GitKeys",
    "InvalidArgumentError",
    "NoFreePortError",
    "NoRangeConfiguredError",
    "normalize_purpose",
    "NotFoundError",
    "PurposeRange",
    "RangeDeleteResult",
    "RangeExhaustedError",
    "ReclaimFailedError",
    "ReclaimResult",
    "Registry",
    "resolve_range",
    "SchemaStatus",
    "SystemScanner",
    "UnsupportedSchemaError",
    "VibePortsError",
]
