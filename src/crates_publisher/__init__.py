"""crates-publisher — release plugin that publishes Rust crates with ``cargo publish``.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import crates_publisher as cp
>>> cp.__version__
'2.0.0'
>>> plugin = cp.CratesPlugin()
>>> plugin.validate({"registry": "my-registry"}).valid
True
"""
from __future__ import annotations

__version__: str = "2.0.0"

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from crates_publisher.errors import (
    CommandCancelledError,
    CommandExecutionError,
    CommandTimeoutError,
    ConfigurationError,
    CratesPublisherError,
    InvalidConfigError,
    PathValidationError,
    RegistryValidationError,
)

# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------
from crates_publisher.executor import CommandExecutor, CommandResult, SubprocessExecutor

# ---------------------------------------------------------------------------
# Plugin
# ---------------------------------------------------------------------------
from crates_publisher.plugin.config_loader import ConfigLoader, PublishConfig
from crates_publisher.plugin.crates_plugin import CratesPlugin, build_publish_args
from crates_publisher.plugin.hooks import (
    ExecuteRequest,
    ExecuteResponse,
    Hook,
    ReleaseContext,
    ValidateResponse,
)
from crates_publisher.plugin.server import PluginServer

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
from crates_publisher.validation import validate_path, validate_registry_url

__all__ = [
    "__version__",
    # Errors
    "CommandCancelledError",
    "CommandExecutionError",
    "CommandTimeoutError",
    "ConfigurationError",
    "CratesPublisherError",
    "InvalidConfigError",
    "PathValidationError",
    "RegistryValidationError",
    # Execution
    "CommandExecutor",
    "CommandResult",
    "SubprocessExecutor",
    # Plugin
    "ConfigLoader",
    "CratesPlugin",
    "ExecuteRequest",
    "ExecuteResponse",
    "Hook",
    "PluginServer",
    "PublishConfig",
    "ReleaseContext",
    "ValidateResponse",
    "build_publish_args",
    # Validation
    "validate_path",
    "validate_registry_url",
]
