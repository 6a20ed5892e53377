"""Plugin core package for crates-publisher.

Exports the CratesPlugin entry point, lifecycle hook models, the
configuration loader and the JSON-lines server.
"""
from __future__ import annotations

from crates_publisher.plugin.config_loader import ConfigLoader, PublishConfig
from crates_publisher.plugin.crates_plugin import CratesPlugin, build_publish_args
from crates_publisher.plugin.hooks import (
    ExecuteRequest,
    ExecuteResponse,
    FieldError,
    Hook,
    PluginInfo,
    ReleaseContext,
    ValidateResponse,
    ValidationBuilder,
)
from crates_publisher.plugin.server import PluginServer

__all__ = [
    "ConfigLoader",
    "CratesPlugin",
    "ExecuteRequest",
    "ExecuteResponse",
    "FieldError",
    "Hook",
    "PluginInfo",
    "PluginServer",
    "PublishConfig",
    "ReleaseContext",
    "ValidateResponse",
    "ValidationBuilder",
    "build_publish_args",
]
