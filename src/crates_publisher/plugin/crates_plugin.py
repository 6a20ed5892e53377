"""CratesPlugin — publishes a Rust crate with ``cargo publish``.

The plugin handles the ``post-publish`` hook and exposes three entry
points to the host:

- ``get_info()``             — static metadata and the config schema
- ``execute(request)``       — run (or preview) the publish step
- ``validate(config)``       — per-field configuration check

Every expected failure is reported as a failed :class:`ExecuteResponse`;
nothing raised inside the plugin reaches the host.

Example
-------
>>> plugin = CratesPlugin()
>>> response = plugin.execute(
...     ExecuteRequest(hook=Hook.POST_PUBLISH, context=ReleaseContext(version="v1.2.3"), dry_run=True)
... )
>>> response.message
'Would publish crate version 1.2.3 to crates.io'
"""
from __future__ import annotations

import logging
import os
import shlex
import threading
from collections.abc import Mapping
from typing import Any

from crates_publisher.errors import (
    CommandExecutionError,
    ConfigurationError,
    InvalidConfigError,
)
from crates_publisher.executor import CommandExecutor, SubprocessExecutor
from crates_publisher.plugin.config_loader import TOKEN_ENV_VAR, ConfigLoader, PublishConfig
from crates_publisher.plugin.hooks import (
    ExecuteRequest,
    ExecuteResponse,
    Hook,
    PluginInfo,
    ReleaseContext,
    ValidateResponse,
    ValidationBuilder,
)
from crates_publisher.validation import validate_path, validate_registry_url

logger = logging.getLogger(__name__)

PLUGIN_NAME = "crates"
PLUGIN_VERSION = "2.0.0"
CARGO = "cargo"


def build_publish_args(config: PublishConfig) -> list[str]:
    """Translate *config* into ``cargo`` arguments.

    Flags appear in a fixed order and only when their field differs from
    the default.  The token is passed as a literal argument value.
    """
    args = ["publish"]

    if config.token:
        args += ["--token", config.token]
    if config.registry:
        args += ["--registry", config.registry]
    if config.allow_dirty:
        args.append("--allow-dirty")
    if config.no_verify:
        args.append("--no-verify")
    if config.manifest_path and not config.uses_default_manifest:
        args += ["--manifest-path", config.manifest_path]
    if config.features:
        args += ["--features", ",".join(config.features)]
    if config.all_features:
        args.append("--all-features")
    if config.no_default_features:
        args.append("--no-default-features")
    if config.jobs > 0:
        args += ["--jobs", str(config.jobs)]

    return args


def format_command(args: list[str]) -> str:
    """Render ``cargo <args>`` for display with the token value masked."""
    shown: list[str] = []
    mask_next = False
    for arg in args:
        shown.append("***" if mask_next else arg)
        mask_next = arg == "--token"
    return shlex.join([CARGO, *shown])


def normalize_version(version: str) -> str:
    """Strip a single leading ``v`` from a release version."""
    return version[1:] if version.startswith("v") else version


def working_directory(config: PublishConfig) -> str | None:
    """Directory ``cargo`` runs in, or ``None`` for the ambient directory."""
    if not config.manifest_path or config.uses_default_manifest:
        return None
    return os.path.dirname(config.manifest_path) or None


def validate_config(config: PublishConfig) -> None:
    """Check *config* for security issues, stopping at the first problem.

    Raises
    ------
    ConfigurationError:
        With the offending field named in the message.
    """
    try:
        validate_path(config.manifest_path)
    except ConfigurationError as exc:
        raise ConfigurationError(f"invalid manifest_path: {exc}") from exc

    if config.registry:
        try:
            validate_registry_url(config.registry)
        except ConfigurationError as exc:
            raise ConfigurationError(f"invalid registry: {exc}") from exc


class CratesPlugin:
    """Release plugin that publishes crates to crates.io or a private registry.

    Parameters
    ----------
    executor:
        Optional :class:`CommandExecutor` override (for testing).  Defaults
        to :class:`SubprocessExecutor`.
    config_loader:
        Optional :class:`ConfigLoader` override (for testing).
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        config_loader: ConfigLoader | None = None,
    ) -> None:
        self._executor = executor
        self._config_loader = config_loader or ConfigLoader()

    @property
    def executor(self) -> CommandExecutor:
        """The command executor, defaulting to :class:`SubprocessExecutor`."""
        if self._executor is None:
            self._executor = SubprocessExecutor()
        return self._executor

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_info(self) -> PluginInfo:
        """Return plugin metadata, handled hooks and the config schema."""
        return PluginInfo(
            name=PLUGIN_NAME,
            version=PLUGIN_VERSION,
            description="Publish crates to crates.io (Rust)",
            author="Relicta Team",
            hooks=[Hook.POST_PUBLISH],
            config_schema=config_schema(),
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(
        self,
        request: ExecuteRequest,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExecuteResponse:
        """Run the plugin for the hook named in *request*.

        Parameters
        ----------
        request:
            Hook, raw config, release context and dry-run flag.
        timeout:
            Seconds allowed for ``cargo publish`` before it is killed.
        cancel_event:
            Set from another thread to abort ``cargo publish``.

        Returns
        -------
        ExecuteResponse
            Unhandled hooks succeed with an explanatory message.
        """
        if request.hook != Hook.POST_PUBLISH:
            return ExecuteResponse(success=True, message=f"Hook {request.hook} not handled")

        try:
            config = self._config_loader.from_mapping(request.config)
        except InvalidConfigError as exc:
            return ExecuteResponse(success=False, error=str(exc))

        return self._publish(
            config,
            request.context,
            dry_run=request.dry_run,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def _publish(
        self,
        config: PublishConfig,
        release: ReleaseContext,
        *,
        dry_run: bool,
        timeout: float | None,
        cancel_event: threading.Event | None,
    ) -> ExecuteResponse:
        try:
            validate_config(config)
        except ConfigurationError as exc:
            return ExecuteResponse(
                success=False,
                error=f"configuration validation failed: {exc}",
            )

        args = build_publish_args(config)
        version = normalize_version(release.version)
        registry_name = config.registry_name

        if dry_run:
            return ExecuteResponse(
                success=True,
                message=f"Would publish crate version {version} to {registry_name}",
                outputs={
                    "version": version,
                    "registry": config.registry,
                    "manifest_path": config.manifest_path,
                    "allow_dirty": config.allow_dirty,
                    "no_verify": config.no_verify,
                    "features": list(config.features),
                    "all_features": config.all_features,
                    "no_default_features": config.no_default_features,
                    "jobs": config.jobs,
                    "command": format_command(args),
                },
            )

        if not config.token:
            return ExecuteResponse(
                success=False,
                error=(
                    "no API token provided: set token in config or "
                    f"{TOKEN_ENV_VAR} environment variable"
                ),
            )

        cwd = working_directory(config)
        logger.info("Publishing crate version %s to %s", version, registry_name)
        logger.debug("Running %s (cwd=%s)", format_command(args), cwd or ".")

        try:
            result = self.executor.run(
                CARGO,
                args,
                cwd=cwd,
                timeout=timeout,
                cancel_event=cancel_event,
            )
        except CommandExecutionError as exc:
            logger.error("cargo publish did not complete: %s", exc)
            return ExecuteResponse(
                success=False,
                error=f"cargo publish failed: {exc}\nOutput: {exc.output}",
            )

        if not result.ok:
            logger.error("cargo publish exited with status %d", result.returncode)
            return ExecuteResponse(
                success=False,
                error=(
                    f"cargo publish failed: exit status {result.returncode}\n"
                    f"Output: {result.output}"
                ),
            )

        logger.info("Published crate version %s to %s", version, registry_name)
        return ExecuteResponse(
            success=True,
            message=f"Published crate version {version} to {registry_name}",
            outputs={
                "version": version,
                "registry": config.registry,
                "output": result.output,
            },
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, config: Mapping[str, Any] | None) -> ValidateResponse:
        """Validate a raw configuration map, collecting every problem.

        A missing token is not an error here; it may be supplied through
        the environment at run time.
        """
        builder = ValidationBuilder()
        raw = dict(config or {})

        try:
            parsed = self._config_loader.from_mapping(raw)
        except InvalidConfigError as exc:
            for field, message in exc.field_errors:
                builder.add_error(field, message)
            parsed = None

        manifest_path = parsed.manifest_path if parsed else _string_value(raw, "manifest_path")
        if manifest_path is not None:
            try:
                validate_path(manifest_path)
            except ConfigurationError as exc:
                builder.add_error("manifest_path", str(exc))

        registry = parsed.registry if parsed else _string_value(raw, "registry")
        if registry:
            try:
                validate_registry_url(registry)
            except ConfigurationError as exc:
                builder.add_error("registry", str(exc))

        jobs = raw.get("jobs")
        if isinstance(jobs, (int, float)) and not isinstance(jobs, bool) and jobs < 0:
            builder.add_error("jobs", "jobs must be a positive integer")

        return builder.build()


def config_schema() -> dict[str, Any]:
    """JSON schema describing the accepted configuration keys."""
    properties: dict[str, Any] = {}
    for name, field in PublishConfig.model_fields.items():
        annotation = field.annotation
        if annotation is bool:
            prop: dict[str, Any] = {"type": "boolean", "default": field.default}
        elif annotation is int:
            prop = {"type": "integer"}
        elif name == "features":
            prop = {"type": "array", "items": {"type": "string"}}
        else:
            prop = {"type": "string"}
            if name == "manifest_path":
                prop["default"] = field.default
        prop["description"] = field.description
        properties[name] = prop
    return {"type": "object", "properties": properties}


def _string_value(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    return value if isinstance(value, str) else None
