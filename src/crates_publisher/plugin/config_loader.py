"""Publish configuration loader with Pydantic v2 validation.

Turns the untyped configuration map sent by the host (or a YAML file
used with the CLI) into a typed :class:`PublishConfig`.  Every field has
an independent default; keys that are absent, ``None`` or an empty string
fall back to it.  The API token may instead come from the
``CARGO_REGISTRY_TOKEN`` environment variable, with an explicit config
value taking precedence.

Example
-------
>>> loader = ConfigLoader(environ={"CARGO_REGISTRY_TOKEN": "env-token"})
>>> config = loader.from_mapping({"allow_dirty": True})
>>> config.token, config.manifest_path
('env-token', 'Cargo.toml')
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from crates_publisher.errors import ConfigurationError, InvalidConfigError

TOKEN_ENV_VAR = "CARGO_REGISTRY_TOKEN"
DEFAULT_MANIFEST_PATH = "Cargo.toml"


class PublishConfig(BaseModel):
    """Typed configuration for a ``cargo publish`` run."""

    model_config = {"extra": "allow"}

    token: str = Field(
        default="",
        description=f"Crates.io API token (or use {TOKEN_ENV_VAR} env)",
    )
    registry: str = Field(
        default="",
        description="Registry to publish to (optional, for private registries)",
    )
    allow_dirty: bool = Field(
        default=False,
        description="Allow publishing with uncommitted changes",
    )
    no_verify: bool = Field(default=False, description="Skip crate verification")
    manifest_path: str = Field(
        default=DEFAULT_MANIFEST_PATH,
        description="Path to Cargo.toml",
    )
    features: list[str] = Field(default_factory=list, description="Features to activate")
    all_features: bool = Field(
        default=False,
        description="Activate all available features",
    )
    no_default_features: bool = Field(
        default=False,
        description="Do not activate the default feature",
    )
    jobs: int = Field(default=0, description="Number of parallel jobs")

    @model_validator(mode="before")
    @classmethod
    def drop_empty_values(cls, data: Any) -> Any:
        # None and "" mean "not set" so the field default applies.
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None and v != ""}
        return data

    @field_validator("features", mode="before")
    @classmethod
    def split_feature_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def uses_default_manifest(self) -> bool:
        """True when the manifest is the conventional ``Cargo.toml`` at the root."""
        return self.manifest_path == DEFAULT_MANIFEST_PATH

    @property
    def registry_name(self) -> str:
        """Human-readable registry name for messages."""
        return self.registry or "crates.io"


class ConfigLoader:
    """Builds :class:`PublishConfig` objects from maps and YAML files.

    Parameters
    ----------
    environ:
        Environment mapping consulted for the token fallback.  Defaults to
        :data:`os.environ`, read at call time.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def from_mapping(self, raw: Mapping[str, Any] | None) -> PublishConfig:
        """Parse an untyped configuration map.

        Parameters
        ----------
        raw:
            Key/value configuration as sent by the host.  ``None`` is
            treated as an empty map.

        Returns
        -------
        PublishConfig
            Configuration with defaults and the token fallback applied.

        Raises
        ------
        InvalidConfigError:
            When a value has the wrong type (e.g. ``jobs: "many"``).
        """
        data = dict(raw or {})
        if not data.get("token"):
            environ = self._environ if self._environ is not None else os.environ
            data["token"] = environ.get(TOKEN_ENV_VAR, "")

        try:
            return PublishConfig.model_validate(data)
        except ValidationError as exc:
            raise InvalidConfigError(_field_errors(exc)) from exc

    def load(self, config_path: Path) -> dict[str, Any]:
        """Read a YAML configuration file into a raw map.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ConfigurationError:
            When the document is not a YAML mapping.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Publish config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            return self._as_mapping(yaml.safe_load(fh))

    def load_string(self, yaml_content: str) -> dict[str, Any]:
        """Parse YAML text into a raw configuration map."""
        return self._as_mapping(yaml.safe_load(yaml_content))

    @staticmethod
    def _as_mapping(document: object) -> dict[str, Any]:
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigurationError(
                f"config must be a mapping, got {type(document).__name__}"
            )
        return document


def _field_errors(exc: ValidationError) -> list[tuple[str, str]]:
    errors: list[tuple[str, str]] = []
    for error in exc.errors():
        location = error.get("loc") or ("config",)
        errors.append((str(location[0]), str(error.get("msg", "invalid value"))))
    return errors
