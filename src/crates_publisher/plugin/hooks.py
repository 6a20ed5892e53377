"""Release lifecycle hooks and the request/response models exchanged with the host.

The host release workflow invokes the plugin at named lifecycle points
(:class:`Hook`).  Each invocation carries an :class:`ExecuteRequest` and
is answered with an :class:`ExecuteResponse`.  Before a run, tooling may
call the separate validate entry point, answered with a
:class:`ValidateResponse` built through :class:`ValidationBuilder`.

All models are Pydantic v2 so they round-trip through the JSON wire
format used by :mod:`crates_publisher.plugin.server`.

Example
-------
>>> request = ExecuteRequest.model_validate(
...     {"hook": "post-publish", "config": {}, "context": {"version": "v1.2.3"}, "dry_run": True}
... )
>>> request.hook == Hook.POST_PUBLISH
True
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Hook(str, Enum):
    """Named points in the release workflow."""

    PRE_INIT = "pre-init"
    POST_INIT = "post-init"
    PRE_VERSION = "pre-version"
    POST_VERSION = "post-version"
    PRE_NOTES = "pre-notes"
    POST_NOTES = "post-notes"
    PRE_PUBLISH = "pre-publish"
    POST_PUBLISH = "post-publish"
    ON_SUCCESS = "on-success"
    ON_ERROR = "on-error"

    def __str__(self) -> str:
        return self.value


class ReleaseContext(BaseModel):
    """Release metadata supplied by the host for the current run."""

    model_config = {"extra": "allow"}

    version: str
    previous_version: str | None = Field(default=None)
    repository_url: str | None = Field(default=None)
    branch: str | None = Field(default=None)
    tag_name: str | None = Field(default=None)
    release_notes: str | None = Field(default=None)


class ExecuteRequest(BaseModel):
    """A single hook invocation.

    ``hook`` is kept as a plain string so hooks this plugin does not know
    about are acknowledged rather than rejected.
    """

    hook: str
    config: dict[str, Any] = Field(default_factory=dict)
    context: ReleaseContext
    dry_run: bool = Field(default=False)


class ExecuteResponse(BaseModel):
    """Result of a hook invocation.

    ``error`` is only populated when ``success`` is False.
    """

    success: bool
    message: str = Field(default="")
    error: str = Field(default="")
    outputs: dict[str, Any] = Field(default_factory=dict)


class FieldError(BaseModel):
    """A single per-field configuration problem."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidateResponse(BaseModel):
    """Result of the validate entry point."""

    valid: bool
    errors: list[FieldError] = Field(default_factory=list)


class PluginInfo(BaseModel):
    """Static plugin metadata reported to the host."""

    name: str
    version: str
    description: str
    author: str
    hooks: list[Hook]
    config_schema: dict[str, Any] = Field(default_factory=dict)


class ValidationBuilder:
    """Accumulates per-field validation errors.

    Example
    -------
    >>> builder = ValidationBuilder()
    >>> builder.add_error("jobs", "jobs must be a positive integer")
    >>> builder.build().valid
    False
    """

    def __init__(self) -> None:
        self._errors: list[FieldError] = []

    def add_error(self, field: str, message: str) -> None:
        """Record an error against *field*."""
        self._errors.append(FieldError(field=field, message=message))

    def build(self) -> ValidateResponse:
        """Return the accumulated :class:`ValidateResponse`."""
        return ValidateResponse(valid=not self._errors, errors=list(self._errors))
