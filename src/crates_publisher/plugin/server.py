"""JSON-lines request server for driving the plugin from a host process.

The host writes one JSON object per line to the plugin's stdin and reads
one JSON reply per line from its stdout::

    {"id": 1, "method": "execute", "params": {"hook": "post-publish", "dry_run": true,
                                              "context": {"version": "v1.2.3"}}}
    {"id": 1, "result": {"success": true, "message": "Would publish crate ...", ...}}

Supported methods are ``info``, ``execute`` and ``validate``.  Malformed
lines and unknown methods are answered with an ``error`` string instead
of a ``result``; the server keeps reading until end of input.
"""
from __future__ import annotations

import json
import logging
from typing import IO, Any

from pydantic import Field, ValidationError

from crates_publisher.plugin.crates_plugin import CratesPlugin
from crates_publisher.plugin.hooks import ExecuteRequest

logger = logging.getLogger(__name__)


class ExecuteParams(ExecuteRequest):
    """``execute`` params: an :class:`ExecuteRequest` plus an optional timeout.

    ``timeout`` is in seconds; ``null`` disables the server default.
    """

    timeout: float | None = Field(default=None, ge=0)


class PluginServer:
    """Dispatches JSON requests to a :class:`CratesPlugin`.

    Parameters
    ----------
    plugin:
        The plugin instance to serve.  A default :class:`CratesPlugin` is
        created when omitted.
    timeout:
        Default timeout in seconds applied to ``execute`` calls that do
        not carry their own ``timeout`` param.
    """

    def __init__(
        self,
        plugin: CratesPlugin | None = None,
        timeout: float | None = None,
    ) -> None:
        self._plugin = plugin or CratesPlugin()
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        """Handle one decoded request and return the reply object."""
        request_id = message.get("id")
        method = message.get("method")
        params = message.get("params") or {}

        if not isinstance(params, dict):
            return _error(request_id, "params must be an object")

        if method == "info":
            return _result(request_id, self._plugin.get_info().model_dump(mode="json"))

        if method == "validate":
            config = params.get("config", params)
            if not isinstance(config, dict):
                return _error(request_id, "config must be an object")
            return _result(request_id, self._plugin.validate(config).model_dump(mode="json"))

        if method == "execute":
            try:
                request = ExecuteParams.model_validate(params)
            except ValidationError as exc:
                return _error(request_id, f"invalid execute request: {exc}")
            timeout = request.timeout if "timeout" in params else self._timeout
            response = self._plugin.execute(request, timeout=timeout)
            return _result(request_id, response.model_dump(mode="json"))

        return _error(request_id, f"unknown method: {method}")

    def handle_line(self, line: str) -> dict[str, Any]:
        """Decode a JSON line and dispatch it."""
        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            return _error(None, f"invalid JSON: {exc}")
        if not isinstance(message, dict):
            return _error(None, "request must be a JSON object")
        return self.handle(message)

    def serve(self, stdin: IO[str], stdout: IO[str]) -> int:
        """Process requests until *stdin* is exhausted.

        Returns
        -------
        int
            Number of requests answered.
        """
        handled = 0
        for line in stdin:
            if not line.strip():
                continue
            reply = self.handle_line(line)
            stdout.write(json.dumps(reply) + "\n")
            stdout.flush()
            handled += 1
        logger.info("Plugin server stopped after %d requests", handled)
        return handled


def _result(request_id: object, result: dict[str, Any]) -> dict[str, Any]:
    return {"id": request_id, "result": result}


def _error(request_id: object, message: str) -> dict[str, Any]:
    logger.warning("Rejected plugin request %s: %s", request_id, message)
    return {"id": request_id, "error": message}
