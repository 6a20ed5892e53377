"""Shared fixtures for crates-publisher tests."""
from __future__ import annotations

import threading

import pytest

from crates_publisher.errors import CommandExecutionError
from crates_publisher.executor import CommandExecutor, CommandResult

PUBLIC_ADDRESS = "93.184.216.34"


class FakeExecutor(CommandExecutor):
    """Records calls instead of spawning processes.

    ``returncode``/``output`` shape the returned :class:`CommandResult`;
    ``error`` is raised instead when set.
    """

    def __init__(
        self,
        returncode: int = 0,
        output: str = "success",
        error: CommandExecutionError | None = None,
    ) -> None:
        self.returncode = returncode
        self.output = output
        self.error = error
        self.calls: list[dict[str, object]] = []

    def run(
        self,
        name: str,
        args: list[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CommandResult:
        self.calls.append(
            {
                "name": name,
                "args": list(args),
                "cwd": cwd,
                "timeout": timeout,
                "cancel_event": cancel_event,
            }
        )
        if self.error is not None:
            raise self.error
        return CommandResult(
            command=[name, *args],
            returncode=self.returncode,
            output=self.output,
            cwd=cwd,
        )


@pytest.fixture(autouse=True)
def public_dns(monkeypatch: pytest.MonkeyPatch) -> None:
    """Resolve every registry host to a public address without touching the network."""
    monkeypatch.setattr(
        "crates_publisher.validation.resolve_host",
        lambda host: [PUBLIC_ADDRESS],
    )


@pytest.fixture(autouse=True)
def no_token_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CARGO_REGISTRY_TOKEN", raising=False)


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def executor_factory() -> type[FakeExecutor]:
    return FakeExecutor
