"""
Process-level instructions: run, assert, wait, clone, sudo, services.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import AfterValidator, Field

from devsetup.core.instructions import runner
from devsetup.core.instructions.base import BaseInstruction
from devsetup.core.instructions.errors import (
    AssertionMismatchError,
    ConditionTimeoutError,
    PlatformMismatchError,
    ProcessExitError,
)

if TYPE_CHECKING:
    from devsetup.core.observability.log_bus import Logger, StdlibLogger

# Pause between ``sc stop`` and ``sc start``.
SERVICE_RESTART_DELAY = 2.0


def _non_empty(value: str) -> str:
    if not value.strip():
        raise ValueError("command must not be empty")
    return value


CommandLine = Annotated[str, AfterValidator(_non_empty)]


class Run(BaseInstruction):
    """Run a command. Split on whitespace unless ``shell`` is set."""

    kind: Literal["run"] = "run"
    command: CommandLine
    shell: bool = False

    def argv(self) -> list[str]:
        if self.shell:
            return runner.shell_argv(self.command)
        return self.command.split()

    def describe(self) -> str:
        return f"run {self.command!r}" + (" (shell)" if self.shell else "")

    def _apply(self, log: Logger | StdlibLogger) -> None:
        result = runner.run_command(self.argv(), capture=False)
        if not result.ok:
            raise ProcessExitError(result.argv, result.returncode, result.stderr)


class Assert(BaseInstruction):
    """Succeed when ``command`` exits 0 and its stdout contains ``expect``."""

    kind: Literal["assert"] = "assert"
    command: CommandLine
    expect: str = ""

    def describe(self) -> str:
        return f"check {self.command!r} outputs {self.expect!r}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        result = runner.run_command(self.command.split())
        if not result.ok:
            raise ProcessExitError(result.argv, result.returncode, result.stderr)
        if self.expect not in result.stdout:
            raise AssertionMismatchError(self.command, self.expect, result.stdout)


class WaitForCondition(BaseInstruction):
    """Poll ``check_command`` until it exits 0 or the timeout elapses."""

    kind: Literal["wait_for_condition"] = "wait_for_condition"
    check_command: CommandLine
    timeout_secs: float = Field(gt=0)
    poll_interval: float = Field(default=1.0, gt=0)

    def describe(self) -> str:
        return f"wait up to {self.timeout_secs:g}s for {self.check_command!r}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        argv = self.check_command.split()
        deadline = time.monotonic() + self.timeout_secs
        attempts = 0
        while True:
            attempts += 1
            remaining = max(deadline - time.monotonic(), 0.01)
            if runner.run_command(argv, timeout=remaining).ok:
                log.debug(f"condition met after {attempts} attempt(s)")
                return
            if time.monotonic() + self.poll_interval > deadline:
                raise ConditionTimeoutError(self.check_command, self.timeout_secs)
            time.sleep(self.poll_interval)


class CloneRepository(BaseInstruction):
    kind: Literal["clone_repository"] = "clone_repository"
    url: str
    path: str | None = None

    def describe(self) -> str:
        return f"git clone {self.url}" + (f" into {self.path}" if self.path else "")

    def _apply(self, log: Logger | StdlibLogger) -> None:
        argv = ["git", "clone", self.url]
        if self.path:
            argv.append(self.path)
        result = runner.run_command(argv)
        if not result.ok:
            raise ProcessExitError(result.argv, result.returncode, result.stderr)


class RequestSudo(BaseInstruction):
    """Ask for elevated privileges up front so later steps don't prompt."""

    kind: Literal["request_sudo"] = "request_sudo"
    reason: str = ""

    def describe(self) -> str:
        return f"request administrator privileges ({self.reason})"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        log.info(f"Administrator privileges required: {self.reason}")
        if runner.is_windows():
            if not _windows_is_admin():
                log.warn("Not running elevated; restart the terminal as Administrator")
            return
        if runner.is_root():
            return
        result = runner.run_command(["sudo", "-v"], capture=False)
        if not result.ok:
            raise ProcessExitError(result.argv, result.returncode, result.stderr)


def _windows_is_admin() -> bool:
    import ctypes

    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return False


class RestartService(BaseInstruction):
    kind: Literal["restart_service"] = "restart_service"
    service_name: str

    def describe(self) -> str:
        return f"restart service {self.service_name}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        system = runner.host_system()
        if system == "Windows":
            runner.run_command(["sc", "stop", self.service_name])
            time.sleep(SERVICE_RESTART_DELAY)
            argv = ["sc", "start", self.service_name]
            sudo = False
        elif runner.which("systemctl"):
            argv = ["systemctl", "restart", self.service_name]
            sudo = True
        elif runner.which("service"):
            argv = ["service", self.service_name, "restart"]
            sudo = True
        elif system == "Darwin" and runner.which("launchctl"):
            argv = ["launchctl", "kickstart", "-k", f"system/{self.service_name}"]
            sudo = True
        else:
            raise PlatformMismatchError(
                f"No service manager found to restart {self.service_name!r}"
            )
        result = runner.run_command(argv, needs_sudo=sudo)
        if not result.ok:
            raise ProcessExitError(result.argv, result.returncode, result.stderr)
