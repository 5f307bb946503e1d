"""
Package-manager instructions.

Managers are probed in a fixed order; every available one is tried
until an install succeeds.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from devsetup.core.instructions import runner
from devsetup.core.instructions.base import BaseInstruction
from devsetup.core.instructions.errors import NoPackageManagerError, ProcessExitError

if TYPE_CHECKING:
    from devsetup.core.observability.log_bus import Logger, StdlibLogger


@dataclass(frozen=True)
class PackageManager:
    name: str
    command: Callable[[str], list[str]]
    needs_sudo: bool = False
    binary: str = ""

    def available(self) -> bool:
        return runner.which(self.binary or self.name) is not None


# ── System package managers ─────────────────────────────────────

UNIX_APP_MANAGERS: tuple[PackageManager, ...] = (
    PackageManager("apt", lambda p: ["apt", "install", "-y", p], needs_sudo=True),
    PackageManager("yum", lambda p: ["yum", "install", "-y", p], needs_sudo=True),
    PackageManager("dnf", lambda p: ["dnf", "install", "-y", p], needs_sudo=True),
    PackageManager("pacman", lambda p: ["pacman", "-S", "--noconfirm", p], needs_sudo=True),
    PackageManager("zypper", lambda p: ["zypper", "install", "-y", p], needs_sudo=True),
    PackageManager("brew", lambda p: ["brew", "install", p]),
)

WINDOWS_APP_MANAGERS: tuple[PackageManager, ...] = (
    PackageManager("choco", lambda p: ["choco", "install", p, "-y"]),
    PackageManager("winget", lambda p: ["winget", "install", "--id", p, "-e"]),
)

# ── Language package managers ───────────────────────────────────

LANGUAGE_MANAGERS: tuple[PackageManager, ...] = (
    PackageManager("npm", lambda p: ["npm", "install", "-g", p]),
    PackageManager("yarn", lambda p: ["yarn", "global", "add", p]),
    PackageManager("bun", lambda p: ["bun", "add", "-g", p]),
    PackageManager("pnpm", lambda p: ["pnpm", "add", "-g", p]),
    PackageManager("cargo", lambda p: ["cargo", "install", p]),
    PackageManager("pipx", lambda p: ["pipx", "install", p]),
    PackageManager("pip", lambda p: ["pip", "install", "--user", p]),
    PackageManager("gem", lambda p: ["gem", "install", p]),
    PackageManager("go", lambda p: ["go", "install", f"{p}@latest"]),
)


def install_with_first_available(
    package_name: str,
    managers: tuple[PackageManager, ...],
    log: Logger | StdlibLogger,
) -> str:
    """Try each available manager in order; return the one that worked."""
    last_failure: runner.CmdResult | None = None
    for manager in managers:
        if not manager.available():
            continue
        log.debug(f"installing {package_name} with {manager.name}")
        result = runner.run_command(manager.command(package_name), needs_sudo=manager.needs_sudo)
        if result.ok:
            log.info(f"Installed {package_name} with {manager.name}")
            return manager.name
        log.warn(f"{manager.name} could not install {package_name} (exit {result.returncode})")
        last_failure = result

    if last_failure is None:
        raise NoPackageManagerError(package_name, [m.name for m in managers])
    raise ProcessExitError(last_failure.argv, last_failure.returncode, last_failure.stderr)


class InstallApplication(BaseInstruction):
    """Install a desktop/system application via the OS package manager."""

    kind: Literal["install_application"] = "install_application"
    package_name: str

    def describe(self) -> str:
        return f"install application {self.package_name}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        managers = WINDOWS_APP_MANAGERS if runner.is_windows() else UNIX_APP_MANAGERS
        install_with_first_available(self.package_name, managers, log)


class InstallPackage(BaseInstruction):
    """Install a tool through a language ecosystem package manager."""

    kind: Literal["install_package"] = "install_package"
    package_name: str

    def describe(self) -> str:
        return f"install package {self.package_name}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        install_with_first_available(self.package_name, LANGUAGE_MANAGERS, log)
