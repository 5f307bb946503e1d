"""
User-environment instructions: environment variables and desktop shortcuts.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from devsetup.core.instructions import runner
from devsetup.core.instructions.base import BaseInstruction
from devsetup.core.instructions.errors import FileOperationError, ProcessExitError
from devsetup.core.instructions.files import make_executable

if TYPE_CHECKING:
    from devsetup.core.observability.log_bus import Logger, StdlibLogger


# login shell -> rc file, relative to $HOME
_PROFILE_MAP = {
    "bash": ".bashrc",
    "zsh": ".zshrc",
    "fish": ".config/fish/config.fish",
}
_DEFAULT_PROFILE = ".profile"


def shell_profile(home: Path | None = None) -> Path:
    """rc file of the user's login shell (``$SHELL``)."""
    home = home or Path.home()
    shell = Path(os.environ.get("SHELL", "")).name
    return home / _PROFILE_MAP.get(shell, _DEFAULT_PROFILE)


def export_line(name: str, value: str, profile: Path) -> str:
    if profile.name == "config.fish":
        return f'set -gx {name} "{value}"'
    return f'export {name}="{value}"'


class AddEnvVar(BaseInstruction):
    """Persist an environment variable for future shells."""

    kind: Literal["add_env_var"] = "add_env_var"
    name: str
    value: str

    def describe(self) -> str:
        return f"set {self.name}={self.value}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        if runner.is_windows():
            result = runner.run_command(["setx", self.name, self.value])
            if not result.ok:
                raise ProcessExitError(result.argv, result.returncode, result.stderr)
            return

        profile = shell_profile()
        line = export_line(self.name, self.value, profile)
        try:
            existing = profile.read_text(encoding="utf-8") if profile.is_file() else ""
            if line in existing.splitlines():
                log.debug(f"{self.name} already exported in {profile}")
                return
            profile.parent.mkdir(parents=True, exist_ok=True)
            with profile.open("a", encoding="utf-8") as fh:
                if existing and not existing.endswith("\n"):
                    fh.write("\n")
                fh.write(line + "\n")
        except OSError as e:
            raise FileOperationError(f"Cannot update {profile}: {e}") from e
        log.info(f"Added {self.name} to {profile}")


def desktop_dir() -> Path:
    return Path.home() / "Desktop"


def desktop_entry(name: str, target: str, icon: str | None) -> str:
    lines = [
        "[Desktop Entry]",
        "Version=1.0",
        "Type=Application",
        f"Name={name}",
        f"Exec={target}",
    ]
    if icon:
        lines.append(f"Icon={icon}")
    lines.append("Terminal=false")
    return "\n".join(lines) + "\n"


def _powershell_shortcut(link: Path, target: str, icon: str | None) -> str:
    script = [
        f"$s = (New-Object -ComObject WScript.Shell).CreateShortcut('{link}')",
        f"$s.TargetPath = '{target}'",
    ]
    if icon:
        script.append(f"$s.IconLocation = '{icon}'")
    script.append("$s.Save()")
    return "; ".join(script)


class CreateShortcut(BaseInstruction):
    kind: Literal["create_shortcut"] = "create_shortcut"
    name: str
    target: str
    icon: str | None = None

    def describe(self) -> str:
        return f"create desktop shortcut {self.name!r} -> {self.target}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        system = runner.host_system()
        desktop = desktop_dir()
        if system == "Windows":
            link = desktop / f"{self.name}.lnk"
            argv = [
                "powershell",
                "-NoProfile",
                "-Command",
                _powershell_shortcut(link, self.target, self.icon),
            ]
            result = runner.run_command(argv)
            if not result.ok:
                raise ProcessExitError(result.argv, result.returncode, result.stderr)
            return

        try:
            desktop.mkdir(parents=True, exist_ok=True)
            if system == "Darwin":
                link = desktop / self.name
                link.unlink(missing_ok=True)
                link.symlink_to(self.target)
            else:
                link = desktop / f"{self.name}.desktop"
                link.write_text(desktop_entry(self.name, self.target, self.icon), encoding="utf-8")
                make_executable(link)
        except OSError as e:
            raise FileOperationError(f"Cannot create shortcut {self.name!r}: {e}") from e
        log.info(f"Created shortcut {link}")
