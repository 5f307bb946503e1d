"""
Process and download runner.

The SINGLE PLACE where ``subprocess.run`` is called and where files are
fetched over the network. Instructions reach these functions through
the module (``runner.run_command(...)``) so tests can swap them out.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import subprocess
import urllib.error
import urllib.request
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from devsetup import __version__
from devsetup.core.instructions.errors import DownloadError

logger = logging.getLogger(__name__)

NOT_FOUND_EXIT_CODE = 127
_CHUNK_SIZE = 64 * 1024
_DOWNLOAD_TIMEOUT = 60


@dataclass(frozen=True)
class CmdResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def host_system() -> str:
    """``platform.system()``: Windows, Linux, Darwin, ..."""
    return platform.system()


def is_windows() -> bool:
    return host_system() == "Windows"


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def which(name: str) -> str | None:
    return shutil.which(name)


def run_command(
    argv: Sequence[str],
    *,
    capture: bool = True,
    needs_sudo: bool = False,
    timeout: float | None = None,
) -> CmdResult:
    """Run ``argv`` and return its result.

    Never raises for a missing executable or a timeout; those come back
    as exit code 127 / -1 with the reason in ``stderr``.

    Args:
        argv: Command and arguments, no shell.
        capture: Capture stdout/stderr. Interactive commands
            (password prompts, installers with UI) pass False.
        needs_sudo: Prefix ``sudo`` when not root on Unix.
        timeout: Seconds before the process is killed.
    """
    cmd = [str(part) for part in argv]
    if needs_sudo and not is_windows() and not is_root():
        cmd = ["sudo", *cmd]

    logger.debug("exec: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        return CmdResult(tuple(cmd), NOT_FOUND_EXIT_CODE, "", f"{cmd[0]}: command not found")
    except subprocess.TimeoutExpired:
        return CmdResult(tuple(cmd), -1, "", f"timed out after {timeout}s")
    except OSError as e:
        return CmdResult(tuple(cmd), NOT_FOUND_EXIT_CODE, "", str(e))

    logger.debug("exit %d: %s", result.returncode, cmd[0])
    return CmdResult(
        tuple(cmd),
        result.returncode,
        result.stdout or "",
        result.stderr or "",
    )


def shell_argv(command: str) -> list[str]:
    """Wrap ``command`` for the platform shell."""
    if is_windows():
        return ["cmd", "/c", command]
    return ["sh", "-c", command]


def download_file(url: str, dest: Path) -> Path:
    """Stream ``url`` into ``dest``; partial files are removed on error."""
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    request = urllib.request.Request(url, headers={"User-Agent": f"devsetup/{__version__}"})
    logger.debug("download: %s -> %s", url, dest)
    try:
        with urllib.request.urlopen(request, timeout=_DOWNLOAD_TIMEOUT) as response, dest.open(
            "wb"
        ) as fh:
            for chunk in iter(lambda: response.read(_CHUNK_SIZE), b""):
                fh.write(chunk)
    except urllib.error.HTTPError as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(url, f"HTTP {e.code}") from e
    except (urllib.error.URLError, OSError) as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(url, str(getattr(e, "reason", e))) from e
    return dest
