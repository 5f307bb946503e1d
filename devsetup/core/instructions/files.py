"""
File-level instructions: downloads, installers, archives, backups, edits.
"""

from __future__ import annotations

import os
import shutil
import stat
import tarfile
import tempfile
import time
import zipfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Literal
from urllib.parse import urlparse

from devsetup.core.instructions import runner
from devsetup.core.instructions.base import BaseInstruction
from devsetup.core.instructions.errors import (
    ExecutionError,
    FileOperationError,
    PlatformMismatchError,
    ProcessExitError,
    UnsupportedArchiveError,
    UnsupportedFileTypeError,
)

if TYPE_CHECKING:
    from devsetup.core.observability.log_bus import Logger, StdlibLogger


# ── Downloads ───────────────────────────────────────────────────


class DownloadTo(BaseInstruction):
    kind: Literal["download_to"] = "download_to"
    url: str
    path: str

    def describe(self) -> str:
        return f"download {self.url} to {self.path}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        runner.download_file(self.url, Path(self.path).expanduser())


# Tried in order when a silent .exe rejects "/S".
SILENT_EXE_FALLBACK_FLAGS = ("/SILENT", "/VERYSILENT", "/quiet", "/Q", "/s", "--silent", "-s")
SILENT_MSI_FLAGS = ("/quiet", "/qn", "/norestart")


def url_filename(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or "download"


class DownloadAndExec(BaseInstruction):
    """Fetch an installer to a temp path and run it by file type.

    ``.exe``/``.msi`` (Windows), ``.deb``/``.rpm`` (Linux), ``.pkg``
    (macOS) and extensionless binaries (Unix). Archives must go through
    ``ExtractArchive`` instead.
    """

    kind: Literal["download_and_exec"] = "download_and_exec"
    url: str
    silent: bool = False
    custom_args: tuple[str, ...] | None = None

    def describe(self) -> str:
        mode = " silently" if self.silent else ""
        if self.custom_args:
            mode += f" with {' '.join(self.custom_args)}"
        return f"download and run {url_filename(self.url)}{mode}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        filename = url_filename(self.url)
        execute = self._executor_for(filename)

        # private directory per call; workers may fetch identically named files
        with tempfile.TemporaryDirectory(prefix="devsetup-") as workdir:
            tmp = Path(workdir) / filename
            runner.download_file(self.url, tmp)
            execute(tmp, log)

    def _executor_for(self, filename: str) -> Callable[[Path, Logger | StdlibLogger], None]:
        """Pick the executor before anything is downloaded."""
        suffix = PurePosixPath(filename).suffix.lower()
        system = runner.host_system()

        if suffix == ".zip":
            raise UnsupportedFileTypeError(
                f"{filename} is an archive; use extract_archive instead"
            )
        executors: dict[str, tuple[set[str], Callable[[Path, Logger | StdlibLogger], None]]] = {
            ".exe": ({"Windows"}, self._run_exe),
            ".msi": ({"Windows"}, self._run_msi),
            ".deb": ({"Linux"}, self._run_deb),
            ".rpm": ({"Linux"}, self._run_rpm),
            ".pkg": ({"Darwin"}, self._run_pkg),
            "": ({"Linux", "Darwin"}, self._run_binary),
        }
        if suffix not in executors:
            raise UnsupportedFileTypeError(f"Unsupported file type: {filename}")
        systems, executor = executors[suffix]
        if system not in systems:
            raise PlatformMismatchError(
                f"{filename} cannot be executed on {system} (needs {', '.join(sorted(systems))})"
            )
        return executor

    def _args(self, silent_default: tuple[str, ...]) -> list[str]:
        if self.custom_args:
            return list(self.custom_args)
        if self.silent:
            return list(silent_default)
        return []

    @staticmethod
    def _check(result: runner.CmdResult) -> None:
        if not result.ok:
            raise ProcessExitError(result.argv, result.returncode, result.stderr)

    def _run_exe(self, path: Path, log: Logger | StdlibLogger) -> None:
        result = runner.run_command([str(path), *self._args(("/S",))], capture=False)
        if result.ok:
            return
        if not self.silent or self.custom_args:
            self._check(result)
        for flag in SILENT_EXE_FALLBACK_FLAGS:
            log.debug(f"/S rejected, retrying with {flag}")
            result = runner.run_command([str(path), flag], capture=False)
            if result.ok:
                return
        self._check(result)

    def _run_msi(self, path: Path, log: Logger | StdlibLogger) -> None:
        argv = ["msiexec", "/i", str(path), *self._args(SILENT_MSI_FLAGS)]
        self._check(runner.run_command(argv, capture=False))

    def _run_deb(self, path: Path, log: Logger | StdlibLogger) -> None:
        argv = ["apt-get", "install", "-y", str(path)]
        self._check(runner.run_command(argv, needs_sudo=True))

    def _run_rpm(self, path: Path, log: Logger | StdlibLogger) -> None:
        manager = "dnf" if runner.which("dnf") else "yum"
        argv = [manager, "install", "-y", str(path)]
        self._check(runner.run_command(argv, needs_sudo=True))

    def _run_pkg(self, path: Path, log: Logger | StdlibLogger) -> None:
        argv = ["installer", "-pkg", str(path), "-target", "/"]
        self._check(runner.run_command(argv, needs_sudo=True))

    def _run_binary(self, path: Path, log: Logger | StdlibLogger) -> None:
        make_executable(path)
        self._check(runner.run_command([str(path), *self._args(())], capture=False))


# ── Archives ────────────────────────────────────────────────────

_TAR_MODES = {
    "gz": "r:gz",
    "tgz": "r:gz",
    "bz2": "r:bz2",
    "tbz2": "r:bz2",
    "xz": "r:xz",
    "txz": "r:xz",
}


class ExtractArchive(BaseInstruction):
    """Unpack zip / gzip / bzip2 / xz archives.

    The format comes from the last extension only (``.tar.gz`` -> gz).
    """

    kind: Literal["extract_archive"] = "extract_archive"
    archive_path: str
    destination: str

    def describe(self) -> str:
        return f"extract {self.archive_path} to {self.destination}"

    def archive_format(self) -> str:
        ext = PurePosixPath(self.archive_path).suffix.lower().lstrip(".")
        if ext != "zip" and ext not in _TAR_MODES:
            raise UnsupportedArchiveError(self.archive_path)
        return ext

    def _apply(self, log: Logger | StdlibLogger) -> None:
        ext = self.archive_format()
        archive = Path(self.archive_path).expanduser()
        dest = Path(self.destination).expanduser()
        try:
            dest.mkdir(parents=True, exist_ok=True)
            if ext == "zip":
                with zipfile.ZipFile(archive) as zf:
                    zf.extractall(dest)
            else:
                with tarfile.open(archive, _TAR_MODES[ext]) as tf:
                    tf.extractall(dest, filter="data")
        except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
            raise ExecutionError(f"Extraction of {self.archive_path} failed: {e}") from e


# ── Local files ─────────────────────────────────────────────────


def backup_path(path: Path, timestamp: int | None = None) -> Path:
    ts = int(time.time()) if timestamp is None else timestamp
    return path.with_name(f"{path.name}.backup.{ts}")


class BackupFile(BaseInstruction):
    """Copy ``path`` to ``path.backup.<unix-seconds>``. Missing file is a no-op."""

    kind: Literal["backup_file"] = "backup_file"
    path: str

    def describe(self) -> str:
        return f"back up {self.path}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        source = Path(self.path).expanduser()
        if not source.exists():
            log.debug(f"{source} does not exist, nothing to back up")
            return
        target = backup_path(source)
        try:
            shutil.copy2(source, target)
        except OSError as e:
            raise FileOperationError(f"Cannot back up {source}: {e}") from e
        log.info(f"Backed up {source} -> {target}")


class EditFile(BaseInstruction):
    """Replace every occurrence of ``find`` with ``replace``."""

    kind: Literal["edit_file"] = "edit_file"
    path: str
    find: str
    replace: str

    def describe(self) -> str:
        return f"edit {self.path}: {self.find!r} -> {self.replace!r}"

    def _apply(self, log: Logger | StdlibLogger) -> None:
        target = Path(self.path).expanduser()
        try:
            content = target.read_text(encoding="utf-8")
            count = content.count(self.find)
            target.write_text(content.replace(self.find, self.replace), encoding="utf-8")
        except OSError as e:
            raise FileOperationError(f"Cannot edit {target}: {e}") from e
        log.debug(f"{count} replacement(s) in {target}")


def make_executable(path: Path) -> None:
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
