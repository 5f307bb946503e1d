"""
Shared test fixtures and configuration.

No test spawns a real process or touches the network: instructions
reach the outside world only through ``devsetup.core.instructions.runner``,
which ``fake_runner`` / ``forbidden_runner`` replace.
"""

from __future__ import annotations

import fnmatch
import textwrap
from pathlib import Path

import pytest

from devsetup.core.instructions import runner
from devsetup.core.instructions.runner import CmdResult
from devsetup.core.observability.log_bus import LogMessage, LoggerSystem, LogOutput


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config, HOME and shell profile inside tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("SHELL", "/bin/bash")
    monkeypatch.setenv("DEVSETUP_CONFIG", str(tmp_path / "appdir" / "config.yml"))
    monkeypatch.delenv("DEVSETUP_LOG_FILE", raising=False)
    monkeypatch.delenv("DEVSETUP_LOG_LEVEL", raising=False)
    return home


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A config pinned to Ubuntu / x86_64."""
    path = tmp_path / "appdir" / "config.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        textwrap.dedent("""\
            machine:
              os: Ubuntu
              arch: x86_64
            log_level: debug
        """)
    )
    return path


# ── Fake process runner ─────────────────────────────────────────


class FakeRunner:
    """Records commands and answers them from prefix rules.

    Prefixes may contain glob wildcards for paths not known up front.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.sudo: list[bool] = []
        self.responses: dict[str, tuple[int, str, str]] = {}
        self.available: set[str] = set()
        self.downloads: list[tuple[str, Path]] = []
        self.system = "Linux"

    def respond(self, prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[prefix] = (returncode, stdout, stderr)

    def run_command(self, argv, *, capture=True, needs_sudo=False, timeout=None) -> CmdResult:
        argv = [str(a) for a in argv]
        self.calls.append(argv)
        self.sudo.append(needs_sudo)
        line = " ".join(argv)
        best = ""
        for prefix in self.responses:
            if fnmatch.fnmatchcase(line, prefix + "*") and len(prefix) > len(best):
                best = prefix
        rc, out, err = self.responses[best] if best else (0, "", "")
        return CmdResult(tuple(argv), rc, out, err)

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def download_file(self, url: str, dest: Path) -> Path:
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"payload")
        self.downloads.append((url, dest))
        return dest

    def host_system(self) -> str:
        return self.system

    @property
    def lines(self) -> list[str]:
        return [" ".join(c) for c in self.calls]


@pytest.fixture
def fake_runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    fake = FakeRunner()
    monkeypatch.setattr(runner, "run_command", fake.run_command)
    monkeypatch.setattr(runner, "which", fake.which)
    monkeypatch.setattr(runner, "download_file", fake.download_file)
    monkeypatch.setattr(runner, "host_system", fake.host_system)
    monkeypatch.setattr(runner, "is_root", lambda: False)
    return fake


@pytest.fixture
def forbidden_runner(monkeypatch: pytest.MonkeyPatch) -> None:
    """Any process, download or probe fails the test."""

    def _forbidden(*args, **kwargs):
        raise AssertionError(f"side effect attempted: {args!r}")

    for name in ("run_command", "which", "download_file"):
        monkeypatch.setattr(runner, name, _forbidden)


# ── Log capture ─────────────────────────────────────────────────


class MemoryOutput(LogOutput):
    def __init__(self) -> None:
        self.messages: list[LogMessage] = []
        self.closed = False

    def write(self, message: LogMessage) -> None:
        self.messages.append(message)

    def close(self) -> None:
        self.closed = True


class LogCapture:
    def __init__(self, system: LoggerSystem, output: MemoryOutput) -> None:
        self.system = system
        self.output = output

    def drain(self) -> list[LogMessage]:
        """Shut the bus down and return everything it delivered."""
        self.system.shutdown(timeout=5)
        return self.output.messages

    def texts(self) -> list[str]:
        return [m.message for m in self.drain()]


@pytest.fixture
def log_capture():
    system = LoggerSystem(poll_interval=0.01)
    output = MemoryOutput()
    system.collector.add_output(output)
    system.start_collector()
    yield LogCapture(system, output)
    system.shutdown(timeout=5)
