"""
Instruction failures.

Every effect failure raises an ``ExecutionError`` subclass. Workers
catch ``ExecutionError`` only; anything else is treated as a crash.
"""

from __future__ import annotations

from collections.abc import Sequence


class ExecutionError(Exception):
    """Base class for instruction failures."""


class DownloadError(ExecutionError):
    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Download of {url} failed: {reason}")


class ProcessExitError(ExecutionError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command {' '.join(self.argv)!r} exited with code {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()[-300:]}"
        super().__init__(message)


class AssertionMismatchError(ExecutionError):
    def __init__(self, command: str, expected: str, actual: str) -> None:
        self.command = command
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Output of {command!r} does not contain {expected!r} (got {actual.strip()[:200]!r})"
        )


class UnsupportedArchiveError(ExecutionError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Unsupported archive format: {path}")


class UnsupportedFileTypeError(ExecutionError):
    pass


class NoPackageManagerError(ExecutionError):
    def __init__(self, package_name: str, candidates: Sequence[str]) -> None:
        self.package_name = package_name
        self.candidates = list(candidates)
        super().__init__(
            f"No suitable package manager found for {package_name!r} "
            f"(tried: {', '.join(self.candidates)})"
        )


class ConditionTimeoutError(ExecutionError):
    def __init__(self, command: str, timeout_secs: float) -> None:
        self.command = command
        self.timeout_secs = timeout_secs
        super().__init__(f"Condition {command!r} not met within {timeout_secs:g}s")


class PlatformMismatchError(ExecutionError):
    pass


class FileOperationError(ExecutionError):
    pass
