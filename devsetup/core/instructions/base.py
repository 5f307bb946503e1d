"""
Instruction base — one atomic provisioning action.

``execute(dry_run, log)`` is the only entry point. In dry-run mode the
instruction reports what it would do and returns before touching the
filesystem, the network or any process.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from devsetup.core.observability.log_bus import StdlibLogger

if TYPE_CHECKING:
    from devsetup.core.observability.log_bus import Logger


class BaseInstruction(BaseModel):
    """Frozen, serialisable instruction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: str
    description: str = ""

    @property
    def label(self) -> str:
        return self.description or self.kind

    @abstractmethod
    def describe(self) -> str:
        """One-line summary of the effect, used for dry-run and logs."""

    @abstractmethod
    def _apply(self, log: Logger | StdlibLogger) -> None:
        """Perform the effect. Raise ``ExecutionError`` on failure."""

    def execute(self, dry_run: bool, log: Logger | StdlibLogger | None = None) -> None:
        log = log or StdlibLogger(__name__)
        if dry_run:
            log.info(f"[dry-run] {self.label}: {self.describe()}")
            return
        log.info(f"{self.label}: {self.describe()}")
        self._apply(log)
