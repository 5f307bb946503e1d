"""
Bundle orchestrator — phased, concurrent, failure-isolated.

    install:    INSTALL ──barrier──▶ CONFIGURE
    uninstall:  DECONFIGURE ──barrier──▶ UNINSTALL

Within a phase every package gets its own worker thread, its own copy
of the package and its own bus logger. A phase ends only when every
worker has finished, so no package is configured before every package
finished installing.

Failures stay inside the package that produced them:
- ``ExecutionError``: logged, the rest of that package's list is skipped.
- ``MissingOsMappingError``: logged, the package is reported unsupported.
- anything else: the worker crashes, the crash is recorded at the join.

The orchestrator never raises for package failures; it returns a
``BundleReport``.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Literal

from devsetup.core.instructions import ExecutionError
from devsetup.core.models.machine import OsType
from devsetup.core.models.package import (
    InstructionMapping,
    MissingOsMappingError,
    Package,
    Phase,
    SoftwareBundle,
)
from devsetup.core.observability.log_bus import Logger, LoggerSystem

logger = logging.getLogger(__name__)

INSTALL_PHASES = (Phase.INSTALL, Phase.CONFIGURE)
UNINSTALL_PHASES = (Phase.DECONFIGURE, Phase.UNINSTALL)

_COMPONENTS = {
    Phase.INSTALL: "installer",
    Phase.CONFIGURE: "configurator",
    Phase.DECONFIGURE: "deconfigurator",
    Phase.UNINSTALL: "uninstaller",
}

_VERBS = {
    Phase.INSTALL: "Installing",
    Phase.CONFIGURE: "Configuring",
    Phase.DECONFIGURE: "Deconfiguring",
    Phase.UNINSTALL: "Uninstalling",
}

_TITLES = {"install": "INSTALLATION", "uninstall": "UNINSTALLATION"}

Status = Literal["ok", "skipped", "already_installed", "failed", "panicked", "unsupported"]


class WorkerPanicError(RuntimeError):
    """A worker died with an exception other than ``ExecutionError``."""

    def __init__(self, package: str, phase: Phase, cause: BaseException) -> None:
        self.package = package
        self.phase = phase
        self.cause = cause
        super().__init__(
            f"{phase.value} worker for {package} crashed: {type(cause).__name__}: {cause}"
        )


# ── Reports ─────────────────────────────────────────────────────


@dataclass
class PackageOutcome:
    package: str
    phase: Phase
    status: Status = "ok"
    error: str | None = None
    completed: int = 0
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.status in ("failed", "panicked", "unsupported")

    def to_dict(self) -> dict:
        return {
            "package": self.package,
            "phase": self.phase.value,
            "status": self.status,
            "error": self.error,
            "completed": self.completed,
            "duration_ms": self.duration_ms,
        }


@dataclass
class PhaseReport:
    phase: Phase
    outcomes: list[PackageOutcome] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if not o.failed)

    def outcome(self, package: str) -> PackageOutcome:
        for o in self.outcomes:
            if o.package == package:
                return o
        raise KeyError(package)

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class BundleReport:
    """Result of one bundle operation."""

    bundle: str
    operation: Literal["install", "uninstall"]
    os: OsType
    dry_run: bool = False
    phases: list[PhaseReport] = field(default_factory=list)

    def phase(self, phase: Phase) -> PhaseReport:
        for report in self.phases:
            if report.phase == phase:
                return report
        raise KeyError(phase)

    @property
    def failed_packages(self) -> list[str]:
        names: dict[str, None] = {}
        for report in self.phases:
            for o in report.outcomes:
                if o.failed:
                    names.setdefault(o.package, None)
        return list(names)

    @property
    def total(self) -> int:
        return len(self.phases[0].outcomes) if self.phases else 0

    @property
    def status(self) -> str:
        failed = len(self.failed_packages)
        if failed == 0:
            return "ok"
        if failed < self.total:
            return "partial"
        return "failed"

    def summary(self) -> str:
        failed = self.failed_packages
        text = f"{self.total - len(failed)}/{self.total} package(s) ok"
        if failed:
            text += f", failed: {', '.join(failed)}"
        return text

    def to_dict(self) -> dict:
        return {
            "bundle": self.bundle,
            "operation": self.operation,
            "os": self.os.value,
            "dry_run": self.dry_run,
            "status": self.status,
            "phases": [p.to_dict() for p in self.phases],
        }


# ── Workers ─────────────────────────────────────────────────────


def _prerequisites_met(mapping: InstructionMapping, dry_run: bool, log: Logger) -> bool:
    """True as soon as any prerequisite check passes."""
    for check in mapping.prerequisites:
        try:
            check.execute(dry_run, log)
        except ExecutionError as e:
            log.debug(f"prerequisite not met: {e}")
            continue
        return True
    return False


def run_package_phase(
    package: Package,
    phase: Phase,
    os_type: OsType,
    dry_run: bool,
    log: Logger,
) -> PackageOutcome:
    """Run one package's instruction list for ``phase``.

    Only ``ExecutionError`` and ``MissingOsMappingError`` are handled;
    anything else propagates to the caller.
    """
    outcome = PackageOutcome(package=package.name, phase=phase)
    try:
        mapping = package.mapping_for(os_type)
    except MissingOsMappingError as e:
        log.error(str(e))
        outcome.status = "unsupported"
        outcome.error = str(e)
        return outcome

    if phase == Phase.INSTALL and mapping.prerequisites:
        if _prerequisites_met(mapping, dry_run, log):
            log.info(f"{package.name} is already installed, skipping")
            outcome.status = "already_installed"
            return outcome
        log.info("Prerequisites not met, proceeding with installation")

    instructions = mapping.for_phase(phase)
    total = len(instructions)
    for index, instruction in enumerate(instructions, start=1):
        log.debug(f"step {index}/{total}: {instruction.label}")
        try:
            instruction.execute(dry_run, log)
        except ExecutionError as e:
            log.error(f"{instruction.label} failed: {e}")
            outcome.status = "failed"
            outcome.error = str(e)
            return outcome
        outcome.completed = index

    log.info(f"{package.name}: {phase.value} finished")
    return outcome


def _worker(
    package: Package,
    phase: Phase,
    os_type: OsType,
    dry_run: bool,
    logger_system: LoggerSystem,
) -> PackageOutcome:
    start = time.monotonic()
    with logger_system.create_logger(_COMPONENTS[phase], package.name) as log:
        log.info(f"==> {_VERBS[phase]} {package.name}")
        outcome = run_package_phase(package, phase, os_type, dry_run, log)
    outcome.duration_ms = int((time.monotonic() - start) * 1000)
    return outcome


def _needs_worker(package: Package, phase: Phase, os_type: OsType) -> bool:
    """Install always spawns so a missing mapping gets reported."""
    if phase == Phase.INSTALL:
        return True
    if not package.supports(os_type):
        return False
    return bool(package.mapping_for(os_type).for_phase(phase))


# ── Phases ──────────────────────────────────────────────────────


def run_phase(
    bundle: SoftwareBundle,
    phase: Phase,
    os_type: OsType,
    dry_run: bool,
    logger_system: LoggerSystem,
    main_log: Logger,
) -> PhaseReport:
    """Run ``phase`` for every package concurrently and wait for all of them."""
    report = PhaseReport(phase=phase)
    futures: dict[int, Future[PackageOutcome]] = {}
    workers = [
        (index, package)
        for index, package in enumerate(bundle.packages)
        if _needs_worker(package, phase, os_type)
    ]

    if workers:
        main_log.debug(f"{phase.value}: starting {len(workers)} worker(s)")
        with ThreadPoolExecutor(
            max_workers=len(workers),
            thread_name_prefix=f"devsetup-{phase.value}",
        ) as pool:
            for index, package in workers:
                futures[index] = pool.submit(
                    _worker,
                    package.model_copy(deep=True),
                    phase,
                    os_type,
                    dry_run,
                    logger_system,
                )
        # leaving the executor joined every worker

    for index, package in enumerate(bundle.packages):
        future = futures.get(index)
        if future is None:
            main_log.debug(f"No {phase.value} instructions for {package.name}")
            report.outcomes.append(PackageOutcome(package.name, phase, status="skipped"))
            continue
        try:
            report.outcomes.append(future.result())
        except Exception as e:
            panic = WorkerPanicError(package.name, phase, e)
            logger.debug("worker crash", exc_info=e)
            main_log.critical(f"Thread panicked: {panic}")
            report.outcomes.append(
                PackageOutcome(package.name, phase, status="panicked", error=str(panic))
            )

    return report


def _run_phases(
    bundle: SoftwareBundle,
    operation: Literal["install", "uninstall"],
    phases: tuple[Phase, ...],
    os_type: OsType,
    dry_run: bool,
    logger_system: LoggerSystem,
) -> BundleReport:
    report = BundleReport(bundle=bundle.name, operation=operation, os=os_type, dry_run=dry_run)
    title = _TITLES[operation]
    with logger_system.create_logger("orchestrator", "main") as main_log:
        main_log.info(f"==> {title}{' (DRY-RUN)' if dry_run else ''}: {bundle.name}")
        if bundle.description:
            main_log.info(bundle.description)
        for phase in phases:
            main_log.info(f"==> Phase: {phase.value}")
            report.phases.append(
                run_phase(bundle, phase, os_type, dry_run, logger_system, main_log)
            )
        level = main_log.info if report.status == "ok" else main_log.warn
        level(f"==> {operation.capitalize()} of {bundle.name} complete: {report.summary()}")
    return report


def install_bundle(
    bundle: SoftwareBundle,
    os_type: OsType,
    dry_run: bool,
    logger_system: LoggerSystem,
) -> BundleReport:
    """INSTALL then CONFIGURE every package of ``bundle``."""
    return _run_phases(bundle, "install", INSTALL_PHASES, os_type, dry_run, logger_system)


def uninstall_bundle(
    bundle: SoftwareBundle,
    os_type: OsType,
    dry_run: bool,
    logger_system: LoggerSystem,
) -> BundleReport:
    """DECONFIGURE then UNINSTALL every package of ``bundle``."""
    return _run_phases(bundle, "uninstall", UNINSTALL_PHASES, os_type, dry_run, logger_system)
