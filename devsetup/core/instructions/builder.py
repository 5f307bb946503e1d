"""
Fluent construction of instructions::

    Instruction("Install Git").install_application("git")
    Instruction("Check Git").assert_output("git --version", "git version")
"""

from __future__ import annotations

from collections.abc import Sequence

from devsetup.core.instructions.commands import (
    Assert,
    CloneRepository,
    RequestSudo,
    RestartService,
    Run,
    WaitForCondition,
)
from devsetup.core.instructions.environment import AddEnvVar, CreateShortcut
from devsetup.core.instructions.files import (
    BackupFile,
    DownloadAndExec,
    DownloadTo,
    EditFile,
    ExtractArchive,
)
from devsetup.core.instructions.packages import InstallApplication, InstallPackage


class Instruction:
    """Carries a description; each method returns the finished instruction."""

    def __init__(self, description: str) -> None:
        self.description = description

    def download_and_exec(self, url: str) -> DownloadAndExec:
        return DownloadAndExec(description=self.description, url=url)

    def download_and_exec_silent(self, url: str) -> DownloadAndExec:
        return DownloadAndExec(description=self.description, url=url, silent=True)

    def download_and_exec_with_args(self, url: str, args: Sequence[str]) -> DownloadAndExec:
        return DownloadAndExec(description=self.description, url=url, custom_args=tuple(args))

    def cmd(self, command: str) -> Run:
        return Run(description=self.description, command=command)

    def shell(self, command: str) -> Run:
        return Run(description=self.description, command=command, shell=True)

    def download_to(self, url: str, path: str) -> DownloadTo:
        return DownloadTo(description=self.description, url=url, path=path)

    def assert_output(self, command: str, expect: str) -> Assert:
        return Assert(description=self.description, command=command, expect=expect)

    def extract_archive(self, archive_path: str, destination: str) -> ExtractArchive:
        return ExtractArchive(
            description=self.description, archive_path=archive_path, destination=destination
        )

    def add_env_var(self, name: str, value: str) -> AddEnvVar:
        return AddEnvVar(description=self.description, name=name, value=value)

    def create_shortcut(self, name: str, target: str, icon: str | None = None) -> CreateShortcut:
        return CreateShortcut(description=self.description, name=name, target=target, icon=icon)

    def wait_for_condition(
        self, check_command: str, timeout_secs: float, poll_interval: float = 1.0
    ) -> WaitForCondition:
        return WaitForCondition(
            description=self.description,
            check_command=check_command,
            timeout_secs=timeout_secs,
            poll_interval=poll_interval,
        )

    def install_application(self, package_name: str) -> InstallApplication:
        return InstallApplication(description=self.description, package_name=package_name)

    def install_package(self, package_name: str) -> InstallPackage:
        return InstallPackage(description=self.description, package_name=package_name)

    def clone_repository(self, url: str, path: str | None = None) -> CloneRepository:
        return CloneRepository(description=self.description, url=url, path=path)

    def request_sudo(self, reason: str) -> RequestSudo:
        return RequestSudo(description=self.description, reason=reason)

    def restart_service(self, service_name: str) -> RestartService:
        return RestartService(description=self.description, service_name=service_name)

    def backup_file(self, path: str) -> BackupFile:
        return BackupFile(description=self.description, path=path)

    def edit_file(self, path: str, find: str, replace: str) -> EditFile:
        return EditFile(description=self.description, path=path, find=find, replace=replace)
