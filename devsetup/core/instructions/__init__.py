"""
Instructions — the atomic, platform-aware provisioning actions.

    from devsetup.core.instructions import Instruction, AnyInstruction, ExecutionError

``AnyInstruction`` is the tagged union (on ``kind``) used wherever
instructions are stored or loaded from YAML.
"""

from typing import Annotated, Union

from pydantic import Field

from devsetup.core.instructions.base import BaseInstruction
from devsetup.core.instructions.builder import Instruction
from devsetup.core.instructions.commands import (
    Assert,
    CloneRepository,
    RequestSudo,
    RestartService,
    Run,
    WaitForCondition,
)
from devsetup.core.instructions.environment import AddEnvVar, CreateShortcut
from devsetup.core.instructions.errors import (
    AssertionMismatchError,
    ConditionTimeoutError,
    DownloadError,
    ExecutionError,
    FileOperationError,
    NoPackageManagerError,
    PlatformMismatchError,
    ProcessExitError,
    UnsupportedArchiveError,
    UnsupportedFileTypeError,
)
from devsetup.core.instructions.files import (
    BackupFile,
    DownloadAndExec,
    DownloadTo,
    EditFile,
    ExtractArchive,
)
from devsetup.core.instructions.packages import InstallApplication, InstallPackage

AnyInstruction = Annotated[
    Union[
        DownloadAndExec,
        Run,
        DownloadTo,
        Assert,
        ExtractArchive,
        AddEnvVar,
        CreateShortcut,
        WaitForCondition,
        InstallApplication,
        InstallPackage,
        CloneRepository,
        RequestSudo,
        RestartService,
        BackupFile,
        EditFile,
    ],
    Field(discriminator="kind"),
]

__all__ = [
    "AddEnvVar",
    "AnyInstruction",
    "Assert",
    "AssertionMismatchError",
    "BackupFile",
    "BaseInstruction",
    "CloneRepository",
    "ConditionTimeoutError",
    "CreateShortcut",
    "DownloadAndExec",
    "DownloadError",
    "DownloadTo",
    "EditFile",
    "ExecutionError",
    "ExtractArchive",
    "FileOperationError",
    "InstallApplication",
    "InstallPackage",
    "Instruction",
    "NoPackageManagerError",
    "PlatformMismatchError",
    "ProcessExitError",
    "RequestSudo",
    "RestartService",
    "Run",
    "UnsupportedArchiveError",
    "UnsupportedFileTypeError",
    "WaitForCondition",
]
