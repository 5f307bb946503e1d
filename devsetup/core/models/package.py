"""
Packages and bundles — what gets provisioned, per OS and per phase.

An ``InstructionMapping`` holds the five ordered instruction lists for
one OS. A ``Package`` maps each supported OS to its mapping; a
``SoftwareBundle`` is an ordered list of packages. All three are frozen:
builder methods return updated copies.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devsetup.core.instructions import AnyInstruction, Assert
from devsetup.core.models.machine import OsType
from devsetup.core.models.os_matcher import OsMatcher

if TYPE_CHECKING:
    from devsetup.core.engine.orchestrator import BundleReport
    from devsetup.core.observability.log_bus import LoggerSystem


class Phase(str, Enum):
    PREREQUISITE = "prerequisite"
    INSTALL = "install"
    CONFIGURE = "configure"
    DECONFIGURE = "deconfigure"
    UNINSTALL = "uninstall"


class MissingOsMappingError(LookupError):
    def __init__(self, package: str, os_type: OsType) -> None:
        self.package = package
        self.os_type = os_type
        super().__init__(f"{package} has no instructions for {os_type.value}")


_PHASE_FIELDS = {
    Phase.PREREQUISITE: "prerequisites",
    Phase.INSTALL: "install",
    Phase.CONFIGURE: "configure",
    Phase.DECONFIGURE: "deconfigure",
    Phase.UNINSTALL: "uninstall",
}


class InstructionMapping(BaseModel):
    """Per-OS instruction lists. Prerequisites may only be assertions."""

    model_config = ConfigDict(frozen=True)

    prerequisites: tuple[AnyInstruction, ...] = ()
    install: tuple[AnyInstruction, ...] = ()
    configure: tuple[AnyInstruction, ...] = ()
    uninstall: tuple[AnyInstruction, ...] = ()
    deconfigure: tuple[AnyInstruction, ...] = ()

    @field_validator("prerequisites")
    @classmethod
    def _only_assertions(cls, value: tuple) -> tuple:
        for instruction in value:
            if not isinstance(instruction, Assert):
                raise ValueError(
                    f"prerequisite checks must be assertions, got {instruction.kind!r}"
                )
        return value

    def _extended(self, field: str, instructions: tuple) -> InstructionMapping:
        # model_validate (not model_copy) so the prerequisite rule is re-checked
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data[field] = getattr(self, field) + tuple(instructions)
        return type(self).model_validate(data)

    def add_prerequisite_checks(self, *checks: Assert) -> InstructionMapping:
        return self._extended("prerequisites", checks)

    def add_install_instructions(self, *instructions: AnyInstruction) -> InstructionMapping:
        return self._extended("install", instructions)

    def add_configuration_instructions(self, *instructions: AnyInstruction) -> InstructionMapping:
        return self._extended("configure", instructions)

    def add_uninstall_instructions(self, *instructions: AnyInstruction) -> InstructionMapping:
        return self._extended("uninstall", instructions)

    def add_deconfiguration_instructions(
        self, *instructions: AnyInstruction
    ) -> InstructionMapping:
        return self._extended("deconfigure", instructions)

    def for_phase(self, phase: Phase) -> tuple[AnyInstruction, ...]:
        return getattr(self, _PHASE_FIELDS[Phase(phase)])


class Package(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    mappings: dict[OsType, InstructionMapping] = Field(default_factory=dict)

    def add_mapping(self, matcher: OsMatcher, mapping: InstructionMapping) -> Package:
        """Assign ``mapping`` to every OS in ``matcher``; later calls win."""
        mappings = dict(self.mappings)
        for os_type in matcher.os_list:
            mappings[os_type] = mapping
        return self.model_copy(update={"mappings": mappings})

    def supports(self, os_type: OsType) -> bool:
        return os_type in self.mappings

    def mapping_for(self, os_type: OsType) -> InstructionMapping:
        try:
            return self.mappings[os_type]
        except KeyError:
            raise MissingOsMappingError(self.name, os_type) from None


class SoftwareBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    packages: tuple[Package, ...] = ()

    def add_program(self, package: Package) -> SoftwareBundle:
        return self.model_copy(update={"packages": self.packages + (package,)})

    def install(
        self,
        os_type: OsType,
        dry_run: bool,
        logger_system: LoggerSystem,
    ) -> BundleReport:
        from devsetup.core.engine.orchestrator import install_bundle

        return install_bundle(self, os_type, dry_run, logger_system)

    def uninstall(
        self,
        os_type: OsType,
        dry_run: bool,
        logger_system: LoggerSystem,
    ) -> BundleReport:
        from devsetup.core.engine.orchestrator import uninstall_bundle

        return uninstall_bundle(self, os_type, dry_run, logger_system)
