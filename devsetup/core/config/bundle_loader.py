"""
Bundle loader — software bundles declared in YAML.

File shape::

    name: web
    description: Web tooling
    packages:
      - name: Git
        mappings:
          - categories: [LinuxBased]
            os: [Windows]
            prerequisites:
              - {kind: assert, command: "git --version", expect: "git version"}
            install:
              - {kind: install_application, package_name: git}

Bundles are built through the same builders as the Python catalog, so
every model rule (assert-only prerequisites, non-empty commands) holds.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from devsetup.core.config.loader import ConfigError
from devsetup.core.instructions import AnyInstruction
from devsetup.core.models import (
    InstructionMapping,
    OsCategory,
    OsMatcher,
    OsType,
    Package,
    SoftwareBundle,
)

logger = logging.getLogger(__name__)

BUNDLE_SUFFIXES = (".yml", ".yaml")


class MappingSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    categories: list[OsCategory] = Field(default_factory=list)
    os: list[OsType] = Field(default_factory=list)
    prerequisites: list[AnyInstruction] = Field(default_factory=list)
    install: list[AnyInstruction] = Field(default_factory=list)
    configure: list[AnyInstruction] = Field(default_factory=list)
    uninstall: list[AnyInstruction] = Field(default_factory=list)
    deconfigure: list[AnyInstruction] = Field(default_factory=list)

    @model_validator(mode="after")
    def _has_target(self) -> MappingSpec:
        if not self.categories and not self.os:
            raise ValueError("mapping needs at least one of 'categories' or 'os'")
        return self

    def matcher(self) -> OsMatcher:
        return OsMatcher.from_categories(self.categories).union(OsMatcher(self.os))

    def build(self) -> InstructionMapping:
        return (
            InstructionMapping()
            .add_prerequisite_checks(*self.prerequisites)
            .add_install_instructions(*self.install)
            .add_configuration_instructions(*self.configure)
            .add_uninstall_instructions(*self.uninstall)
            .add_deconfiguration_instructions(*self.deconfigure)
        )


class PackageSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    mappings: list[MappingSpec] = Field(default_factory=list)

    def build(self) -> Package:
        package = Package(name=self.name, description=self.description)
        for spec in self.mappings:
            package = package.add_mapping(spec.matcher(), spec.build())
        return package


class BundleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    packages: list[PackageSpec] = Field(default_factory=list)

    def build(self) -> SoftwareBundle:
        bundle = SoftwareBundle(name=self.name, description=self.description)
        for spec in self.packages:
            bundle = bundle.add_program(spec.build())
        return bundle


def is_bundle_file(ref: str | Path) -> bool:
    return Path(ref).suffix.lower() in BUNDLE_SUFFIXES


def load_bundle_file(path: Path) -> SoftwareBundle:
    """Load and validate a bundle definition.

    Raises:
        ConfigError: If the file is missing, not YAML, or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Bundle file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        bundle = BundleSpec.model_validate(data).build()
    except (ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid bundle in {path}: {e}") from e

    logger.debug("Loaded bundle %s (%d packages) from %s", bundle.name, len(bundle.packages), path)
    return bundle


def discover_bundles(directory: Path) -> dict[str, SoftwareBundle]:
    """Load every bundle file in ``directory``, keyed by lower-cased name.

    Broken files are logged and skipped.
    """
    bundles: dict[str, SoftwareBundle] = {}
    if not directory.is_dir():
        return bundles
    for path in sorted(directory.iterdir()):
        if not is_bundle_file(path):
            continue
        try:
            bundle = load_bundle_file(path)
        except ConfigError as e:
            logger.warning("Skipping bundle file: %s", e)
            continue
        bundles[bundle.name.lower()] = bundle
    return bundles
