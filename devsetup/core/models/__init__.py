"""
Domain models — machines, OS matching, packages and bundles.

    from devsetup.core.models import Machine, OsMatcher, Package, SoftwareBundle
"""

from devsetup.core.models.machine import Architecture, Machine, OsType
from devsetup.core.models.os_matcher import CATEGORY_MEMBERS, OsCategory, OsMatcher
from devsetup.core.models.package import (
    InstructionMapping,
    MissingOsMappingError,
    Package,
    Phase,
    SoftwareBundle,
)

__all__ = [
    "Architecture",
    "CATEGORY_MEMBERS",
    "InstructionMapping",
    "Machine",
    "MissingOsMappingError",
    "OsCategory",
    "OsMatcher",
    "OsType",
    "Package",
    "Phase",
    "SoftwareBundle",
]
