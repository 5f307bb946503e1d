"""
OS categories and matchers.

A category is a named family of OS identities (every Debian derivative,
every Arch derivative, ...). An ``OsMatcher`` is an immutable list of
identities built from categories and/or explicit identities; package
mappings are keyed by expanding a matcher into its members.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from devsetup.core.models.machine import OsType


class OsCategory(str, Enum):
    WINDOWS = "Windows"
    MACOS = "MacOS"
    LINUX_BASED = "LinuxBased"
    ARCH_BASED = "ArchBased"
    RHEL_BASED = "RHELBased"
    DEBIAN_BASED = "DebianBased"
    GENTOO_BASED = "GentooBased"
    ANDROID_BASED = "AndroidBased"


# ── Category tables ─────────────────────────────────────────────

_ARCH = (
    OsType.ARCH,
    OsType.ARTIX,
    OsType.ENDEAVOUROS,
    OsType.GARUDA,
    OsType.MANJARO,
    OsType.CACHYOS,
)

_RHEL = (
    OsType.ALMALINUX,
    OsType.CENTOS,
    OsType.FEDORA,
    OsType.NOBARA,
    OsType.ORACLELINUX,
    OsType.REDHAT,
    OsType.REDHAT_ENTERPRISE,
    OsType.ROCKYLINUX,
)

_DEBIAN = (
    OsType.DEBIAN,
    OsType.UBUNTU,
    OsType.MINT,
    OsType.POP,
    OsType.RASPBIAN,
)

_LINUX = (
    OsType.LINUX,
    OsType.ALMALINUX,
    OsType.ALPAQUITA,
    OsType.ALPINE,
    OsType.AMAZON,
    OsType.AOSC,
    OsType.ARCH,
    OsType.ARTIX,
    OsType.BLUEFIN,
    OsType.CACHYOS,
    OsType.CENTOS,
    OsType.DEBIAN,
    OsType.ENDEAVOUROS,
    OsType.FEDORA,
    OsType.GARUDA,
    OsType.GENTOO,
    OsType.KALI,
    OsType.MABOX,
    OsType.MANJARO,
    OsType.MINT,
    OsType.NIXOS,
    OsType.NOBARA,
    OsType.OPENEULER,
    OsType.OPENSUSE,
    OsType.ORACLELINUX,
    OsType.POP,
    OsType.RASPBIAN,
    OsType.REDHAT,
    OsType.REDHAT_ENTERPRISE,
    OsType.ROCKYLINUX,
    OsType.SUSE,
    OsType.UBUNTU,
    OsType.ULTRAMARINE,
    OsType.VOID,
)

CATEGORY_MEMBERS: dict[OsCategory, tuple[OsType, ...]] = {
    OsCategory.WINDOWS: (OsType.WINDOWS,),
    OsCategory.MACOS: (OsType.MACOS,),
    OsCategory.LINUX_BASED: _LINUX,
    OsCategory.ARCH_BASED: _ARCH,
    OsCategory.RHEL_BASED: _RHEL,
    OsCategory.DEBIAN_BASED: _DEBIAN,
    OsCategory.GENTOO_BASED: (OsType.GENTOO,),
    OsCategory.ANDROID_BASED: (OsType.ANDROID,),
}


def category_members(category: OsCategory) -> tuple[OsType, ...]:
    """Return the identities belonging to ``category``."""
    return CATEGORY_MEMBERS[OsCategory(category)]


# ── Matcher ─────────────────────────────────────────────────────


class OsMatcher:
    """Immutable, order-preserving set of OS identities."""

    __slots__ = ("_os_list",)

    def __init__(self, os_list: Iterable[OsType] = ()) -> None:
        seen: dict[OsType, None] = {}
        for os_type in os_list:
            seen.setdefault(OsType(os_type), None)
        self._os_list: tuple[OsType, ...] = tuple(seen)

    @classmethod
    def from_os(cls, *os_types: OsType) -> OsMatcher:
        return cls(os_types)

    @classmethod
    def from_category(cls, category: OsCategory) -> OsMatcher:
        return cls(category_members(category))

    @classmethod
    def from_categories(cls, categories: Iterable[OsCategory]) -> OsMatcher:
        """Union of several categories, first occurrence order kept."""
        members: list[OsType] = []
        for category in categories:
            members.extend(category_members(category))
        return cls(members)

    @classmethod
    def from_selector(cls, selector: OsType | OsCategory) -> OsMatcher:
        if isinstance(selector, OsCategory):
            return cls.from_category(selector)
        return cls.from_os(selector)

    def union(self, other: OsMatcher) -> OsMatcher:
        return OsMatcher(self._os_list + other.os_list)

    def matches(self, os_type: OsType) -> bool:
        return os_type in self._os_list

    @property
    def os_list(self) -> tuple[OsType, ...]:
        return self._os_list

    def __contains__(self, os_type: object) -> bool:
        return os_type in self._os_list

    def __iter__(self) -> Iterator[OsType]:
        return iter(self._os_list)

    def __len__(self) -> int:
        return len(self._os_list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OsMatcher):
            return NotImplemented
        return self._os_list == other._os_list

    def __hash__(self) -> int:
        return hash(self._os_list)

    def __repr__(self) -> str:
        names = ", ".join(o.value for o in self._os_list)
        return f"OsMatcher([{names}])"
