"""
Machine identity — the host an operation runs against.

``OsType`` is the closed set of operating system identities the
provisioner knows about. Values match the names written to the
configuration file.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class OsType(str, Enum):
    """Concrete operating system / distribution identity."""

    LINUX = "Linux"
    ALMALINUX = "AlmaLinux"
    ALPAQUITA = "Alpaquita"
    ALPINE = "Alpine"
    AMAZON = "Amazon"
    AOSC = "AOSC"
    ARCH = "Arch"
    ARTIX = "Artix"
    BLUEFIN = "Bluefin"
    CACHYOS = "CachyOS"
    CENTOS = "CentOS"
    DEBIAN = "Debian"
    ENDEAVOUROS = "EndeavourOS"
    FEDORA = "Fedora"
    GARUDA = "Garuda"
    GENTOO = "Gentoo"
    KALI = "Kali"
    MABOX = "Mabox"
    MANJARO = "Manjaro"
    MINT = "Mint"
    NIXOS = "NixOS"
    NOBARA = "Nobara"
    OPENEULER = "openEuler"
    OPENSUSE = "openSUSE"
    ORACLELINUX = "OracleLinux"
    POP = "Pop"
    RASPBIAN = "Raspbian"
    REDHAT = "Redhat"
    REDHAT_ENTERPRISE = "RedHatEnterprise"
    ROCKYLINUX = "RockyLinux"
    SUSE = "SUSE"
    UBUNTU = "Ubuntu"
    ULTRAMARINE = "Ultramarine"
    VOID = "Void"
    WINDOWS = "Windows"
    MACOS = "Macos"
    ANDROID = "Android"
    UNKNOWN = "Unknown"


class Architecture(str, Enum):
    X86_64 = "x86_64"
    AARCH64 = "aarch64"


def _detected_os() -> OsType:
    from devsetup.core.detection.machine import detect_os

    return detect_os()


def _detected_arch() -> Architecture:
    from devsetup.core.detection.machine import detect_architecture

    return detect_architecture()


class Machine(BaseModel):
    """Host identity used to select instruction mappings.

    Missing fields are filled by detecting the running host, so a
    partially written config block stays loadable.
    """

    model_config = ConfigDict(frozen=True)

    os: OsType = Field(default_factory=_detected_os)
    arch: Architecture = Field(default_factory=_detected_arch)

    def describe(self) -> str:
        return f"{self.os.value} ({self.arch.value})"
