"""
Machine detection — OS identity and CPU architecture of the host.

Linux distributions are identified through ``distro.id()``; anything
the table doesn't know collapses to the generic ``Linux`` identity so
LinuxBased mappings still apply.
"""

from __future__ import annotations

import logging
import os
import platform
import sys

import distro

from devsetup.core.models.machine import Architecture, Machine, OsType

logger = logging.getLogger(__name__)


_ARCH_ALIASES: dict[str, Architecture] = {
    "x86_64": Architecture.X86_64,
    "amd64": Architecture.X86_64,
    "aarch64": Architecture.AARCH64,
    "arm64": Architecture.AARCH64,
}

# distro.id() -> OsType
_DISTRO_IDS: dict[str, OsType] = {
    "almalinux": OsType.ALMALINUX,
    "alpaquita": OsType.ALPAQUITA,
    "alpine": OsType.ALPINE,
    "amzn": OsType.AMAZON,
    "aosc": OsType.AOSC,
    "arch": OsType.ARCH,
    "archarm": OsType.ARCH,
    "artix": OsType.ARTIX,
    "bluefin": OsType.BLUEFIN,
    "cachyos": OsType.CACHYOS,
    "centos": OsType.CENTOS,
    "debian": OsType.DEBIAN,
    "endeavouros": OsType.ENDEAVOUROS,
    "fedora": OsType.FEDORA,
    "garuda": OsType.GARUDA,
    "gentoo": OsType.GENTOO,
    "kali": OsType.KALI,
    "mabox": OsType.MABOX,
    "manjaro": OsType.MANJARO,
    "manjaro-arm": OsType.MANJARO,
    "linuxmint": OsType.MINT,
    "nixos": OsType.NIXOS,
    "nobara": OsType.NOBARA,
    "openeuler": OsType.OPENEULER,
    "opensuse": OsType.OPENSUSE,
    "opensuse-leap": OsType.OPENSUSE,
    "opensuse-tumbleweed": OsType.OPENSUSE,
    "ol": OsType.ORACLELINUX,
    "pop": OsType.POP,
    "raspbian": OsType.RASPBIAN,
    "redhat": OsType.REDHAT,
    "rhel": OsType.REDHAT_ENTERPRISE,
    "rocky": OsType.ROCKYLINUX,
    "sles": OsType.SUSE,
    "ubuntu": OsType.UBUNTU,
    "ultramarine": OsType.ULTRAMARINE,
    "void": OsType.VOID,
}


def detect_architecture() -> Architecture:
    """Map ``platform.machine()`` onto a supported architecture.

    Unknown machines fall back to x86_64 with a warning.
    """
    machine = platform.machine().lower()
    arch = _ARCH_ALIASES.get(machine)
    if arch is None:
        logger.warning("Unknown architecture %r, assuming x86_64", machine)
        return Architecture.X86_64
    return arch


def _is_android() -> bool:
    if sys.platform == "android":
        return True
    return "ANDROID_ROOT" in os.environ and "ANDROID_DATA" in os.environ


def detect_linux_distribution() -> OsType:
    distro_id = distro.id().lower()
    os_type = _DISTRO_IDS.get(distro_id)
    if os_type is None:
        logger.info("Unrecognised distribution %r, treating as generic Linux", distro_id)
        return OsType.LINUX
    return os_type


def detect_os() -> OsType:
    system = platform.system()
    if system == "Windows":
        return OsType.WINDOWS
    if system == "Darwin":
        return OsType.MACOS
    if system == "Linux":
        if _is_android():
            return OsType.ANDROID
        return detect_linux_distribution()
    logger.warning("Unsupported operating system %r", system)
    return OsType.UNKNOWN


def detect_machine() -> Machine:
    machine = Machine(os=detect_os(), arch=detect_architecture())
    logger.debug("Detected machine: %s", machine.describe())
    return machine
