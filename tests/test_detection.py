"""
Tests for machine detection.
"""

import pytest

from devsetup.core.detection import machine as detection
from devsetup.core.models import Architecture, Machine, OsType


@pytest.fixture
def host(monkeypatch):
    """Pretend to be a given host: host(system, machine, distro_id)."""

    def _set(system="Linux", machine="x86_64", distro_id="ubuntu"):
        monkeypatch.setattr(detection.platform, "system", lambda: system)
        monkeypatch.setattr(detection.platform, "machine", lambda: machine)
        monkeypatch.setattr(detection.distro, "id", lambda: distro_id)

    monkeypatch.delenv("ANDROID_ROOT", raising=False)
    monkeypatch.delenv("ANDROID_DATA", raising=False)
    return _set


class TestDetectArchitecture:
    @pytest.mark.parametrize(
        "machine, expected",
        [
            ("x86_64", Architecture.X86_64),
            ("AMD64", Architecture.X86_64),
            ("aarch64", Architecture.AARCH64),
            ("arm64", Architecture.AARCH64),
        ],
    )
    def test_known(self, host, machine, expected):
        host(machine=machine)
        assert detection.detect_architecture() == expected

    def test_unknown_falls_back_to_x86_64(self, host, caplog):
        host(machine="riscv64")
        with caplog.at_level("WARNING"):
            assert detection.detect_architecture() == Architecture.X86_64
        assert "riscv64" in caplog.text


class TestDetectOs:
    def test_windows(self, host):
        host(system="Windows")
        assert detection.detect_os() == OsType.WINDOWS

    def test_macos(self, host):
        host(system="Darwin")
        assert detection.detect_os() == OsType.MACOS

    @pytest.mark.parametrize(
        "distro_id, expected",
        [
            ("ubuntu", OsType.UBUNTU),
            ("linuxmint", OsType.MINT),
            ("fedora", OsType.FEDORA),
            ("rhel", OsType.REDHAT_ENTERPRISE),
            ("arch", OsType.ARCH),
            ("opensuse-tumbleweed", OsType.OPENSUSE),
        ],
    )
    def test_linux_distributions(self, host, distro_id, expected):
        host(distro_id=distro_id)
        assert detection.detect_os() == expected

    def test_unknown_distribution_is_generic_linux(self, host):
        host(distro_id="someos")
        assert detection.detect_os() == OsType.LINUX

    def test_android(self, host, monkeypatch):
        host()
        monkeypatch.setenv("ANDROID_ROOT", "/system")
        monkeypatch.setenv("ANDROID_DATA", "/data")
        assert detection.detect_os() == OsType.ANDROID

    def test_unsupported_system(self, host):
        host(system="FreeBSD")
        assert detection.detect_os() == OsType.UNKNOWN


class TestDetectMachine:
    def test_combines_os_and_arch(self, host):
        host(distro_id="debian", machine="aarch64")
        assert detection.detect_machine() == Machine(os=OsType.DEBIAN, arch=Architecture.AARCH64)

    def test_machine_defaults_fill_from_detection(self, host):
        host(distro_id="fedora", machine="x86_64")
        m = Machine(os=OsType.UBUNTU)
        assert m.os == OsType.UBUNTU
        assert m.arch == Architecture.X86_64
        assert Machine().os == OsType.FEDORA
