"""
Tests for the built-in catalog.
"""

import pytest

from devsetup.catalog import BUNDLES, bundle_names, get_bundle, packages
from devsetup.core.engine.orchestrator import install_bundle
from devsetup.core.instructions import Assert, DownloadAndExec, InstallApplication, Run
from devsetup.core.models import OsType, Phase


class TestRegistry:
    def test_names(self):
        assert bundle_names() == ["projektwoche"]

    def test_lookup_is_case_insensitive(self):
        assert get_bundle("Projektwoche").name == "Projektwoche"

    def test_unknown(self):
        with pytest.raises(KeyError):
            get_bundle("nope")

    def test_factories_build_fresh_bundles(self):
        assert BUNDLES["projektwoche"]() == BUNDLES["projektwoche"]()


class TestProjektwoche:
    def test_package_order(self):
        bundle = get_bundle("projektwoche")
        assert [p.name for p in bundle.packages] == [
            "Git",
            "Node.js",
            "Bun",
            "Visual Studio Code",
            "Google Chrome",
        ]
        assert "Athenaeum Stade" in bundle.description

    def test_every_package_supports_windows_and_debian(self):
        for package in get_bundle("projektwoche").packages:
            assert package.supports(OsType.WINDOWS), package.name
            assert package.supports(OsType.UBUNTU), package.name

    def test_prerequisites_are_assertions(self):
        for package in get_bundle("projektwoche").packages:
            for mapping in package.mappings.values():
                assert mapping.prerequisites
                assert all(isinstance(p, Assert) for p in mapping.prerequisites)


class TestPackages:
    def test_git(self):
        git = packages.git()
        assert git.mapping_for(OsType.WINDOWS).install == (
            InstallApplication(description="Install Git", package_name="Microsoft.Git"),
        )
        assert git.mapping_for(OsType.ARCH).install[0].package_name == "git"

    def test_nodejs_uses_shell_pipeline_on_linux(self):
        steps = packages.nodejs().mapping_for(OsType.FEDORA).install
        assert all(isinstance(s, Run) and s.shell for s in steps)
        assert "nvm" in steps[0].command

    def test_vscode_not_on_arch(self):
        vscode = packages.vscode()
        assert vscode.supports(OsType.FEDORA)
        assert not vscode.supports(OsType.ARCH)

    def test_chrome_downloads_native_packages(self):
        chrome = packages.chrome()
        deb = chrome.mapping_for(OsType.DEBIAN).install[0]
        rpm = chrome.mapping_for(OsType.FEDORA).install[0]
        assert isinstance(deb, DownloadAndExec) and deb.url.endswith(".deb")
        assert isinstance(rpm, DownloadAndExec) and rpm.url.endswith(".rpm")
        linux_check = chrome.mapping_for(OsType.UBUNTU).prerequisites[0]
        assert linux_check.command == "google-chrome --version"


class TestDryRunInstall:
    def test_on_arch_vscode_and_chrome_unsupported(self, forbidden_runner, log_capture):
        report = install_bundle(get_bundle("projektwoche"), OsType.ARCH, True, log_capture.system)
        install = report.phase(Phase.INSTALL)
        assert install.outcome("Visual Studio Code").status == "unsupported"
        assert install.outcome("Google Chrome").status == "unsupported"
        assert install.outcome("Git").status == "already_installed"
        assert report.status == "partial"
