"""
Package catalog — the tools the built-in bundles provision.

Each function returns a fresh ``Package``. Windows installs go through
winget/choco IDs; Linux installs use the distribution package manager
or the vendor's install script.
"""

from __future__ import annotations

from devsetup.core.instructions import Instruction
from devsetup.core.models import InstructionMapping, OsCategory, OsMatcher, Package

WINDOWS = OsMatcher.from_category(OsCategory.WINDOWS)
LINUX = OsMatcher.from_category(OsCategory.LINUX_BASED)
DEBIAN = OsMatcher.from_category(OsCategory.DEBIAN_BASED)
RHEL = OsMatcher.from_category(OsCategory.RHEL_BASED)


def git() -> Package:
    check = Instruction("Check if Git is installed").assert_output("git --version", "git version")
    return (
        Package(name="Git", description="Distributed version control")
        .add_mapping(
            WINDOWS,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(
                Instruction("Install Git").install_application("Microsoft.Git")
            ),
        )
        .add_mapping(
            LINUX,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(Instruction("Install Git").install_application("git")),
        )
    )


def nodejs() -> Package:
    check = Instruction("Check if Node.js is installed").assert_output("node --version", "v")
    return (
        Package(name="Node.js", description="JavaScript runtime")
        .add_mapping(
            WINDOWS,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(
                Instruction("Install Node.js").install_application("OpenJS.NodeJS")
            ),
        )
        .add_mapping(
            LINUX,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(
                Instruction("Install nvm").shell(
                    "curl -o- https://raw.githubusercontent.com/nvm-sh/nvm/v0.40.3/install.sh | bash"
                ),
                Instruction("Install Node.js with nvm").shell(
                    "bash -c 'source ~/.nvm/nvm.sh && nvm install node "
                    "&& nvm use node && nvm alias default node'"
                ),
            ),
        )
    )


def bun() -> Package:
    check = Instruction("Check if Bun is installed").assert_output("bun --version", ".")
    return (
        Package(name="Bun", description="JavaScript runtime and package manager")
        .add_mapping(
            WINDOWS,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(Instruction("Install Bun").install_application("Oven-sh.Bun")),
        )
        .add_mapping(
            LINUX,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(
                Instruction("Install Bun").shell("curl -fsSL https://bun.sh/install | bash"),
            )
            .add_configuration_instructions(
                Instruction("Put Bun on PATH").add_env_var("BUN_INSTALL", "$HOME/.bun"),
            ),
        )
    )


def vscode() -> Package:
    check = Instruction("Check if VS Code is installed").assert_output("code --version", ".")
    linux = (
        InstructionMapping()
        .add_prerequisite_checks(check)
        .add_install_instructions(Instruction("Install VS Code").install_application("code"))
    )
    return (
        Package(name="Visual Studio Code", description="Code editor")
        .add_mapping(
            WINDOWS,
            InstructionMapping()
            .add_prerequisite_checks(check)
            .add_install_instructions(
                Instruction("Install VS Code").install_application("Microsoft.VisualStudioCode")
            ),
        )
        .add_mapping(RHEL.union(DEBIAN), linux)
    )


def chrome() -> Package:
    linux_check = Instruction("Check if Chrome is installed").assert_output(
        "google-chrome --version", "Google Chrome"
    )
    return (
        Package(name="Google Chrome", description="Web browser")
        .add_mapping(
            WINDOWS,
            InstructionMapping()
            .add_prerequisite_checks(
                Instruction("Check if Chrome is installed").assert_output(
                    "chrome --version", "Google Chrome"
                )
            )
            .add_install_instructions(
                Instruction("Install Chrome").install_application("Google.Chrome")
            ),
        )
        .add_mapping(
            DEBIAN,
            InstructionMapping()
            .add_prerequisite_checks(linux_check)
            .add_install_instructions(
                Instruction("Install Chrome").download_and_exec(
                    "https://dl.google.com/linux/direct/google-chrome-stable_current_amd64.deb"
                )
            ),
        )
        .add_mapping(
            RHEL,
            InstructionMapping()
            .add_prerequisite_checks(linux_check)
            .add_install_instructions(
                Instruction("Install Chrome").download_and_exec(
                    "https://dl.google.com/linux/direct/google-chrome-stable_current_x86_64.rpm"
                )
            ),
        )
    )
