"""Built-in bundles."""

from __future__ import annotations

from devsetup.catalog import packages
from devsetup.core.models import SoftwareBundle


def projektwoche() -> SoftwareBundle:
    return (
        SoftwareBundle(
            name="Projektwoche",
            description=(
                "A Bundle containing Packages to set up a development environment "
                "for the Projektwoche of the Athenaeum Stade"
            ),
        )
        .add_program(packages.git())
        .add_program(packages.nodejs())
        .add_program(packages.bun())
        .add_program(packages.vscode())
        .add_program(packages.chrome())
    )
