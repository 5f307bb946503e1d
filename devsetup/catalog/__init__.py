"""
Catalog — built-in bundles, looked up by lower-cased name.
"""

from __future__ import annotations

from collections.abc import Callable

from devsetup.catalog.bundles import projektwoche
from devsetup.core.models import SoftwareBundle

BUNDLES: dict[str, Callable[[], SoftwareBundle]] = {
    "projektwoche": projektwoche,
}


def get_bundle(name: str) -> SoftwareBundle:
    """Build the catalog bundle called ``name`` (case-insensitive).

    Raises:
        KeyError: If no such bundle exists.
    """
    return BUNDLES[name.lower()]()


def bundle_names() -> list[str]:
    return list(BUNDLES)
