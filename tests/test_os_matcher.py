"""
Tests for OS categories and matchers.
"""

import pytest

from devsetup.core.models import CATEGORY_MEMBERS, OsCategory, OsMatcher, OsType


class TestCategoryTables:
    def test_debian_based(self):
        assert CATEGORY_MEMBERS[OsCategory.DEBIAN_BASED] == (
            OsType.DEBIAN,
            OsType.UBUNTU,
            OsType.MINT,
            OsType.POP,
            OsType.RASPBIAN,
        )

    def test_derivative_families_are_linux_based(self):
        linux = set(CATEGORY_MEMBERS[OsCategory.LINUX_BASED])
        for category in (
            OsCategory.ARCH_BASED,
            OsCategory.RHEL_BASED,
            OsCategory.DEBIAN_BASED,
            OsCategory.GENTOO_BASED,
        ):
            assert set(CATEGORY_MEMBERS[category]) <= linux

    def test_non_linux_categories(self):
        linux = CATEGORY_MEMBERS[OsCategory.LINUX_BASED]
        assert OsType.WINDOWS not in linux
        assert OsType.MACOS not in linux
        assert OsType.ANDROID not in linux

    def test_every_category_has_members(self):
        assert set(CATEGORY_MEMBERS) == set(OsCategory)
        assert all(CATEGORY_MEMBERS.values())


class TestOsMatcher:
    def test_from_category_debian(self):
        m = OsMatcher.from_category(OsCategory.DEBIAN_BASED)
        assert m.matches(OsType.UBUNTU)
        assert not m.matches(OsType.FEDORA)

    def test_union_windows_and_macos(self):
        m = OsMatcher.from_categories([OsCategory.WINDOWS, OsCategory.MACOS])
        assert m.matches(OsType.WINDOWS)
        assert m.matches(OsType.MACOS)
        assert not m.matches(OsType.UBUNTU)

    def test_union_keeps_first_occurrence_order_without_duplicates(self):
        m = OsMatcher.from_categories([OsCategory.DEBIAN_BASED, OsCategory.LINUX_BASED])
        assert m.os_list[:5] == CATEGORY_MEMBERS[OsCategory.DEBIAN_BASED]
        assert len(m.os_list) == len(set(m.os_list))
        assert len(m) == len(CATEGORY_MEMBERS[OsCategory.LINUX_BASED])

    def test_empty_matcher_matches_nothing(self):
        m = OsMatcher()
        assert m.os_list == ()
        assert not m.matches(OsType.UBUNTU)

    def test_from_os_explicit(self):
        m = OsMatcher.from_os(OsType.FEDORA, OsType.ARCH, OsType.FEDORA)
        assert m.os_list == (OsType.FEDORA, OsType.ARCH)

    def test_from_selector(self):
        assert OsMatcher.from_selector(OsType.GENTOO).os_list == (OsType.GENTOO,)
        assert OsMatcher.from_selector(OsCategory.GENTOO_BASED).os_list == (OsType.GENTOO,)

    def test_union_method(self):
        m = OsMatcher.from_category(OsCategory.RHEL_BASED).union(OsMatcher.from_os(OsType.ALPINE))
        assert OsType.ALPINE in m
        assert OsType.FEDORA in m

    def test_accepts_plain_values(self):
        m = OsMatcher(["Ubuntu", "Windows"])
        assert m.os_list == (OsType.UBUNTU, OsType.WINDOWS)

    def test_unknown_identity_rejected(self):
        with pytest.raises(ValueError):
            OsMatcher(["Plan9"])

    def test_os_list_is_immutable(self):
        m = OsMatcher.from_category(OsCategory.ARCH_BASED)
        assert isinstance(m.os_list, tuple)
        with pytest.raises(AttributeError):
            m.os_list = ()

    def test_equality_and_hash(self):
        a = OsMatcher.from_category(OsCategory.WINDOWS)
        b = OsMatcher.from_os(OsType.WINDOWS)
        assert a == b
        assert hash(a) == hash(b)
