"""
Tests for kernel version ordering, the retention planner and the dpkg adapter.
"""

import random

import pytest

from debian_maintenance.exceptions import InvalidConfiguration
from debian_maintenance.kernels import (
    KernelRetentionPlanner,
    compare_versions,
    kernel_package_name,
    parse_installed_kernels,
    plan_retention,
    sort_versions,
    version_key,
)

SUFFIXES = ["", "-amd64", "-generic", "-rt-amd64", "-cloud-amd64", "+deb13"]


def random_version(rng: random.Random) -> str:
    parts = [str(rng.randint(0, 6)) for _ in range(rng.randint(1, 4))]
    return ".".join(parts) + "-" + str(rng.randint(0, 40)) + rng.choice(SUFFIXES)


def random_installed(rng: random.Random, size: int):
    return [random_version(rng) for _ in range(size)]


# ── Version Ordering ─────────────────────────────────────────────────


class TestVersionOrdering:
    def test_numeric_segments_compare_as_numbers(self):
        assert compare_versions("6.1.0-9", "6.1.0-13") == -1
        assert compare_versions("6.10.0", "6.9.0") == 1

    def test_equal_versions(self):
        assert compare_versions("6.1.0-13-amd64", "6.1.0-13-amd64") == 0

    def test_prefix_sorts_first(self):
        assert sort_versions(["6.1.0-amd64", "6.1", "6.1.0"]) == [
            "6.1",
            "6.1.0",
            "6.1.0-amd64",
        ]

    def test_text_segment_after_numeric(self):
        assert compare_versions("6.1.0-rc1", "6.1.0-1") == 1

    def test_empty_segments_ignored(self):
        assert version_key("6..1") == version_key("6.1")

    def test_debian_suffix_compares_patch_numerically(self):
        assert compare_versions("6.12.100+deb13-amd64", "6.12.99+deb13-amd64") == 1
        assert compare_versions("6.1.0-9+deb12u1", "6.1.0-10+deb12u1") == -1
        assert compare_versions("6.12.99+deb13-amd64", "6.12.99+deb14-amd64") == -1

    def test_debian_suffix_sort(self):
        assert sort_versions(
            ["6.12.100+deb13-amd64", "6.12.98+deb13-amd64", "6.12.99+deb13-amd64"]
        ) == [
            "6.12.98+deb13-amd64",
            "6.12.99+deb13-amd64",
            "6.12.100+deb13-amd64",
        ]

    def test_malformed_input_does_not_raise(self):
        assert sort_versions(["", "abc", "1.x.2", "--"]) is not None

    def test_transitive_over_generated_versions(self):
        rng = random.Random(1337)
        versions = random_installed(rng, 40)
        for a in versions:
            for b in versions:
                if compare_versions(a, b) >= 0:
                    continue
                for c in versions:
                    if compare_versions(b, c) < 0:
                        assert compare_versions(a, c) < 0

    def test_antisymmetric(self):
        rng = random.Random(7)
        for _ in range(200):
            a, b = random_version(rng), random_version(rng)
            assert compare_versions(a, b) == -compare_versions(b, a)


# ── Retention Planner ────────────────────────────────────────────────


class TestRetentionPlanner:
    def test_keeps_newest(self):
        plan = plan_retention(["5.10.0-1", "5.10.0-3", "5.10.0-2"], "5.10.0-3", 2)
        assert plan.keep == ("5.10.0-2", "5.10.0-3")
        assert plan.remove == ("5.10.0-1",)

    def test_patch_number_crossing_digit_boundary(self):
        installed = [
            "6.12.98+deb13-amd64",
            "6.12.99+deb13-amd64",
            "6.12.100+deb13-amd64",
        ]
        plan = plan_retention(installed, "6.12.99+deb13-amd64", 2)
        assert plan.keep == ("6.12.99+deb13-amd64", "6.12.100+deb13-amd64")
        assert plan.remove == ("6.12.98+deb13-amd64",)

    def test_running_old_kernel_is_kept(self):
        installed = ["5.15.0-10", "5.15.0-20", "5.15.0-30", "5.15.0-40"]
        plan = plan_retention(installed, "5.15.0-10", 3)
        assert {"5.15.0-10", "5.15.0-30", "5.15.0-40"} <= plan.keep_set
        assert "5.15.0-20" in plan.remove_set
        assert len(plan.keep) == 3

    def test_single_keep_with_old_running_kernel(self):
        plan = plan_retention(["1.0", "2.0", "3.0"], "1.0", 1)
        assert plan.keep == ("1.0", "3.0")
        assert plan.remove == ("2.0",)

    def test_empty_installed(self):
        plan = plan_retention([], "6.1.0-13-amd64", 3)
        assert plan.keep == ()
        assert plan.remove == ()
        assert not plan.has_removals

    def test_only_running_installed(self):
        plan = plan_retention(["6.1.0-13-amd64"], "6.1.0-13-amd64", 3)
        assert plan.keep == ("6.1.0-13-amd64",)
        assert plan.remove == ()

    def test_duplicates_deduplicated(self):
        plan = plan_retention(["1.0", "1.0", " 2.0 ", "2.0"], "2.0", 1)
        assert plan.keep == ("2.0",)
        assert plan.remove == ("1.0",)

    def test_running_not_installed_is_not_added(self):
        plan = plan_retention(["1.0", "2.0"], "9.9", 1)
        assert plan.keep == ("2.0",)
        assert "9.9" not in plan.keep_set

    def test_unknown_running_kernel(self):
        plan = plan_retention(["1.0", "2.0", "3.0"], None, 2)
        assert plan.keep == ("2.0", "3.0")
        assert plan.running is None

    @pytest.mark.parametrize("keep_count", [0, -1])
    def test_invalid_keep_count(self, keep_count):
        with pytest.raises(InvalidConfiguration):
            KernelRetentionPlanner().plan(["1.0"], "1.0", keep_count)

    def test_properties_over_generated_inputs(self):
        rng = random.Random(20250701)
        planner = KernelRetentionPlanner()
        for _ in range(300):
            installed = random_installed(rng, rng.randint(1, 12))
            running = rng.choice(installed)
            keep_count = rng.randint(1, 5)
            plan = planner.plan(installed, running, keep_count)
            distinct = set(installed)

            assert running in plan.keep_set
            assert not plan.keep_set & plan.remove_set
            assert plan.keep_set | plan.remove_set == distinct
            assert len(plan.keep) <= keep_count + 1
            if len(distinct) <= keep_count:
                assert plan.remove == ()


# ── dpkg Adapter ─────────────────────────────────────────────────────

DPKG_LIST = """\
Desired=Unknown/Install/Remove/Purge/Hold
||/ Name                          Version        Architecture Description
+++-=============================-==============-============-=================
ii  linux-image-6.1.0-10-amd64    6.1.38-4       amd64        Linux 6.1 for 64-bit PCs (signed)
ii  linux-image-6.1.0-13-amd64    6.1.55-1       amd64        Linux 6.1 for 64-bit PCs (signed)
rc  linux-image-6.1.0-9-amd64     6.1.27-1       amd64        Linux 6.1 for 64-bit PCs (signed)
ii  linux-image-amd64             6.1.55-1       amd64        Linux for 64-bit PCs (meta-package)
ii  linux-image-6.1.0-13-amd64:amd64 6.1.55-1    amd64        duplicate with arch suffix
ii  linux-headers-6.1.0-13-amd64  6.1.55-1       amd64        Header files
"""


class TestDpkgAdapter:
    def test_parses_installed_images(self):
        assert parse_installed_kernels(DPKG_LIST) == [
            "6.1.0-10-amd64",
            "6.1.0-13-amd64",
        ]

    def test_empty_output(self):
        assert parse_installed_kernels("") == []

    def test_package_name(self):
        assert kernel_package_name("6.1.0-10-amd64") == "linux-image-6.1.0-10-amd64"
