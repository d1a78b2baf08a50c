"""
Tests for the check / build / update use cases.
"""

from __future__ import annotations

import time

import pytest

from conftest import SUFFIX, FakePackage
from localpkgs.core.engine.builder import PackageBuilder
from localpkgs.core.errors import StateError, UnknownPackageError
from localpkgs.core.persistence.state_file import load_versions, save_versions
from localpkgs.core.services import fetcher
from localpkgs.core.use_cases.build import run_build
from localpkgs.core.use_cases.check import check_packages
from localpkgs.core.use_cases.update import run_update


class SlowPackage(FakePackage):
    def __init__(self, *args, delay: float = 0.05, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay

    def detect(self, timeout: float = 30):
        time.sleep(self.delay)
        return super().detect(timeout)


def _not_installed(*names: str):
    """pacman -Q side effect: fail the query for ``names``."""

    def _effect(action):
        if action.args[-1] in names:
            raise RuntimeError(f"error: package '{action.args[-1]}' was not found")

    return _effect


# ── check ───────────────────────────────────────────────────────


class TestCheck:
    def test_statuses(self, settings, make_runtime):
        runtime = make_runtime(
            FakePackage("a", "1.0"),
            FakePackage("b", "2.0"),
            FakePackage("c", error=ValueError("unexpected payload")),
        )
        save_versions({"a": "1.0", "b": "1.9"}, settings.state_path)

        results = check_packages(runtime)

        assert [(r.package, r.status) for r in results] == [
            ("a", "up_to_date"),
            ("b", "update_available"),
            ("c", "error"),
        ]
        assert results[1].current_version == "1.9"
        assert results[1].latest_version == "2.0"
        assert "unexpected payload" in results[2].error

    def test_enumeration_order_despite_completion_order(self, make_runtime):
        runtime = make_runtime(
            SlowPackage("slow", delay=0.2),
            FakePackage("fast"),
        )
        seen = []

        results = check_packages(runtime, on_result=lambda r: seen.append(r.package))

        assert [r.package for r in results] == ["slow", "fast"]
        assert sorted(seen) == ["fast", "slow"]

    def test_selected_names(self, make_runtime):
        runtime = make_runtime(FakePackage("a"), FakePackage("b"), FakePackage("c"))
        results = check_packages(runtime, ["c", "a"])
        assert [r.package for r in results] == ["c", "a"]

    def test_unknown_name(self, make_runtime):
        runtime = make_runtime(FakePackage("a"))
        with pytest.raises(UnknownPackageError):
            check_packages(runtime, ["zzz"])

    def test_read_only(self, settings, make_runtime, shell, downloader):
        runtime = make_runtime(FakePackage("a", "2.0"))
        save_versions({"a": "1.0"}, settings.state_path)

        check_packages(runtime)

        assert load_versions(settings.state_path) == {"a": "1.0"}
        assert downloader.calls == []
        assert shell.call_count == 0
        assert not settings.repo_path.exists()

    def test_query_installed(self, make_runtime, shell):
        shell.set_side_effect("pacman", _not_installed("b"))
        runtime = make_runtime(FakePackage("a"), FakePackage("b"))

        results = check_packages(runtime, query_installed=True)

        assert [r.installed for r in results] == [True, False]
        assert sorted(a.args for a in shell.calls_to("pacman")) == [
            ["pacman", "-Q", "a"],
            ["pacman", "-Q", "b"],
        ]

    def test_to_dict(self, make_runtime):
        runtime = make_runtime(FakePackage("a", "1.0"))
        data = check_packages(runtime)[0].to_dict()
        assert data["status"] == "update_available"
        assert data["current_version"] is None
        assert data["latest_version"] == "1.0"


# ── build ───────────────────────────────────────────────────────


class TestRunBuild:
    def test_builds_and_republishes(self, settings, make_runtime, shell):
        runtime = make_runtime(FakePackage("a", "1.0"), FakePackage("b", "1.0"))

        result = run_build(runtime, "b")

        assert result.ok
        assert result.build.built
        assert load_versions(settings.state_path) == {"b": "1.0"}
        assert len(shell.calls_to("repo-add")) == 1
        assert result.publish.artifacts == [f"b-1.0-1-x86_64{SUFFIX}"]

    def test_republishes_when_up_to_date(self, settings, make_runtime, shell, downloader):
        runtime = make_runtime(FakePackage("a", "1.0"))
        save_versions({"a": "1.0"}, settings.state_path)

        result = run_build(runtime, "a")

        assert result.ok
        assert result.build.status == "up_to_date"
        assert downloader.calls == []
        assert len(shell.calls_to("repo-add")) == 1

    def test_failure_still_republishes(self, make_runtime, shell):
        shell.set_failure("makepkg")
        runtime = make_runtime(FakePackage("a", "1.0"))

        result = run_build(runtime, "a")

        assert not result.ok
        assert result.build.error_type == "BuildError"
        assert len(shell.calls_to("repo-add")) == 1

    def test_unknown_package(self, make_runtime, shell):
        runtime = make_runtime(FakePackage("a"))
        with pytest.raises(UnknownPackageError):
            run_build(runtime, "nope")
        assert shell.call_count == 0

    def test_index_failure(self, make_runtime, shell):
        shell.set_failure("repo-add", "repo-add: database locked")
        runtime = make_runtime(FakePackage("a", "1.0"))

        result = run_build(runtime, "a")

        assert result.build.built
        assert not result.ok
        assert "database locked" in result.error

    def test_audit_entry(self, make_runtime):
        runtime = make_runtime(FakePackage("a", "1.0"))
        result = run_build(runtime, "a")

        entries = runtime.audit.entries()
        assert len(entries) == 1
        assert entries[0].operation_id == result.operation_id
        assert entries[0].command == "build"
        assert entries[0].built == ["a"]
        assert entries[0].republished is True


# ── update ──────────────────────────────────────────────────────


class TestRunUpdate:
    def test_builds_only_stale(self, settings, make_runtime, downloader, shell):
        runtime = make_runtime(
            FakePackage("a", "1.0"),
            FakePackage("b", "2.0"),
            FakePackage("c", "3.0"),
        )
        save_versions({"a": "1.0", "b": "1.0"}, settings.state_path)

        result = run_update(runtime, install=False)

        assert result.ok
        assert result.status == "ok"
        assert result.built == ["b", "c"]
        assert result.up_to_date == ["a"]
        assert [url for url, _ in downloader.calls] == ["http://x/f.bin", "http://x/f.bin"]
        assert len(shell.calls_to("repo-add")) == 1
        assert load_versions(settings.state_path) == {"a": "1.0", "b": "2.0", "c": "3.0"}

    def test_builds_serially_in_order(self, make_runtime, shell):
        runtime = make_runtime(FakePackage("z", "1"), FakePackage("m", "1"), FakePackage("a", "1"))

        run_update(runtime, install=False)

        assert [a.for_package for a in shell.calls_to("makepkg")] == ["z", "m", "a"]

    def test_nothing_to_do(self, settings, make_runtime, shell):
        runtime = make_runtime(FakePackage("a", "1.0"))
        save_versions({"a": "1.0"}, settings.state_path)

        result = run_update(runtime, install=False)

        assert result.built == []
        assert result.publish is None
        assert shell.calls_to("repo-add") == []

    def test_failure_isolated(self, settings, make_runtime):
        runtime = make_runtime(
            FakePackage("a", "1.0"),
            FakePackage("explodes", "1.0"),
            FakePackage("broken", error=ConnectionError("vendor down")),
            FakePackage("c", "1.0"),
        )

        result = run_update(runtime, install=False)

        assert result.built == ["a", "c"]
        assert sorted(result.failed) == ["broken", "explodes"]
        assert result.ok
        assert result.status == "partial"
        assert load_versions(settings.state_path) == {"a": "1.0", "c": "1.0"}
        assert sorted(result.publish.artifacts) == [
            f"a-1.0-1-x86_64{SUFFIX}",
            f"c-1.0-1-x86_64{SUFFIX}",
        ]

    def test_unreadable_template_does_not_stop_later_packages(self, settings, make_runtime):
        runtime = make_runtime(FakePackage("bad", "1.0"), FakePackage("good", "1.0"))
        (settings.recipe_dir("bad") / "PKGBUILD.template").write_bytes(b"\xff\xfe")

        result = run_update(runtime, install=False)

        assert result.built == ["good"]
        assert result.failed == ["bad"]
        assert result.ok
        assert load_versions(settings.state_path) == {"good": "1.0"}

    def test_malformed_download_url_does_not_stop_later_packages(self, settings, make_runtime, tmp_path):
        source = tmp_path / "good.bin"
        source.write_bytes(b"upstream release")
        runtime = make_runtime(
            FakePackage("bad", "1.0", url="not-a-url"),
            FakePackage("good", "1.0", url=source.as_uri()),
        )
        runtime.builder = PackageBuilder(settings, runtime.adapters, runtime.store, download=fetcher.download)

        result = run_update(runtime, install=False)

        assert result.built == ["good"]
        assert result.failed == ["bad"]
        assert result.builds[0].error_type == "NetworkError"
        assert load_versions(settings.state_path) == {"good": "1.0"}

    def test_detected_info_reused(self, make_runtime):
        pkg = FakePackage("a", "1.0")
        runtime = make_runtime(pkg)

        run_update(runtime, install=False)

        assert pkg.detect_calls == 1

    def test_state_read_error(self, make_runtime, monkeypatch, shell):
        runtime = make_runtime(FakePackage("a", "1.0"))

        def _unreadable():
            raise StateError("Cannot read state file: Permission denied")

        monkeypatch.setattr(runtime.store, "load", _unreadable)

        result = run_update(runtime, install=False)

        assert not result.ok
        assert result.status == "failed"
        assert shell.call_count == 0

    def test_state_write_error_stops_builds(self, settings, make_runtime, shell):
        runtime = make_runtime(FakePackage("a", "1.0"), FakePackage("b", "1.0"))
        settings.state_path.mkdir(parents=True)

        result = run_update(runtime, install=False)

        assert not result.ok
        assert len(shell.calls_to("makepkg")) == 1
        # Artifacts already placed are still indexed
        assert len(shell.calls_to("repo-add")) == 1

    def test_index_failure_is_fatal(self, make_runtime, shell):
        shell.set_failure("repo-add", "repo-add failed")
        runtime = make_runtime(FakePackage("a", "1.0"))

        result = run_update(runtime, install=False)

        assert result.built == ["a"]
        assert not result.ok

    def test_audit_entry(self, make_runtime):
        runtime = make_runtime(FakePackage("a", "1.0"), FakePackage("b", error=ValueError("bad")))

        run_update(runtime, install=False)

        [entry] = runtime.audit.entries()
        assert entry.command == "update"
        assert entry.status == "partial"
        assert entry.built == ["a"]
        assert entry.failed == ["b"]
        assert any("bad" in e for e in entry.errors)


class TestInstall:
    @pytest.fixture(autouse=True)
    def _enable_install(self, settings):
        settings.install.enabled = True

    def test_update_then_install_built_and_missing(self, settings, make_runtime, shell):
        shell.set_side_effect("pacman", _not_installed("b", "c"))
        runtime = make_runtime(
            FakePackage("a", "2.0"),   # stale → built
            FakePackage("b", "1.0"),   # built earlier, not installed
            FakePackage("c", "1.0"),   # never built, not installed
            FakePackage("d", "1.0"),   # up to date, installed
        )
        save_versions({"a": "1.0", "b": "1.0", "d": "1.0"}, settings.state_path)

        result = run_update(runtime, extra_args=["--aur"], no_confirm=True)

        assert result.built == ["a", "c"]
        assert [a.args for a in shell.calls_to("pamac")] == [
            ["pamac", "update", "--aur"],
            ["pamac", "install", "a", "b", "c", "--no-confirm"],
        ]
        assert all(a.interactive for a in shell.calls_to("pamac"))
        assert result.installed == ["a", "b", "c"]

    def test_nothing_to_install(self, settings, make_runtime, shell):
        runtime = make_runtime(FakePackage("a", "1.0"))
        save_versions({"a": "1.0"}, settings.state_path)

        result = run_update(runtime)

        assert [a.args for a in shell.calls_to("pamac")] == [["pamac", "update"]]
        assert result.installed == []

    def test_skipped_with_flag(self, make_runtime, shell):
        runtime = make_runtime(FakePackage("a", "1.0"))

        run_update(runtime, install=False)

        assert shell.calls_to("pamac") == []
        assert shell.calls_to("pacman") == []

    def test_skipped_when_disabled_in_settings(self, settings, make_runtime, shell):
        settings.install.enabled = False
        runtime = make_runtime(FakePackage("a", "1.0"))

        run_update(runtime)

        assert shell.calls_to("pamac") == []

    def test_skipped_after_run_level_error(self, make_runtime, shell):
        shell.set_failure("repo-add")
        runtime = make_runtime(FakePackage("a", "1.0"))

        result = run_update(runtime)

        assert not result.ok
        assert shell.calls_to("pamac") == []

    def test_install_failure_reported(self, make_runtime, shell):
        shell.set_failure("pamac", "transaction cancelled")
        runtime = make_runtime(FakePackage("a", "1.0"))

        result = run_update(runtime)

        assert result.built == ["a"]
        assert result.installed == []
        assert [r.ok for r in result.install_receipts] == [False, False]
