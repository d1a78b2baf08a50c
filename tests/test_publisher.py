"""
Tests for repository index regeneration.
"""

from __future__ import annotations

import pytest

from conftest import SUFFIX
from localpkgs.core.engine.publisher import RepositoryPublisher
from localpkgs.core.errors import PublishError


@pytest.fixture
def publisher(settings, adapters):
    return RepositoryPublisher(settings, adapters)


@pytest.fixture
def repo(settings):
    settings.repo_path.mkdir(parents=True)
    for name in ("foo-1.0-1-x86_64", "bar-2.0-1-any"):
        (settings.repo_path / f"{name}{SUFFIX}").write_bytes(b"pkg")
    return settings.repo_path


class TestRepublish:
    def test_indexes_every_artifact(self, publisher, repo, shell):
        report = publisher.republish()

        assert report.artifacts == [f"bar-2.0-1-any{SUFFIX}", f"foo-1.0-1-x86_64{SUFFIX}"]
        action = shell.calls_to("repo-add")[0]
        assert action.id == "index:local-packages"
        assert action.cwd == str(repo)
        assert action.args[1] == str(repo / "local-packages.db.tar.zst")
        assert sorted(action.args[2:]) == sorted(str(repo / a) for a in report.artifacts)

    def test_pointers_are_regular_files(self, publisher, repo):
        publisher.republish()

        for pointer, archive in (("local-packages.db", "local-packages.db.tar.zst"),
                                 ("local-packages.files", "local-packages.files.tar.zst")):
            path = repo / pointer
            assert path.is_file()
            assert not path.is_symlink()
            assert path.read_bytes() == (repo / archive).read_bytes()

    def test_old_index_deleted_first(self, publisher, repo, shell):
        (repo / "local-packages.db.tar.zst").write_text("stale")
        (repo / "local-packages.db.tar.zst.old").write_text("backup")
        (repo / "local-packages.files").write_text("stale pointer")
        seen = []
        shell.set_side_effect(
            "repo-add",
            lambda action: seen.extend(sorted(p.name for p in repo.iterdir())),
        )

        with pytest.raises(PublishError):
            publisher.republish()

        assert seen == [f"bar-2.0-1-any{SUFFIX}", f"foo-1.0-1-x86_64{SUFFIX}"]

    def test_index_reflects_removed_artifact(self, publisher, repo):
        publisher.republish()
        (repo / f"bar-2.0-1-any{SUFFIX}").unlink()

        report = publisher.republish()

        assert report.artifacts == [f"foo-1.0-1-x86_64{SUFFIX}"]
        assert (repo / "local-packages.db").read_text() == f"foo-1.0-1-x86_64{SUFFIX}"

    def test_repeat_runs_are_stable(self, publisher, repo):
        publisher.republish()
        first = sorted(p.name for p in repo.iterdir())
        publisher.republish()
        assert sorted(p.name for p in repo.iterdir()) == first

    def test_empty_repository(self, publisher, settings, shell):
        report = publisher.republish()

        assert report.artifacts == []
        assert shell.calls_to("repo-add")[0].args[2:] == []
        assert (settings.repo_path / "local-packages.db").is_file()

    def test_ignores_other_files(self, publisher, repo):
        (repo / "README").write_text("not a package")
        (repo / f"foo-1.0-1-x86_64{SUFFIX}.sig").write_bytes(b"sig")

        report = publisher.republish()

        assert len(report.artifacts) == 2

    def test_custom_repo_name(self, settings, adapters, repo):
        settings.repo_name = "mine"
        report = RepositoryPublisher(settings, adapters).republish()

        assert "mine.db" in report.index_files
        assert (repo / "mine.files").is_file()


class TestRepublishFailures:
    def test_indexer_failure(self, publisher, repo, shell):
        shell.set_failure("repo-add", "==> ERROR: invalid package", return_code=1)

        with pytest.raises(PublishError, match="invalid package"):
            publisher.republish()

        # Artifacts themselves are untouched
        assert (repo / f"foo-1.0-1-x86_64{SUFFIX}").is_file()

    def test_missing_archive(self, publisher, repo, shell):
        shell.set_side_effect("repo-add", lambda action: None)

        with pytest.raises(PublishError, match="did not produce"):
            publisher.republish()

    def test_repo_path_not_a_directory(self, publisher, settings):
        settings.repo_path.write_text("oops")

        with pytest.raises(PublishError):
            publisher.republish()
