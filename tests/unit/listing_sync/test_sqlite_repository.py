"""
Unit tests for SqliteRepository.

All tests run against an in-memory database.
"""

import pytest

from listing_sync.core.exceptions import JobStateError, RepositoryError
from listing_sync.core.types import JobStatus, StoreId, StoreScope
from listing_sync.snapshot.models import build_locale_detail
from listing_sync.storage.sqlite_repository import SqliteRepository


class TestApps:
    """Tests for app records."""

    def test_create_and_get(self, repo):
        """Test an app round-trips with canonicalized source locale."""
        app = repo.create_app("Acme", source_locale="iw-IL", asc_app_id="42")
        loaded = repo.get_app(app.id)
        assert loaded.name == "Acme"
        assert loaded.source_locale == "he"
        assert loaded.asc_app_id == "42"
        assert loaded.android_package_name is None

    def test_missing_app(self, repo):
        """Test unknown ids return None."""
        assert repo.get_app(999) is None

    def test_list_apps(self, repo):
        """Test apps are listed in creation order."""
        repo.create_app("A")
        repo.create_app("B")
        assert [a.name for a in repo.list_apps()] == ["A", "B"]


class TestLocales:
    """Tests for locale lists and details."""

    def test_replace_locales(self, repo, app):
        """Test locale lists are canonicalized, deduplicated and replaced wholesale."""
        repo.replace_locales(app.id, StoreId.PLAY_STORE, ["en-US", "iw-IL", "he", ""])
        assert repo.list_locales(app.id, StoreId.PLAY_STORE) == ["en-US", "he"]

        repo.replace_locales(app.id, StoreId.PLAY_STORE, ["de-DE"])
        assert repo.list_locales(app.id, StoreId.PLAY_STORE) == ["de-DE"]
        assert repo.list_locales(app.id, StoreId.APP_STORE) == []

    def test_details_round_trip(self, repo, app):
        """Test locale details persist fields, lengths, screenshots and metadata."""
        detail = build_locale_detail(
            StoreId.APP_STORE,
            "de-DE",
            {"appName": "Acme", "keywords": "äpfel"},
            screenshots=[{"display_type": "APP_IPHONE_67", "images": []}],
            metadata={"version_localization_id": "v-1"},
        )
        repo.replace_locale_details(app.id, StoreId.APP_STORE, [detail])

        loaded = repo.get_locale_detail(app.id, StoreId.APP_STORE, "de-DE")
        assert loaded.fields == {"appName": "Acme", "keywords": "äpfel"}
        assert loaded.lengths["keywords"] == 6
        assert loaded.screenshots[0]["display_type"] == "APP_IPHONE_67"
        assert loaded.metadata["version_localization_id"] == "v-1"
        assert loaded.fetched_at == detail.fetched_at

    def test_unavailable_screenshots_stay_none(self, repo, app):
        """Test missing screenshots are distinct from an empty list."""
        repo.replace_locale_details(app.id, StoreId.PLAY_STORE, [
            build_locale_detail(StoreId.PLAY_STORE, "en-US", {"title": "Acme"}),
        ])
        assert repo.get_locale_detail(app.id, StoreId.PLAY_STORE, "en-US").screenshots is None

    def test_detail_lookup_by_alias(self, repo, app):
        """Test details can be looked up with a store-native code."""
        repo.replace_locale_details(app.id, StoreId.PLAY_STORE, [
            build_locale_detail(StoreId.PLAY_STORE, "iw-IL", {"title": "Acme"}),
        ])
        assert repo.get_locale_detail(app.id, StoreId.PLAY_STORE, "iw-IL").locale == "he"
        assert list(repo.list_locale_details(app.id, StoreId.PLAY_STORE)) == ["he"]


class TestJobs:
    """Tests for sync job lifecycle."""

    def test_create_job(self, repo, app):
        """Test new jobs start queued with their payload."""
        job = repo.create_job(app.id, StoreScope.PLAY_STORE, {"include_remote": False})
        assert job.status is JobStatus.QUEUED
        assert job.store_scope is StoreScope.PLAY_STORE
        assert job.payload == {"include_remote": False}
        assert job.started_at is None

    def test_success_path(self, repo, app):
        """Test queued -> running -> succeeded records timestamps and summary."""
        job = repo.create_job(app.id, StoreScope.BOTH)
        running = repo.mark_running(job.id)
        assert running.status is JobStatus.RUNNING
        assert running.started_at is not None

        done = repo.mark_succeeded(job.id, {"workload": {}})
        assert done.status is JobStatus.SUCCEEDED
        assert done.summary == {"workload": {}}
        assert done.finished_at is not None

    def test_failure_from_queued(self, repo, app):
        """Test a queued job can fail directly."""
        job = repo.create_job(app.id, StoreScope.BOTH)
        failed = repo.mark_failed(job.id, "boom")
        assert failed.status is JobStatus.FAILED
        assert failed.error == "boom"

    def test_terminal_is_final(self, repo, app):
        """Test terminal jobs reject further transitions."""
        job = repo.create_job(app.id, StoreScope.BOTH)
        repo.mark_running(job.id)
        repo.mark_succeeded(job.id, {})
        with pytest.raises(JobStateError):
            repo.mark_failed(job.id, "late")
        with pytest.raises(JobStateError):
            repo.mark_running(job.id)

    def test_cannot_succeed_from_queued(self, repo, app):
        """Test success requires the job to be running."""
        job = repo.create_job(app.id, StoreScope.BOTH)
        with pytest.raises(JobStateError):
            repo.mark_succeeded(job.id, {})

    def test_unknown_job(self, repo):
        """Test transitions on missing jobs fail."""
        with pytest.raises(JobStateError):
            repo.mark_running(12345)

    def test_list_jobs_newest_first(self, repo, app):
        """Test jobs are listed newest first."""
        first = repo.create_job(app.id, StoreScope.BOTH)
        second = repo.create_job(app.id, StoreScope.APP_STORE)
        assert [j.id for j in repo.list_jobs(app.id)] == [second.id, first.id]


class TestJobLogs:
    """Tests for job logs."""

    def test_append_and_list(self, repo, app):
        """Test logs come back in insertion order."""
        job = repo.create_job(app.id, StoreScope.BOTH)
        repo.append_log(job.id, "info", "Job queued.")
        repo.append_log(job.id, "warn", "play_store snapshot failed")
        logs = repo.list_logs(job.id)
        assert [(log.level, log.message) for log in logs] == [
            ("info", "Job queued."),
            ("warn", "play_store snapshot failed"),
        ]

    def test_invalid_level(self, repo, app):
        """Test unknown log levels are rejected."""
        job = repo.create_job(app.id, StoreScope.BOTH)
        with pytest.raises(RepositoryError):
            repo.append_log(job.id, "debug", "nope")


class TestFileDatabase:
    """Tests for on-disk databases."""

    def test_persists_across_connections(self, tmp_path):
        """Test data survives reopening the file."""
        db_path = tmp_path / "nested" / "listing_sync.db"
        repo = SqliteRepository(db_path)
        app = repo.create_app("Acme")
        repo.replace_locales(app.id, StoreId.APP_STORE, ["en-US"])
        repo.close()

        reopened = SqliteRepository(db_path)
        assert reopened.list_locales(app.id, StoreId.APP_STORE) == ["en-US"]
        reopened.close()
