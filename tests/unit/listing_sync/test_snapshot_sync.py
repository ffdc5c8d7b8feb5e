"""
Unit tests for snapshot models, workload and snapshot sync.
"""

from listing_sync.core.types import StoreId, StoreScope
from listing_sync.snapshot.models import build_locale_detail
from listing_sync.snapshot.sync import SnapshotSyncService, fetch_snapshots
from listing_sync.snapshot.workload import HIGH_LOAD_THRESHOLD, build_locale_workload, compute_workload


class TestBuildLocaleDetail:
    """Tests for build_locale_detail."""

    def test_canonicalizes_and_measures(self):
        """Test locale canonicalization, None dropping and unit-aware lengths."""
        detail = build_locale_detail(
            StoreId.APP_STORE, "zh-CN", {"appName": "应用", "keywords": "应用", "subtitle": None},
        )
        assert detail.locale == "zh-Hans"
        assert "subtitle" not in detail.fields
        assert detail.lengths == {"appName": 2, "keywords": 6}
        assert detail.value("subtitle") == ""


class TestWorkload:
    """Tests for locale workload."""

    def test_breakdown(self):
        """Test overlap and both difference sets."""
        workload = build_locale_workload(["en-US", "de-DE", "he"], ["en-US", "iw-IL", "fr-FR"])
        assert workload.overlap_locales == ["en-US", "he"]
        assert workload.missing_in_remote == ["de-DE"]
        assert workload.unmanaged_in_config == ["fr-FR"]

    def test_high_load_flag(self):
        """Test the high-load flag at the threshold."""
        many = [f"xx-{i:02d}" for i in range(HIGH_LOAD_THRESHOLD)]
        summary = compute_workload({StoreId.PLAY_STORE: many, StoreId.APP_STORE: ["en-US"]})
        assert summary["play_store"]["high_load"] is True
        assert summary["app_store"]["high_load"] is False

    def test_without_remote(self):
        """Test every configured locale counts as missing when nothing was fetched."""
        summary = compute_workload({StoreId.APP_STORE: ["en-US"]})
        assert summary["app_store"]["missing_in_remote"] == ["en-US"]
        assert summary["app_store"]["remote_checked"] is False


class TestFetchSnapshots:
    """Tests for fetch_snapshots."""

    def test_errors_captured_per_store(self, app, gateways):
        """Test one failing store does not affect the other."""
        gateways[StoreId.PLAY_STORE].fail_fetch = True
        outcomes = fetch_snapshots(app, gateways, [StoreId.APP_STORE, StoreId.PLAY_STORE])

        assert outcomes[StoreId.APP_STORE].ok
        assert not outcomes[StoreId.PLAY_STORE].ok
        assert "fetch failed" in outcomes[StoreId.PLAY_STORE].error

    def test_missing_gateway(self, app, gateways):
        """Test a store without a gateway is reported as an error."""
        outcomes = fetch_snapshots(app, {StoreId.APP_STORE: gateways[StoreId.APP_STORE]}, [StoreId.PLAY_STORE])
        assert "No gateway configured" in outcomes[StoreId.PLAY_STORE].error


class TestSnapshotSyncService:
    """Tests for SnapshotSyncService.sync."""

    def test_persists_lists_and_details(self, repo, app, gateways):
        """Test successful stores replace persisted locales and details."""
        gateways[StoreId.PLAY_STORE].listings["iw-IL"] = {"title": "אקמה"}
        report = SnapshotSyncService(repo, gateways).sync(app, StoreScope.BOTH)

        assert report.ok
        assert repo.list_locales(app.id, StoreId.PLAY_STORE) == ["en-US", "he"]
        assert repo.list_locales(app.id, StoreId.APP_STORE) == ["en-US"]
        detail = repo.get_locale_detail(app.id, StoreId.APP_STORE, "en-US")
        assert detail.fields["appName"] == "Acme"

    def test_failed_store_keeps_previous_state(self, repo, app, gateways):
        """Test a failed fetch leaves that store's persisted state untouched."""
        repo.replace_locales(app.id, StoreId.PLAY_STORE, ["en-US", "de-DE"])
        gateways[StoreId.PLAY_STORE].fail_fetch = True

        report = SnapshotSyncService(repo, gateways).sync(app, StoreScope.BOTH)

        assert not report.ok
        assert list(report.errors) == ["play_store"]
        assert repo.list_locales(app.id, StoreId.PLAY_STORE) == ["de-DE", "en-US"]
        assert report.to_dict()["stores"]["app_store"]["locales"] == ["en-US"]

    def test_scope_limits_stores(self, repo, app, gateways):
        """Test a single-store scope fetches only that store."""
        SnapshotSyncService(repo, gateways).sync(app, StoreScope.APP_STORE)
        assert gateways[StoreId.PLAY_STORE].calls == []
