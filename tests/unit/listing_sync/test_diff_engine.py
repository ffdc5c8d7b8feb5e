"""
Unit tests for the diff engine.
"""

import pytest

from listing_sync.core.types import FieldDiff, PendingFieldChange, StoreId
from listing_sync.diff.engine import DiffEngine, bound_to_target, normalize
from listing_sync.snapshot.models import build_locale_detail


def asc(locale, **fields):
    return build_locale_detail(StoreId.APP_STORE, locale, fields)


def play(locale, **fields):
    return build_locale_detail(StoreId.PLAY_STORE, locale, fields)


@pytest.fixture
def engine():
    return DiffEngine()


class TestHelpers:
    """Tests for normalize and bound_to_target."""

    def test_normalize_strips_trailing_whitespace(self):
        """Test only trailing whitespace is removed."""
        assert normalize("  Acme \n") == "  Acme"
        assert normalize(None) == ""

    def test_bound_to_target_truncates(self):
        """Test candidates are cut to the target limit."""
        assert bound_to_target("x" * 100, StoreId.PLAY_STORE, "shortDescription") == "x" * 80

    def test_bound_to_target_renormalizes(self):
        """Test truncation that ends on whitespace is trimmed."""
        value = "a" * 29 + " b"
        assert bound_to_target(value, StoreId.PLAY_STORE, "title") == "a" * 29


class TestDiffStores:
    """Tests for cross-store diffing."""

    def test_new_locale(self, engine):
        """Test a locale missing from the target is proposed as new."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"de-DE": asc("de-DE", appName="Acme", subtitle="Dinge tun", description="Acme tut Dinge.")},
            StoreId.PLAY_STORE,
            {},
        )
        assert len(report.entries) == 1
        entry = report.entries[0]
        assert entry.is_new_locale
        assert entry.target_store is StoreId.PLAY_STORE
        assert [f.field for f in entry.fields] == ["title", "shortDescription", "fullDescription"]
        assert all(f.old_value == "" for f in entry.fields)

    def test_in_sync_produces_nothing(self, engine):
        """Test identical values (modulo trailing whitespace) produce no entry."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"en-US": asc("en-US", appName="Acme ", subtitle="Do things", description="Text")},
            StoreId.PLAY_STORE,
            {"en-US": play("en-US", title="Acme", shortDescription="Do things", fullDescription="Text\n")},
        )
        assert report.entries == []
        assert report.skipped == []

    def test_changed_field_only(self, engine):
        """Test only differing fields are proposed, with the raw old value."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"en-US": asc("en-US", appName="Acme", subtitle="New tagline", description="Text")},
            StoreId.PLAY_STORE,
            {"en-US": play("en-US", title="Acme", shortDescription="Old tagline ", fullDescription="Text")},
        )
        entry = report.entries[0]
        assert not entry.is_new_locale
        assert entry.fields == [FieldDiff("shortDescription", "Old tagline ", "New tagline")]

    def test_empty_source_field_clears_target(self, engine):
        """Test a field missing in the source proposes clearing the target value."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"de-DE": asc("de-DE", appName="Acme", description="Text")},
            StoreId.PLAY_STORE,
            {"de-DE": play("de-DE", title="Acme", shortDescription="Stale", fullDescription="Text")},
        )
        assert len(report.entries) == 1
        assert report.entries[0].fields == [FieldDiff("shortDescription", "Stale", "")]

    def test_truncated_candidate_equal_to_target(self, engine):
        """Test a source longer than the limit matches a target holding its truncation."""
        long_subtitle = "y" * 30
        report = engine.diff_stores(
            StoreId.PLAY_STORE,
            {"en-US": play("en-US", title="Acme", shortDescription=long_subtitle + "zz")},
            StoreId.APP_STORE,
            {"en-US": asc("en-US", appName="Acme", subtitle=long_subtitle)},
        )
        assert report.entries == []

    def test_alias_locale(self, engine):
        """Test aliased locales report the target's native code."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"he": asc("he", appName="Acme")},
            StoreId.PLAY_STORE,
            {},
        )
        entry = report.entries[0]
        assert entry.target_locale == "he"
        assert entry.target_native_locale == "iw-IL"

    def test_unsupported_locale_skipped(self, engine):
        """Test locales the target does not support are skipped with a reason."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"es-MX": asc("es-MX", appName="Acme")},
            StoreId.PLAY_STORE,
            {},
        )
        assert report.entries == []
        assert report.skipped[0].reason == "Locale es-MX is not supported by Google Play"

    def test_missing_identity_field_skipped(self, engine):
        """Test a source locale without its title is skipped."""
        report = engine.diff_stores(
            StoreId.PLAY_STORE,
            {"fr-FR": play("fr-FR", shortDescription="Faire des choses")},
            StoreId.APP_STORE,
            {},
        )
        assert report.skipped[0].reason == "Missing title in source locale"

    def test_existing_locale_without_details(self, engine):
        """Test target_locales overrides detail keys for newness."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"de-DE": asc("de-DE", appName="Acme")},
            StoreId.PLAY_STORE,
            {},
            target_locales=["de-DE"],
        )
        assert not report.entries[0].is_new_locale

    def test_locale_filter(self, engine):
        """Test restricting the diff to selected locales."""
        report = engine.diff_stores(
            StoreId.APP_STORE,
            {"de-DE": asc("de-DE", appName="A"), "fr-FR": asc("fr-FR", appName="B")},
            StoreId.PLAY_STORE,
            {},
            locales=["fr-FR"],
        )
        assert [e.source_locale for e in report.entries] == ["fr-FR"]

    def test_report_to_dict(self, engine):
        """Test report serialization."""
        report = engine.diff_stores(
            StoreId.APP_STORE, {"es-MX": asc("es-MX", appName="Acme")}, StoreId.PLAY_STORE, {},
        )
        data = report.to_dict()
        assert data["source_store"] == "app_store"
        assert data["skipped"][0]["source_locale"] == "es-MX"

    def test_no_pairs_for_same_store(self, engine):
        """Test cross-store diffing requires two different stores."""
        with pytest.raises(ValueError):
            engine.field_pairs(StoreId.PLAY_STORE, StoreId.PLAY_STORE)


class TestDiffSnapshots:
    """Tests for remote-vs-persisted diffing."""

    def test_changed_new_and_removed(self, engine):
        """Test changed, added and vanished locales."""
        baseline = {
            "en-US": play("en-US", title="Acme", shortDescription="Old"),
            "fr-FR": play("fr-FR", title="Acme FR"),
        }
        candidate = {
            "en-US": play("en-US", title="Acme", shortDescription="New"),
            "de-DE": play("de-DE", title="Acme DE"),
        }
        report = engine.diff_snapshots(StoreId.PLAY_STORE, baseline, candidate)

        entries = {e.target_locale: e for e in report.entries}
        assert entries["en-US"].fields == [FieldDiff("shortDescription", "Old", "New")]
        assert entries["de-DE"].is_new_locale
        assert report.skipped[0].source_locale == "fr-FR"


class TestStalePendingChanges:
    """Tests for stale_pending_changes."""

    def test_detects_remote_drift(self, engine):
        """Test changes whose baseline no longer matches are reported."""
        details = {"de-DE": play("de-DE", title="Changed remotely")}
        fresh = PendingFieldChange(StoreId.PLAY_STORE, "fr-FR", "title", "", "Acme FR")
        stale = PendingFieldChange(StoreId.PLAY_STORE, "de-DE", "title", "Acme DE", "Acme DE 2")
        assert engine.stale_pending_changes([fresh, stale], details) == [stale]
