"""
End-to-end flow: snapshot, diff, queue, apply and locale list refresh.

Runs against in-memory gateways and repository.
"""

import pytest

from listing_sync.apply.engine import ApplyEngine
from listing_sync.changes.queue import ChangeQueue
from listing_sync.core.exceptions import MissingMandatoryFieldsError
from listing_sync.core.types import LocaleActionType, StoreId, StoreScope
from listing_sync.diff.engine import DiffEngine
from listing_sync.snapshot.sync import SnapshotSyncService


ASC = StoreId.APP_STORE
PLAY = StoreId.PLAY_STORE


class TestNewLocaleFlow:
    """A Play-only locale is carried over to the App Store."""

    def test_add_rejected_until_description_queued(self, repo, app, make_gateway):
        """Test the add is refused without description and succeeds once it is queued."""
        gateways = {
            ASC: make_gateway(ASC, {"en-US": {"appName": "Acme", "keywords": "acme", "description": "Acme"}}),
            PLAY: make_gateway(PLAY, {
                "en-US": {"title": "Acme", "fullDescription": "Acme"},
                "de-DE": {"title": "Acme", "fullDescription": "Hello"},
            }),
        }
        assert SnapshotSyncService(repo, gateways).sync(app, StoreScope.BOTH).ok

        report = DiffEngine().diff_stores(
            PLAY, repo.list_locale_details(app.id, PLAY),
            ASC, repo.list_locale_details(app.id, ASC),
            target_locales=repo.list_locales(app.id, ASC),
        )
        entry = next(e for e in report.entries if e.target_locale == "de-DE")
        assert entry.is_new_locale
        description = next(f for f in entry.fields if f.field == "description")
        assert description.old_value == ""
        assert description.new_value == "Hello"

        existing = repo.list_locales(app.id, ASC)
        queue = ChangeQueue()
        queue.upsert_field(ASC, "de-DE", "appName", "Acme")
        queue.upsert_field(ASC, "de-DE", "keywords", "acme")
        with pytest.raises(MissingMandatoryFieldsError) as exc_info:
            queue.queue_locale_action(ASC, "de-DE", LocaleActionType.ADD, existing)
        assert exc_info.value.missing_fields == ["description"]
        assert queue.locale_change(ASC, "de-DE") is None

        queue.upsert_field(ASC, "de-DE", "description", description.new_value, description.old_value)
        queue.queue_locale_action(ASC, "de-DE", LocaleActionType.ADD, existing)

        result = ApplyEngine(repo, gateways).apply(app, queue.build_write_plan(), queue)

        assert result.failed == []
        assert len(queue) == 0
        assert gateways[ASC].listings["de-DE"] == {"appName": "Acme", "keywords": "acme", "description": "Hello"}
        assert repo.list_locales(app.id, ASC) == ["de-DE", "en-US"]

    def test_resync_after_apply_shows_no_diff(self, repo, app, make_gateway):
        """Test re-diffing after a successful update proposes nothing."""
        gateways = {
            ASC: make_gateway(ASC, {"en-US": {"appName": "Acme", "subtitle": "Old", "description": "Text"}}),
            PLAY: make_gateway(PLAY, {"en-US": {"title": "Acme", "shortDescription": "New", "fullDescription": "Text"}}),
        }
        service = SnapshotSyncService(repo, gateways)
        service.sync(app, StoreScope.BOTH)

        engine = DiffEngine()
        report = engine.diff_stores(
            PLAY, repo.list_locale_details(app.id, PLAY), ASC, repo.list_locale_details(app.id, ASC),
        )
        queue = ChangeQueue()
        assert queue.ingest_diff(report, repo.list_locales(app.id, ASC)) == 1

        ApplyEngine(repo, gateways).apply(app, queue.build_write_plan(), queue)
        service.sync(app, StoreScope.BOTH)

        again = engine.diff_stores(
            PLAY, repo.list_locale_details(app.id, PLAY), ASC, repo.list_locale_details(app.id, ASC),
        )
        assert again.entries == []
