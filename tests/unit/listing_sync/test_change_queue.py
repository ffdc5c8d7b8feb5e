"""
Unit tests for the change queue and write-plan builder.
"""

import threading

import pytest

from listing_sync.core.exceptions import MissingMandatoryFieldsError, UnsupportedLocaleError
from listing_sync.core.types import (
    LOCALE_KEY,
    DiffEntry,
    DiffReport,
    FieldDiff,
    LocaleActionType,
    StoreId,
)
from listing_sync.changes.queue import ChangeQueue


PLAY = StoreId.PLAY_STORE


def queue_play_fields(queue, locale, **overrides):
    values = {"title": "Acme", "shortDescription": "Do things", "fullDescription": "Acme does things."}
    values.update(overrides)
    for name, value in values.items():
        queue.upsert_field(PLAY, locale, name, value)


@pytest.fixture
def queue():
    return ChangeQueue()


class TestUpsertField:
    """Tests for field upserts."""

    def test_records_change(self, queue):
        """Test a new value is queued with its baseline."""
        change = queue.upsert_field(PLAY, "de-DE", "title", "Neu", original_value="Alt")
        assert change.old_value == "Alt"
        assert change.new_value == "Neu"
        assert (PLAY, "de-DE", "title") in queue

    def test_revert_removes_entry(self, queue):
        """Test setting the value back to the baseline drops the entry."""
        queue.upsert_field(PLAY, "de-DE", "title", "Neu", original_value="Alt")
        assert queue.upsert_field(PLAY, "de-DE", "title", "Alt") is None
        assert len(queue) == 0

    def test_baseline_kept_across_edits(self, queue):
        """Test later edits keep the first recorded baseline."""
        queue.upsert_field(PLAY, "de-DE", "title", "Eins", original_value="Alt")
        change = queue.upsert_field(PLAY, "de-DE", "title", "Zwei", original_value="Eins")
        assert change.old_value == "Alt"

    def test_same_as_original_never_queued(self, queue):
        """Test an edit equal to the remote value is a no-op."""
        assert queue.upsert_field(PLAY, "de-DE", "title", "Alt", original_value="Alt") is None
        assert len(queue) == 0

    def test_locale_canonicalized(self, queue):
        """Test aliased locale codes share one key."""
        queue.upsert_field(PLAY, "iw-IL", "title", "Acme")
        assert queue.get((PLAY, "he", "title")) is not None


class TestLocaleActions:
    """Tests for queue_locale_action toggle semantics."""

    def test_add_requires_mandatory_fields(self, queue):
        """Test an add without every mandatory field is refused with the missing list."""
        queue.upsert_field(PLAY, "de-DE", "title", "Acme")
        with pytest.raises(MissingMandatoryFieldsError) as exc_info:
            queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"])
        assert exc_info.value.missing_fields == ["shortDescription", "fullDescription"]
        assert str(exc_info.value) == (
            "Cannot add de-DE to play_store: missing mandatory fields shortDescription, fullDescription"
        )

    def test_blank_value_counts_as_missing(self, queue):
        """Test whitespace-only values do not satisfy a mandatory field."""
        queue_play_fields(queue, "de-DE", fullDescription="   ")
        assert queue.missing_mandatory_fields(PLAY, "de-DE") == ["fullDescription"]

    def test_add_queued(self, queue):
        """Test an add with all mandatory fields is queued."""
        queue_play_fields(queue, "de-DE")
        change = queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"])
        assert change.action is LocaleActionType.ADD
        assert queue.locale_change(PLAY, "de-DE") is change

    def test_add_unsupported(self, queue):
        """Test adding a locale the store does not support fails."""
        with pytest.raises(UnsupportedLocaleError):
            queue.queue_locale_action(PLAY, "es-MX", LocaleActionType.ADD, ["en-US"])

    def test_add_twice_toggles_off(self, queue):
        """Test repeating a pending add cancels it."""
        queue_play_fields(queue, "de-DE")
        queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"])
        assert queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"]) is None
        assert queue.locale_change(PLAY, "de-DE") is None

    def test_add_existing_cancels_remove(self, queue):
        """Test add of an existing locale cancels a pending remove."""
        queue.queue_locale_action(PLAY, "fr-FR", LocaleActionType.REMOVE, ["en-US", "fr-FR"])
        assert queue.queue_locale_action(PLAY, "fr-FR", LocaleActionType.ADD, ["en-US", "fr-FR"]) is None
        assert queue.locale_change(PLAY, "fr-FR") is None

    def test_remove_missing_cancels_add(self, queue):
        """Test remove of an absent locale cancels a pending add."""
        queue_play_fields(queue, "de-DE")
        queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"])
        assert queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.REMOVE, ["en-US"]) is None
        assert queue.locale_change(PLAY, "de-DE") is None

    def test_remove_clears_field_changes(self, queue):
        """Test queuing a remove drops that locale's field edits."""
        queue.upsert_field(PLAY, "fr-FR", "title", "Nouveau", original_value="Ancien")
        queue.queue_locale_action(PLAY, "fr-FR", LocaleActionType.REMOVE, ["en-US", "fr-FR"])
        assert queue.field_changes(PLAY, "fr-FR") == []
        assert (PLAY, "fr-FR", LOCALE_KEY) in queue

    def test_update_is_not_a_locale_action(self, queue):
        """Test update cannot be queued directly."""
        with pytest.raises(ValueError):
            queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.UPDATE)


class TestIngestDiff:
    """Tests for ingest_diff."""

    def test_new_locale_auto_added(self, queue):
        """Test a complete new-locale entry queues its fields and an add."""
        report = DiffReport(StoreId.APP_STORE, PLAY, entries=[
            DiffEntry("de-DE", "de-DE", PLAY, True, [
                FieldDiff("title", "", "Acme"),
                FieldDiff("shortDescription", "", "Dinge tun"),
                FieldDiff("fullDescription", "", "Acme tut Dinge."),
            ]),
        ])
        assert queue.ingest_diff(report, ["en-US"]) == 3
        assert queue.locale_change(PLAY, "de-DE").action is LocaleActionType.ADD

    def test_incomplete_new_locale_only_fields(self, queue):
        """Test an incomplete new locale queues fields but no add."""
        report = DiffReport(StoreId.APP_STORE, PLAY, entries=[
            DiffEntry("de-DE", "de-DE", PLAY, True, [FieldDiff("title", "", "Acme")]),
        ])
        assert queue.ingest_diff(report, ["en-US"]) == 1
        assert queue.locale_change(PLAY, "de-DE") is None


class TestBuildWritePlan:
    """Tests for build_write_plan."""

    def test_update_action(self, queue):
        """Test field-only locales become update actions."""
        queue.upsert_field(PLAY, "en-US", "title", "Acme 2", original_value="Acme")
        plan = queue.build_write_plan()
        assert len(plan.actions) == 1
        action = plan.actions[0]
        assert action.action is LocaleActionType.UPDATE
        assert action.fields == {"title": "Acme 2"}
        assert action.keys == [(PLAY, "en-US", "title")]

    def test_add_carries_fields(self, queue):
        """Test an add action carries every queued field for the locale."""
        queue_play_fields(queue, "de-DE")
        queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"])
        action = queue.build_write_plan().actions[0]
        assert action.action is LocaleActionType.ADD
        assert set(action.fields) == {"title", "shortDescription", "fullDescription"}
        assert len(action.keys) == 4

    def test_remove_has_empty_payload(self, queue):
        """Test remove actions write no fields."""
        queue.queue_locale_action(PLAY, "fr-FR", LocaleActionType.REMOVE, ["en-US", "fr-FR"])
        action = queue.build_write_plan().actions[0]
        assert action.action is LocaleActionType.REMOVE
        assert action.fields == {}
        assert action.keys == [(PLAY, "fr-FR", LOCALE_KEY)]

    def test_add_rejected_after_field_reverted(self, queue):
        """Test an add whose mandatory field was later reverted is rejected, not planned."""
        queue_play_fields(queue, "de-DE")
        queue.queue_locale_action(PLAY, "de-DE", LocaleActionType.ADD, ["en-US"])
        queue.upsert_field(PLAY, "de-DE", "fullDescription", "")

        plan = queue.build_write_plan()
        assert plan.is_empty
        assert plan.rejected[0].missing_fields == ["fullDescription"]

    def test_store_filter(self, queue):
        """Test planning a single store."""
        queue.upsert_field(PLAY, "en-US", "title", "Acme 2", original_value="Acme")
        queue.upsert_field(StoreId.APP_STORE, "en-US", "appName", "Acme 2", original_value="Acme")
        plan = queue.build_write_plan(StoreId.APP_STORE)
        assert [a.store for a in plan.actions] == [StoreId.APP_STORE]

    def test_discard(self, queue):
        """Test discarding settled keys."""
        queue.upsert_field(PLAY, "en-US", "title", "Acme 2", original_value="Acme")
        queue.discard([(PLAY, "en-US", "title")])
        assert len(queue) == 0


class TestLocking:
    """Tests for reads taking the queue lock."""

    @pytest.mark.parametrize("read", [
        lambda q: len(q),
        lambda q: (PLAY, "en-US", "title") in q,
        lambda q: q.get((PLAY, "en-US", "title")),
        lambda q: q.locale_change(PLAY, "en-US"),
    ])
    def test_reads_wait_for_writer(self, queue, read):
        """Test readers block while another thread holds the lock."""
        done = threading.Event()

        def reader():
            read(queue)
            done.set()

        with queue._lock:
            thread = threading.Thread(target=reader)
            thread.start()
            assert not done.wait(timeout=0.1)
        thread.join(timeout=5)
        assert done.is_set()
