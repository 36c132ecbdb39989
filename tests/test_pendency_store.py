"""
PENDENCY STORE - VALIDATION TEST

Coverage:
1. Refresh replaces every ledger at once (optimistic entries die with the old snapshot)
2. A failed refresh keeps the previous snapshot
3. Processed view: deadline + lifecycle per document
4. Document lookup with revision fallback
5. A confirmed EM BUSCA note opens the document to every unit
"""

from datetime import date

import pytest

from pendency.core.models import (
    Actor,
    CteDocument,
    DeadlineStatus,
    GlobalParameters,
    LifecycleState,
    Note,
    ProcessTransition,
)
from pendency.core.note_ledger import NoteLedger
from pendency.core.pendency_metrics import searching_view
from pendency.core.pendency_store import LedgerSnapshot, PendencyStore, build_processed_view
from pendency.core.process_journal import ProcessJournal
from pendency.storage.sheet_feed import FeedError, FeedResult
from security.access_guard import can_view_document

PARAMETERS = GlobalParameters(
    reference_today=date(2024, 3, 5),
    reference_tomorrow=date(2024, 3, 6),
    tolerance_days=2,
)


class StaticFeed:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def feed_result():
    return FeedResult(
        documents=[
            CteDocument(cte="1001", serie="6", limit_date="05/03/2024", delivery_unit="POA"),
            CteDocument(cte="1002", serie="1", limit_date="01/03/2024", delivery_unit="SAO"),
        ],
        notes=[Note(id="n1", cte="1002", serie="1", timestamp="04/03/2024 10:00", author="ana", text="ok")],
        transitions=[ProcessTransition("p1", "1001", "06", "04/03/2024 10:00", "ana", "Busca aberta", "EM BUSCA")],
        parameters=PARAMETERS,
    )


def test_refresh_builds_processed_view():
    store = PendencyStore(feed=StaticFeed(feed_result()))
    assert store.loaded is False

    store.refresh()
    view = {p.document.cte: p for p in store.processed_view()}

    assert store.loaded is True
    assert view["1001"].deadline_status == DeadlineStatus.DUE_TODAY
    assert view["1001"].lifecycle_state == LifecycleState.SEARCHING
    assert view["1002"].deadline_status == DeadlineStatus.CRITICAL
    assert view["1002"].note_count == 1
    assert view["1002"].latest_note.id == "n1"


def test_refresh_replaces_optimistic_entries():
    store = PendencyStore(feed=StaticFeed(feed_result()))
    store.refresh()

    store.snapshot.notes.add_note(Note(id="temp-1", cte="1001", serie="6", timestamp="05/03/2024 10:00", text="x"))
    assert store.snapshot.notes.find("temp-1") is not None

    store.refresh()

    assert store.snapshot.notes.find("temp-1") is None


def test_failed_refresh_keeps_previous_snapshot():
    feed = StaticFeed(feed_result())
    store = PendencyStore(feed=feed)
    store.refresh()
    before = store.snapshot

    feed.result = FeedError("Timeout fetching tab 'notes'")
    with pytest.raises(FeedError):
        store.refresh()

    assert store.snapshot is before
    assert len(store.snapshot.documents) == 2


def test_store_without_feed_cannot_refresh():
    with pytest.raises(RuntimeError):
        PendencyStore().refresh()


def test_missing_parameters_means_no_deadline():
    snapshot = LedgerSnapshot(documents=[CteDocument(cte="1001", limit_date="05/03/2024")])
    view = build_processed_view(snapshot)
    assert view[0].deadline_status == DeadlineStatus.NO_DEADLINE
    assert view[0].lifecycle_state == LifecycleState.NORMAL


def test_find_document_revision_fallback():
    snapshot = LedgerSnapshot(documents=[
        CteDocument(cte="1001", serie="1"),
        CteDocument(cte="1001", serie="06"),
    ])
    assert snapshot.find_document("1001", "6").serie == "06"
    assert snapshot.find_document("1001", "9").serie == "1"
    assert snapshot.find_document("1001").serie == "1"
    assert snapshot.find_document("9999") is None


def test_replace_swaps_all_ledgers():
    store = PendencyStore(snapshot=LedgerSnapshot())
    replacement = LedgerSnapshot(
        documents=[CteDocument(cte="1")],
        notes=NoteLedger(),
        journal=ProcessJournal(),
        parameters=PARAMETERS,
    )
    store.replace(replacement)
    assert store.snapshot is replacement


def test_searching_note_makes_document_visible_to_every_unit():
    snapshot = LedgerSnapshot(
        documents=[CteDocument(cte="2001", serie="1", limit_date="10/03/2024", delivery_unit="SAO")],
        notes=NoteLedger([
            Note(id="n1", cte="2001", serie="1", timestamp="05/03/2024 09:00", author="ana",
                 text="Volume sumiu na doca", status_tag="EM BUSCA"),
        ]),
        parameters=PARAMETERS,
    )
    view = build_processed_view(snapshot)
    other_unit = Actor(username="bruno", role="OPERATOR", delivery_unit="POA")

    assert view[0].lifecycle_state == LifecycleState.SEARCHING
    assert can_view_document(view[0], other_unit) is True
    assert [p.document.cte for p in searching_view(view)] == ["2001"]
