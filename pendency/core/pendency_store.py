"""
PENDENCY STORE (SESSION READ MODEL)

SINGLE SOURCE OF TRUTH for one dashboard session:
- Holds the current ledger snapshot (documents, notes, journal, parameters)
- Refresh replaces the whole snapshot at once, never field by field
- Builds the processed view (deadline + lifecycle per document)

⚠️ STRICT RULES:
- A reconciliation pass reads exactly one snapshot reference
- A failed refresh leaves the previous snapshot untouched
- Optimistic entries live in the current snapshot and die with it
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from pendency.core.deadline_engine import classify_document_deadline
from pendency.core.models import (
    CteDocument,
    DeadlineStatus,
    GlobalParameters,
    ProcessedDocument,
    normalize_revision,
)
from pendency.core.note_ledger import NoteLedger
from pendency.core.process_journal import ProcessJournal
from pendency.core.reconciler import lifecycle_state
from pendency.storage.sheet_feed import FeedResult, SheetFeed

logger = logging.getLogger(__name__)


@dataclass
class LedgerSnapshot:
    """Everything one refresh produced. Replaced as a unit."""
    documents: List[CteDocument] = field(default_factory=list)
    notes: NoteLedger = field(default_factory=NoteLedger)
    journal: ProcessJournal = field(default_factory=ProcessJournal)
    parameters: Optional[GlobalParameters] = None

    @classmethod
    def from_feed(cls, result: FeedResult) -> "LedgerSnapshot":
        return cls(
            documents=list(result.documents),
            notes=NoteLedger(result.notes),
            journal=ProcessJournal(result.transitions),
            parameters=result.parameters,
        )

    def find_document(self, cte: str, serie: Optional[str] = None) -> Optional[CteDocument]:
        """
        Look up a document by (cte, serie).

        Falls back to the CTE alone when the revision is blank or no
        revision matches.
        """
        cte = (cte or "").strip()
        candidates = [d for d in self.documents if d.cte.strip() == cte]
        if not candidates:
            return None

        wanted = normalize_revision(serie)
        if wanted:
            for document in candidates:
                if normalize_revision(document.serie) == wanted:
                    return document
        return candidates[0]


def build_processed_view(snapshot: LedgerSnapshot) -> List[ProcessedDocument]:
    """
    Compute deadline status and lifecycle state for every document.

    Pure over the snapshot it is given.
    """
    parameters = snapshot.parameters
    processed = []

    for document in snapshot.documents:
        if parameters is not None:
            deadline = classify_document_deadline(document.limit_date, parameters)
        else:
            deadline = DeadlineStatus.NO_DEADLINE

        processed.append(ProcessedDocument(
            document=document,
            deadline_status=deadline,
            lifecycle_state=lifecycle_state(document, snapshot.notes, snapshot.journal),
            latest_note=snapshot.notes.latest_note(document.cte),
            note_count=snapshot.notes.count_for(document.cte),
        ))

    return processed


class PendencyStore:
    """
    Session-owned holder of the ledger snapshot.

    refresh() may run on a timer thread; the swap is guarded by a lock
    and readers always work on the reference they obtained.
    """

    def __init__(self, feed: Optional[SheetFeed] = None, snapshot: Optional[LedgerSnapshot] = None):
        self.feed = feed
        self._snapshot = snapshot or LedgerSnapshot()
        self._lock = threading.Lock()
        self.loaded = snapshot is not None

    @property
    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: LedgerSnapshot) -> None:
        """Swap the whole ledger set at once."""
        with self._lock:
            self._snapshot = snapshot
            self.loaded = True

    def refresh(self) -> LedgerSnapshot:
        """
        Fetch the feed and replace the snapshot wholesale.

        Raises FeedError; on failure the previous snapshot stays in place.
        """
        if self.feed is None:
            raise RuntimeError("PendencyStore has no feed configured")

        result = self.feed.fetch()
        snapshot = LedgerSnapshot.from_feed(result)
        self.replace(snapshot)
        logger.info(f"Snapshot replaced: {len(snapshot.documents)} documents")
        return snapshot

    def processed_view(self) -> List[ProcessedDocument]:
        return build_processed_view(self.snapshot)
