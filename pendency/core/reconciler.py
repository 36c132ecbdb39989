# pendency/core/reconciler.py

from typing import Optional

from pendency.config import JOURNAL_DISPUTE_TOKEN, NOTE_DISPUTE_MARKER
from pendency.core.models import (
    CteDocument,
    LifecycleState,
    Note,
    ProcessTransition,
    is_disputed_status,
    is_resolved_status,
    is_searching_status,
)
from pendency.core.note_ledger import NoteLedger
from pendency.core.process_journal import ProcessJournal


def lifecycle_state(
    document: CteDocument,
    notes: NoteLedger,
    journal: ProcessJournal,
) -> LifecycleState:
    """
    Reconcile one document into NORMAL, SEARCHING, DISPUTED or RESOLVED.

    SINGLE SOURCE OF TRUTH for the lifecycle of a CTE. Pure: reads the
    document and the two ledgers, mutates nothing.

    Precedence (first decisive answer wins):
    1. Declared status RESOLVIDO/LOCALIZADA -> RESOLVED, unconditionally
    2. Latest journal row RESOLVIDO/LOCALIZADA -> RESOLVED
    3. DISPUTED check (journal first, notes as fallback)
    4. SEARCHING check (journal first, then notes, then declared status)
    5. NORMAL

    Once the journal has any entry for the document+revision it is
    authoritative; notes and the declared field only cover the gap until
    the backend appends the journal row.
    """
    if is_resolved_status(document.declared_status):
        return LifecycleState.RESOLVED

    transition = journal.latest_transition(document.cte, document.serie)
    if transition is not None and is_resolved_status(transition.status_tag):
        return LifecycleState.RESOLVED

    if is_disputed(document, notes, journal):
        return LifecycleState.DISPUTED

    if is_searching(document, notes, journal):
        return LifecycleState.SEARCHING

    return LifecycleState.NORMAL


def is_disputed(document: CteDocument, notes: NoteLedger, journal: ProcessJournal) -> bool:
    transition = journal.latest_transition(document.cte, document.serie)

    if transition is not None:
        if is_resolved_status(transition.status_tag):
            return False
        if is_disputed_status(transition.status_tag):
            return True
        return _is_search_tagged_dispute(transition)

    latest = notes.latest_note(document.cte)
    if latest is None:
        return False
    if is_resolved_status(latest.status_tag):
        return False
    if _note_opens_dispute(latest):
        # A stale optimistic note must not outlive a real resolution
        return not is_resolved_status(document.declared_status)
    return is_disputed_status(latest.status_tag)


def is_searching(document: CteDocument, notes: NoteLedger, journal: ProcessJournal) -> bool:
    if is_resolved_status(document.declared_status):
        return False
    if is_disputed(document, notes, journal):
        return False

    transition = journal.latest_transition(document.cte, document.serie)
    if transition is not None:
        return is_searching_status(transition.status_tag)

    latest = notes.latest_note(document.cte)
    if latest is not None:
        if is_searching_status(latest.status_tag):
            return True
        if is_resolved_status(latest.status_tag):
            return False

    return is_searching_status(document.declared_status)


def _is_search_tagged_dispute(transition: ProcessTransition) -> bool:
    # Backend workaround: TAD events are sometimes written under EM BUSCA with
    # a textual marker. Delete this branch once every TAD row carries its own tag.
    return (
        is_searching_status(transition.status_tag)
        and JOURNAL_DISPUTE_TOKEN in (transition.description or "").lower()
    )


def _note_opens_dispute(note: Note) -> bool:
    return NOTE_DISPUTE_MARKER in (note.text or "").lower()


def preserving_tag(state: LifecycleState) -> str:
    """
    Tag a new note must carry so the document keeps its current state.

    Attaching a photo to a SEARCHING document must not clear SEARCHING.
    """
    if state in (LifecycleState.SEARCHING, LifecycleState.DISPUTED):
        return state.tag
    return ""


def latest_activity(document: CteDocument, notes: NoteLedger, journal: ProcessJournal) -> Optional[str]:
    """Description of the newest journal row, else the newest note text."""
    transition = journal.latest_transition(document.cte, document.serie)
    if transition is not None:
        return transition.description
    latest = notes.latest_note(document.cte)
    return latest.text if latest is not None else None
