"""
PROCESS JOURNAL - VALIDATION TEST

Append order is the truth: "latest" is the last element, never max(timestamp).
"""

from pendency.core.models import ProcessTransition
from pendency.core.process_journal import ProcessJournal


def make_transition(transition_id, status_tag, serie="1", timestamp="05/03/2024 10:00", cte="1001"):
    return ProcessTransition(
        id=transition_id,
        cte=cte,
        serie=serie,
        timestamp=timestamp,
        actor="ana",
        description=f"{status_tag} registrado",
        status_tag=status_tag,
    )


def test_latest_is_last_appended_even_with_older_timestamp():
    journal = ProcessJournal([
        make_transition("p1", "EM BUSCA", timestamp="10/03/2024 10:00"),
        make_transition("p2", "RESOLVIDO", timestamp="01/03/2024 10:00"),
    ])
    assert journal.latest_transition("1001", "1").id == "p2"


def test_revision_leading_zeros_are_ignored():
    journal = ProcessJournal([make_transition("p1", "EM BUSCA", serie="06")])
    assert journal.latest_transition("1001", "6").id == "p1"
    assert len(journal.history_for("1001", "006")) == 1


def test_other_revision_is_filtered_out():
    journal = ProcessJournal([
        make_transition("p1", "EM BUSCA", serie="1"),
        make_transition("p2", "TAD", serie="2"),
    ])
    assert journal.latest_transition("1001", "1").id == "p1"
    assert journal.latest_transition("1001", "2").id == "p2"


def test_blank_revision_matches_document_number_only():
    journal = ProcessJournal([
        make_transition("p1", "EM BUSCA", serie="1"),
        make_transition("p2", "TAD", serie=""),
    ])
    assert journal.latest_transition("1001").id == "p2"
    assert journal.latest_transition("1001", "").id == "p2"
    # A row without revision belongs to every revision of the document
    assert journal.latest_transition("1001", "1").id == "p2"


def test_unknown_document_has_no_history():
    journal = ProcessJournal([make_transition("p1", "EM BUSCA")])
    assert journal.history_for("9999") == []
    assert journal.latest_transition("9999") is None


def test_append_and_remove_speculative_entry():
    journal = ProcessJournal([make_transition("p1", "EM BUSCA")])
    journal.append(make_transition("temp-proc-1", "TAD"))
    assert journal.latest_transition("1001", "1").id == "temp-proc-1"

    removed = journal.remove("temp-proc-1")
    assert removed.id == "temp-proc-1"
    assert journal.latest_transition("1001", "1").id == "p1"
    assert journal.remove("temp-proc-1") is None
    assert len(journal) == 1
