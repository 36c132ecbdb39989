"""
PENDENCY TABLE - VALIDATION TEST

The "Última atividade" column follows the journal first, then the notes.
"""

from pendency.core.models import CteDocument, DeadlineStatus, Note, ProcessTransition
from pendency.core.note_ledger import NoteLedger
from pendency.core.pendency_store import LedgerSnapshot, build_processed_view
from pendency.core.process_journal import ProcessJournal
from ui.pendency_table import to_frame


def test_latest_activity_column():
    snapshot = LedgerSnapshot(
        documents=[
            CteDocument(cte="1001", serie="1", delivery_unit="POA"),
            CteDocument(cte="1002", serie="1", delivery_unit="POA"),
            CteDocument(cte="1003", serie="1", delivery_unit="POA"),
        ],
        notes=NoteLedger([
            Note(id="n1", cte="1001", serie="1", timestamp="05/03/2024 10:00", author="ana", text="ligação para o cliente"),
            Note(id="n2", cte="1002", serie="1", timestamp="05/03/2024 10:00", author="ana", text="volume na doca"),
        ]),
        journal=ProcessJournal([
            ProcessTransition("p1", "1002", "1", "05/03/2024 11:00", "bruno", "Busca aberta", "EM BUSCA"),
        ]),
    )
    view = build_processed_view(snapshot)

    frame = to_frame(view, snapshot)

    assert frame["Última atividade"].tolist() == ["ligação para o cliente", "Busca aberta", ""]
    assert frame["Notas"].tolist() == [1, 1, 0]


def test_without_snapshot_uses_latest_note():
    view = build_processed_view(LedgerSnapshot(
        documents=[CteDocument(cte="1001", serie="1")],
        notes=NoteLedger([Note(id="n1", cte="1001", serie="1", author="ana", text="conferido")]),
    ))
    frame = to_frame(view)
    assert frame["Última atividade"].tolist() == ["conferido"]
    assert frame["Prazo"].tolist() == [DeadlineStatus.NO_DEADLINE.value]
    assert frame["Situação"].tolist() == [""]
