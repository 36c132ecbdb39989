"""
NOTE LEDGER

Append-only collection of free-text notes per CTE.

Rules:
- Entries are never reordered or edited, except the pending flag
- A single entry may be removed (user delete, or rollback of a rejected write)
- Pending notes are always newer than confirmed ones, whatever their timestamp
"""

from typing import Iterable, List, Optional

from pendency.core.date_normalizer import parse_timestamp
from pendency.core.models import Note


class NoteLedger:
    """In-memory note ledger for one session snapshot."""

    def __init__(self, notes: Optional[Iterable[Note]] = None):
        self._notes: List[Note] = list(notes or [])

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self):
        return iter(list(self._notes))

    def notes_for(self, cte: str) -> List[Note]:
        """All notes for a CTE, in append order."""
        cte = (cte or "").strip()
        return [n for n in self._notes if n.cte.strip() == cte]

    def count_for(self, cte: str) -> int:
        return len(self.notes_for(cte))

    def latest_note(self, cte: str) -> Optional[Note]:
        """
        Most recent note for a CTE.

        Ordering: pending first, then parsed timestamp descending, then
        later append position. Malformed timestamps sort as oldest.
        """
        cte = (cte or "").strip()
        candidates = [
            (position, note)
            for position, note in enumerate(self._notes)
            if note.cte.strip() == cte
        ]
        if not candidates:
            return None

        candidates.sort(
            key=lambda item: (item[1].pending, parse_timestamp(item[1].timestamp), item[0]),
            reverse=True,
        )
        return candidates[0][1]

    def add_note(self, note: Note) -> Note:
        """Append a locally created note. It stays pending until confirm()."""
        note.pending = True
        self._notes.append(note)
        return note

    def confirm(self, note_id: str) -> bool:
        for note in self._notes:
            if note.id == note_id:
                note.pending = False
                return True
        return False

    def find(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def remove(self, note_id: str) -> Optional[Note]:
        """Remove a single entry. Returns the removed note, or None."""
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                return self._notes.pop(index)
        return None

    def restore(self, note: Note) -> None:
        """Put back a note whose remote delete failed."""
        if self.find(note.id) is None:
            self._notes.append(note)
