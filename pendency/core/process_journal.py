"""
PROCESS JOURNAL
Append-Only • Append Order Is Truth

DESIGN PRINCIPLES:
1. One row per backend-recognized state change
2. Never re-sorted: the remote append order is authoritative
3. "Latest" means the last element after filtering, not max(timestamp)
4. Revisions compared leading-zero-insensitively

ARCHITECTURE:
- Transitions kept in append order
- Per-CTE index built once per snapshot - O(1) lookup
- append() is reserved for speculative entries from the mutation coordinator
"""

from typing import Dict, Iterable, List, Optional

from pendency.core.models import ProcessTransition, revisions_match


class ProcessJournal:
    """In-memory process-control journal for one session snapshot."""

    def __init__(self, transitions: Optional[Iterable[ProcessTransition]] = None):
        self._transitions: List[ProcessTransition] = []
        self._index: Dict[str, List[ProcessTransition]] = {}

        for transition in transitions or []:
            self._add(transition)

    def _add(self, transition: ProcessTransition) -> None:
        self._transitions.append(transition)
        self._index.setdefault(transition.cte.strip(), []).append(transition)

    def __len__(self) -> int:
        return len(self._transitions)

    def __iter__(self):
        return iter(list(self._transitions))

    def history_for(self, cte: str, serie: Optional[str] = None) -> List[ProcessTransition]:
        """
        Transitions for a CTE in append order.

        The revision filter applies only when a revision is supplied.
        """
        entries = self._index.get((cte or "").strip(), [])
        if serie is None or not str(serie).strip():
            return list(entries)
        return [t for t in entries if revisions_match(t.serie, serie)]

    def latest_transition(self, cte: str, serie: Optional[str] = None) -> Optional[ProcessTransition]:
        history = self.history_for(cte, serie)
        return history[-1] if history else None

    def append(self, transition: ProcessTransition) -> ProcessTransition:
        """Append a speculative transition (mutation coordinator only)."""
        self._add(transition)
        return transition

    def remove(self, transition_id: str) -> Optional[ProcessTransition]:
        """Drop a speculative transition after a definitive write failure."""
        for index, transition in enumerate(self._transitions):
            if transition.id == transition_id:
                self._transitions.pop(index)
                self._index[transition.cte.strip()].remove(transition)
                return transition
        return None
