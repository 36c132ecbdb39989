from collections import defaultdict
import re
from typing import Callable, Dict, Iterable, List, Optional, Union

from pendency.core.models import Actor, DeadlineStatus, LifecycleState, ProcessedDocument
from pendency.core.note_ledger import NoteLedger
from security.access_guard import visible_documents

OTHER_LABEL = "OUTROS"

_OPEN_EPISODES = (LifecycleState.SEARCHING, LifecycleState.DISPUTED)


# ==================================================
# VALUE PARSING
# ==================================================
def parse_currency(value: Optional[str]) -> float:
    """
    Parse a pt-BR money string ("R$ 1.234,56") into a float.

    Anything unparseable counts as 0.
    """
    if value is None:
        return 0.0
    text = re.sub(r"[^\d,.\-]", "", str(value))
    if not text:
        return 0.0
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return 0.0


# ==================================================
# VIEWS
# ==================================================
def pendency_view(processed: Iterable[ProcessedDocument], actor: Optional[Actor] = None) -> List[ProcessedDocument]:
    """Open, non-critical documents of the actor's unit."""
    return [
        p for p in visible_documents(processed, actor)
        if p.lifecycle_state == LifecycleState.NORMAL
        and p.deadline_status != DeadlineStatus.CRITICAL
    ]


def critical_view(processed: Iterable[ProcessedDocument], actor: Optional[Actor] = None) -> List[ProcessedDocument]:
    """CRITICAL documents of the actor's unit that have no open search or dispute."""
    return [
        p for p in visible_documents(processed, actor)
        if p.lifecycle_state == LifecycleState.NORMAL
        and p.deadline_status == DeadlineStatus.CRITICAL
    ]


def searching_view(processed: Iterable[ProcessedDocument]) -> List[ProcessedDocument]:
    return [p for p in processed if p.lifecycle_state == LifecycleState.SEARCHING]


def disputed_view(processed: Iterable[ProcessedDocument]) -> List[ProcessedDocument]:
    return [p for p in processed if p.lifecycle_state == LifecycleState.DISPUTED]


def resolved_view(processed: Iterable[ProcessedDocument], actor: Optional[Actor] = None) -> List[ProcessedDocument]:
    return [
        p for p in visible_documents(processed, actor)
        if p.lifecycle_state == LifecycleState.RESOLVED
    ]


def filter_documents(
    processed: Iterable[ProcessedDocument],
    search: str = "",
    status: Optional[str] = None,
) -> List[ProcessedDocument]:
    """
    Free-text search over CTE, recipient and units, plus an optional
    status filter matching either the deadline status or the declared one.
    """
    needle = (search or "").strip().lower()
    results = []

    for p in processed:
        document = p.document
        if status and p.deadline_status.value != status and document.declared_status != status:
            continue
        if needle:
            haystack = " ".join([
                document.cte,
                document.recipient,
                document.collection_unit,
                document.delivery_unit,
            ]).lower()
            if needle not in haystack:
                continue
        results.append(p)

    return results


# ==================================================
# KPI COUNTS
# ==================================================
def compute_kpi_counts(processed: List[ProcessedDocument], actor: Optional[Actor] = None) -> Dict[str, int]:
    """
    Returns the dashboard counters.

    Example:
    {
        "pendencias": 12,
        "criticos": 3,
        "em_busca": 2,
        "tad": 1,
        "resolvidos": 4
    }

    em_busca and tad are global; the rest follow the actor's unit.
    """
    return {
        "pendencias": len(pendency_view(processed, actor)),
        "criticos": len(critical_view(processed, actor)),
        "em_busca": len(searching_view(processed)),
        "tad": len(disputed_view(processed)),
        "resolvidos": len(resolved_view(processed, actor)),
    }


# ==================================================
# AGGREGATION (QTY + VALUE)
# ==================================================
def _status_label(p: ProcessedDocument) -> str:
    if p.lifecycle_state in _OPEN_EPISODES:
        return p.lifecycle_state.tag
    return p.deadline_status.value or OTHER_LABEL


def _payment_label(p: ProcessedDocument) -> str:
    return (p.document.payment_type or "").strip().upper() or OTHER_LABEL


def _unit_label(p: ProcessedDocument) -> str:
    return (p.document.delivery_unit or "").strip() or OTHER_LABEL


GROUPINGS: Dict[str, Callable[[ProcessedDocument], str]] = {
    "status": _status_label,
    "payment_type": _payment_label,
    "delivery_unit": _unit_label,
}


def summarize_by(
    processed: Iterable[ProcessedDocument],
    key: Union[str, Callable[[ProcessedDocument], str]],
) -> Dict[str, Dict[str, float]]:
    """
    Returns quantity and CTE value per group.

    Example:
    {
        "CRÍTICO": {"qty": 3, "value": 4520.5},
        "NO PRAZO": {"qty": 9, "value": 10230.0}
    }
    """
    label_of = GROUPINGS[key] if isinstance(key, str) else key

    summary = defaultdict(lambda: {"qty": 0, "value": 0.0})

    for p in processed:
        group = summary[label_of(p)]
        group["qty"] += 1
        group["value"] += parse_currency(p.document.cte_value)

    return dict(summary)


def totals(processed: Iterable[ProcessedDocument]) -> Dict[str, float]:
    qty = 0
    value = 0.0
    for p in processed:
        qty += 1
        value += parse_currency(p.document.cte_value)
    return {"qty": qty, "value": value}


# ==================================================
# SEARCH ALARM
# ==================================================
def needs_attention(
    processed: Iterable[ProcessedDocument],
    notes: NoteLedger,
    actor: Optional[Actor],
) -> List[ProcessedDocument]:
    """
    SEARCHING documents the actor has not annotated yet.

    A note by the actor on the CTE (pending or confirmed) counts as
    acknowledgement. No username means no alarm.
    """
    username = ((actor.username if actor else "") or "").strip().lower()
    if not username:
        return []

    return [
        p for p in searching_view(processed)
        if not any(
            (note.author or "").strip().lower() == username
            for note in notes.notes_for(p.document.cte)
        )
    ]
