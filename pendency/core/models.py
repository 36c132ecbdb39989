"""
PENDENCY DOMAIN TYPES

Purpose:
- Shipment document (CTE) as read from the base tab
- Note and process-transition ledger entries
- Business reference dates
- Deadline and lifecycle vocabularies

Rules:
- No IO operations
- Revisions are always compared through normalize_revision()
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from pendency.config import (
    STATUS_SEARCHING,
    STATUS_DISPUTED,
    STATUS_RESOLVED,
    RESOLVED_STATUSES,
)


# ==================================================
# VOCABULARIES
# ==================================================

class DeadlineStatus(str, Enum):
    """Deadline compliance of a document, labelled as the spreadsheet does."""
    NO_DEADLINE = "SEM PRAZO"
    CRITICAL = "CRÍTICO"
    OVERDUE = "FORA DO PRAZO"
    DUE_TODAY = "PRIORIDADE"
    DUE_TOMORROW = "VENCE AMANHÃ"
    ON_TIME = "NO PRAZO"


class LifecycleState(str, Enum):
    """Reconciled lifecycle of a document. Derived, never persisted."""
    NORMAL = "NORMAL"
    SEARCHING = "SEARCHING"
    DISPUTED = "DISPUTED"
    RESOLVED = "RESOLVED"

    @property
    def tag(self) -> str:
        """Status tag the backend writes for this state ('' for NORMAL)."""
        return _STATE_TAGS[self]


_STATE_TAGS = {
    LifecycleState.NORMAL: "",
    LifecycleState.SEARCHING: STATUS_SEARCHING,
    LifecycleState.DISPUTED: STATUS_DISPUTED,
    LifecycleState.RESOLVED: STATUS_RESOLVED,
}


def normalize_status(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def is_resolved_status(value: Optional[str]) -> bool:
    return normalize_status(value) in RESOLVED_STATUSES


def is_searching_status(value: Optional[str]) -> bool:
    return normalize_status(value) == STATUS_SEARCHING


def is_disputed_status(value: Optional[str]) -> bool:
    return normalize_status(value) == STATUS_DISPUTED


def normalize_revision(serie: Optional[str]) -> str:
    """
    Canonical form of a revision ("serie") for comparisons.

    "06", "6" and " 6 " all become "6"; "0" and "000" become "0".
    """
    text = (serie or "").strip()
    if not text:
        return ""
    stripped = text.lstrip("0")
    return stripped or "0"


def revisions_match(left: Optional[str], right: Optional[str]) -> bool:
    """
    Leading-zero-insensitive revision equality.

    A blank revision on either side is ambiguous and matches any revision,
    so lookups fall back to the document number alone.
    """
    a = normalize_revision(left)
    b = normalize_revision(right)
    if not a or not b:
        return True
    return a == b


# ==================================================
# RECORDS
# ==================================================

@dataclass
class CteDocument:
    """
    One shipment record from the base tab.

    declared_status is mutable: the mutation coordinator flips it
    optimistically before the backend confirms.
    """
    cte: str
    serie: str = ""
    codigo: str = ""
    issue_date: str = ""
    deadline_days: str = ""
    limit_date: str = ""
    declared_status: str = ""
    collection_unit: str = ""
    delivery_unit: str = ""
    cte_value: str = ""
    delivery_tax: str = ""
    volumes: str = ""
    weight: str = ""
    payment_type: str = ""
    recipient: str = ""
    justification: str = ""

    @property
    def key(self) -> tuple:
        return (self.cte.strip(), normalize_revision(self.serie))


@dataclass
class Note:
    """Free-text annotation. pending=True until the remote write confirms."""
    id: str
    cte: str
    serie: str = ""
    codigo: str = ""
    timestamp: str = ""
    author: str = ""
    text: str = ""
    image_link: str = ""
    status_tag: str = ""
    pending: bool = False


@dataclass(frozen=True)
class ProcessTransition:
    """One row of the process-control journal. status_tag is never empty."""
    id: str
    cte: str
    serie: str
    timestamp: str
    actor: str
    description: str
    status_tag: str
    link: str = ""


@dataclass(frozen=True)
class GlobalParameters:
    """
    Business calendar supplied by the data tab.

    reference_today may lag the wall clock; engines must use these values
    and never read the system date themselves.
    """
    reference_today: date
    reference_tomorrow: date
    tolerance_days: int = 0


@dataclass(frozen=True)
class Actor:
    """Logged-in user as seen by the engine. delivery_unit=None means unrestricted."""
    username: str
    role: str = ""
    delivery_unit: Optional[str] = None


@dataclass
class ProcessedDocument:
    """A document with everything the dashboard needs, computed from one snapshot."""
    document: CteDocument
    deadline_status: DeadlineStatus
    lifecycle_state: LifecycleState
    latest_note: Optional[Note] = None
    note_count: int = 0
