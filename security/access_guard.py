"""
UNIT ACCESS GUARD (FINAL AUTH DECISION)

This is the SINGLE ENTRYPOINT for unit-scoping and note authority.

Inputs:
- actor: Actor (username, role, delivery_unit)
- processed: ProcessedDocument (document + reconciled state)

Rules:
- SEARCHING and DISPUTED documents are visible to every unit
- Other documents only when the delivery unit matches the actor's unit
- An actor bound to no unit sees everything
- Notes may be deleted by their author or a moderator role
- No mutation of inputs
- No logging
- No side effects
"""

from typing import Iterable, List, Optional

from pendency.config import TEMP_ID_PREFIX
from pendency.core.models import Actor, LifecycleState, Note, ProcessedDocument
from security.roles import NOTE_MODERATOR_ROLES, ROLE_SCOPE_MAP, GLOBAL

GLOBAL_STATES = (LifecycleState.SEARCHING, LifecycleState.DISPUTED)


def normalize_role(role: Optional[str]) -> str:
    return (role or "").strip().upper()


def bound_unit(actor: Optional[Actor]) -> str:
    """The unit that scopes this actor, or "" when unrestricted."""
    if actor is None:
        return ""
    if ROLE_SCOPE_MAP.get(normalize_role(actor.role)) == GLOBAL:
        return ""
    return (actor.delivery_unit or "").strip()


def can_view_document(processed: ProcessedDocument, actor: Optional[Actor]) -> bool:
    """
    Single entrypoint for unit-scoped visibility.

    Args:
        processed: Document with its reconciled lifecycle state
        actor: Current user (None means an unrestricted session)

    Returns:
        True if the actor may see the document in unit-scoped views
    """
    if processed.lifecycle_state in GLOBAL_STATES:
        return True

    unit = bound_unit(actor)
    if not unit:
        return True

    return (processed.document.delivery_unit or "").strip().upper() == unit.upper()


def visible_documents(
    processed: Iterable[ProcessedDocument],
    actor: Optional[Actor],
) -> List[ProcessedDocument]:
    return [p for p in processed if can_view_document(p, actor)]


def can_delete_note(actor: Optional[Actor], note: Note) -> bool:
    """
    Authors delete their own notes; moderators delete any note.

    Pending notes are never deletable: they have no server id yet. Neither
    are notes still carrying a local temp id after confirmation.
    """
    if actor is None or note is None:
        return False
    if note.pending or str(note.id or "").startswith(TEMP_ID_PREFIX):
        return False

    if normalize_role(actor.role) in NOTE_MODERATOR_ROLES:
        return True

    username = (actor.username or "").strip().lower()
    author = (note.author or "").strip().lower()
    return bool(username) and username == author
