"""
OPTIMISTIC MUTATION COORDINATOR

This is the ONLY allowed way to change ledger state from the UI.

Every user action:
- Appends speculative (pending) entries to the current snapshot
- Issues exactly one remote command (resolve issues two)
- Confirms, keeps or rolls back the speculative entries by failure class
- Schedules one delayed wholesale refresh on success

Rules:
- Never raises transport failures to the UI; returns a MutationOutcome
- Failures are also pushed to the in-app notifier
- The typed text always travels back in the outcome so it can be restored
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Union

from pendency import config
from pendency.core.date_normalizer import format_timestamp
from pendency.core.models import (
    Actor,
    CteDocument,
    LifecycleState,
    Note,
    ProcessTransition,
    is_disputed_status,
    is_resolved_status,
    is_searching_status,
    normalize_status,
)
from pendency.core.pendency_store import LedgerSnapshot, PendencyStore
from pendency.core.reconciler import lifecycle_state, preserving_tag
from pendency.notifications.in_app_notifier import (
    LEVEL_ERROR,
    LEVEL_SUCCESS,
    LEVEL_WARNING,
    InAppNotifier,
)
from pendency.storage.sheet_feed import FeedError
from pendency.storage.write_command import (
    ACTION_ADD_NOTE,
    ACTION_DELETE_NOTE,
    ACTION_STOP_ALARM,
    WriteCommand,
)
from security.access_guard import can_delete_note

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "Sistema"


class NoteDeletionError(Exception):
    """Raised when an actor is not allowed to delete a note."""
    pass


@dataclass(frozen=True)
class MutationOutcome:
    ok: bool
    definitive: bool = False
    message: str = ""
    text: str = ""
    note_id: Optional[str] = None

    @property
    def rolled_back(self) -> bool:
        return not self.ok and self.definitive


def _thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def _temp_id(prefix: str = config.TEMP_ID_PREFIX) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:9]}"


def _coerce_tag(requested: Union[str, LifecycleState, None]) -> Optional[str]:
    if requested is None:
        return None
    if isinstance(requested, LifecycleState):
        return requested.tag
    tag = normalize_status(requested)
    if tag == "" or is_searching_status(tag) or is_disputed_status(tag) or is_resolved_status(tag):
        return tag
    raise ValueError(f"Unsupported status tag: '{requested}'")


class MutationCoordinator:
    """
    Applies user mutations optimistically against a PendencyStore.

    schedule_refresh(delay, callback) defaults to a daemon threading.Timer;
    tests inject a scheduler that records or runs the callback directly.
    """

    def __init__(
        self,
        store: PendencyStore,
        writer: WriteCommand,
        notifier: Optional[InAppNotifier] = None,
        schedule_refresh: Optional[Callable[[float, Callable[[], None]], object]] = None,
        refresh_delay: float = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.writer = writer
        self.notifier = notifier or InAppNotifier()
        self.schedule_refresh = schedule_refresh or _thread_timer
        self.refresh_delay = config.REFRESH_DELAY_SECONDS if refresh_delay is None else refresh_delay
        self.clock = clock

    # ══════════════════════════════════════════════════════════════
    # PUBLIC ACTIONS
    # ══════════════════════════════════════════════════════════════

    def submit_note(
        self,
        document: CteDocument,
        author: str,
        text: str,
        images: Sequence[str] = (),
        requested_tag: Union[str, LifecycleState, None] = None,
    ) -> MutationOutcome:
        """
        Append a note (optionally opening a SEARCHING/DISPUTED episode).

        Without a requested tag the note carries the tag that keeps the
        document in its current state, so a follow-up photo never clears
        an open search.
        """
        text = (text or "").strip()
        images = [i for i in images if i]
        if not text and not images:
            return MutationOutcome(ok=False, definitive=True, message="Nada para enviar", text=text)

        snapshot = self.store.snapshot
        target = snapshot.find_document(document.cte, document.serie) or document
        current = lifecycle_state(target, snapshot.notes, snapshot.journal)

        tag = _coerce_tag(requested_tag)
        if tag is None:
            tag = preserving_tag(current)

        description = self._describe(tag, current, text)
        return self._apply(snapshot, target, author, text, description, tag, images)

    def resolve_document(
        self,
        document: CteDocument,
        author: str,
        text: Optional[str] = None,
    ) -> MutationOutcome:
        """
        Mark a document as located: RESOLVED note + journal entry, declared
        status flipped, then stop the server-side alarm.
        """
        text = (text or "").strip() or config.RESOLVE_DEFAULT_TEXT
        snapshot = self.store.snapshot
        target = snapshot.find_document(document.cte, document.serie) or document

        outcome = self._apply(
            snapshot, target, author, text, text, config.STATUS_RESOLVED, [],
            success_message="Mercadoria marcada como encontrada com sucesso!",
        )
        if outcome.rolled_back:
            return outcome

        result = self.writer.send(ACTION_STOP_ALARM, {"cte": target.cte, "serie": target.serie})
        if not result.ok:
            # The RESOLVED note may already be stored; keep the optimistic state
            logger.warning(f"stopAlarm failed for CTE {target.cte}: {result.message}")
            self.notifier.emit(
                "Nota registrada, mas o alarme não pôde ser desligado.",
                level=LEVEL_WARNING,
                cte=target.cte,
            )
        return outcome

    def delete_note(self, note: Note, actor: Actor) -> MutationOutcome:
        """
        Remove a note locally, then on the server; restore it on failure.

        Raises:
            NoteDeletionError: actor is neither the author nor a moderator
        """
        if not can_delete_note(actor, note):
            raise NoteDeletionError(
                f"User '{actor.username if actor else ''}' cannot delete note '{note.id}'"
            )

        snapshot = self.store.snapshot
        removed = snapshot.notes.remove(note.id)
        if removed is None:
            return MutationOutcome(ok=False, definitive=True, message="Nota não encontrada", note_id=note.id)

        result = self.writer.send(ACTION_DELETE_NOTE, {"id": note.id})
        if result.ok:
            logger.info(f"Note {note.id} deleted by {actor.username}")
            self._schedule()
            return MutationOutcome(ok=True, message="Nota removida", note_id=note.id)

        snapshot.notes.restore(removed)
        logger.error(f"Delete of note {note.id} failed: {result.message}")
        self.notifier.emit(
            "Não foi possível deletar a nota no servidor.",
            level=LEVEL_ERROR,
            cte=note.cte,
        )
        return MutationOutcome(ok=False, definitive=True, message=result.message, note_id=note.id)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @staticmethod
    def _describe(tag: str, current: LifecycleState, text: str) -> str:
        if is_searching_status(tag) and current != LifecycleState.SEARCHING:
            prefix = config.SEARCH_DESCRIPTION_PREFIX
        elif is_disputed_status(tag) and current != LifecycleState.DISPUTED:
            prefix = config.DISPUTE_DESCRIPTION_PREFIX
        else:
            return text
        return f"{prefix}: {text}" if text else prefix

    def _apply(
        self,
        snapshot: LedgerSnapshot,
        document: CteDocument,
        author: str,
        text: str,
        description: str,
        tag: str,
        images: Sequence[str],
        success_message: Optional[str] = None,
    ) -> MutationOutcome:
        author = (author or "").strip() or DEFAULT_AUTHOR
        timestamp = format_timestamp(self.clock())

        # --------------------------------------------------
        # 1. Speculative entries
        # --------------------------------------------------
        note = Note(
            id=_temp_id(),
            cte=document.cte,
            serie=document.serie,
            codigo=document.codigo,
            timestamp=timestamp,
            author=author,
            text=description,
            status_tag=tag,
        )
        snapshot.notes.add_note(note)

        transition = None
        previous_status = document.declared_status
        if tag:
            transition = ProcessTransition(
                id=_temp_id(f"{config.TEMP_ID_PREFIX}-proc"),
                cte=document.cte,
                serie=document.serie,
                timestamp=timestamp,
                actor=author,
                description=description,
                status_tag=tag,
            )
            snapshot.journal.append(transition)
            document.declared_status = tag

        # --------------------------------------------------
        # 2. Remote command
        # --------------------------------------------------
        payload = {
            "cte": document.cte,
            "serie": document.serie,
            "codigo": document.codigo,
            "user": author,
            "text": description,
            "images": list(images),
            "image": images[0] if images else "",
            "status": tag,
            "markInSearch": is_searching_status(tag),
        }
        result = self.writer.send(ACTION_ADD_NOTE, payload)

        # --------------------------------------------------
        # 3. Confirm, keep or roll back
        # --------------------------------------------------
        if result.ok:
            snapshot.notes.confirm(note.id)
            logger.info(f"Note {note.id} stored for CTE {document.cte} (tag '{tag}')")
            if success_message:
                self.notifier.emit(success_message, level=LEVEL_SUCCESS, cte=document.cte)
            self._schedule()
            return MutationOutcome(ok=True, text=text, note_id=note.id)

        if result.definitive:
            snapshot.notes.remove(note.id)
            if transition is not None:
                snapshot.journal.remove(transition.id)
                document.declared_status = previous_status
            logger.error(f"Note for CTE {document.cte} rejected, rolled back: {result.message}")
            self.notifier.emit(
                "Erro ao salvar nota. Tente novamente.",
                level=LEVEL_ERROR,
                cte=document.cte,
                metadata={"text": text},
            )
        else:
            logger.warning(f"Note for CTE {document.cte} outcome unknown, kept as pending: {result.message}")
            self.notifier.emit(
                "Sem confirmação do servidor. A nota pode já estar salva: não reenvie, ela será conferida na próxima atualização.",
                level=LEVEL_WARNING,
                cte=document.cte,
                metadata={"text": text},
            )

        return MutationOutcome(
            ok=False,
            definitive=result.definitive,
            message=result.message,
            text=text,
            note_id=note.id,
        )

    def _schedule(self) -> None:
        self.schedule_refresh(self.refresh_delay, self.refresh_now)

    def refresh_now(self) -> bool:
        """Run one wholesale refresh; failures become a warning, never an exception."""
        try:
            self.store.refresh()
            return True
        except FeedError as e:
            logger.warning(f"Refresh failed, keeping previous snapshot: {str(e)}")
            self.notifier.emit(
                "Não foi possível atualizar os dados. Exibindo a última versão carregada.",
                level=LEVEL_WARNING,
            )
            return False
