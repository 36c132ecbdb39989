"""
Note Panel - history, notes and actions for one CTE
"""
import base64

import streamlit as st

from pendency.config import STATUS_DISPUTED, STATUS_SEARCHING
from pendency.core.models import LifecycleState
from pendency.core.mutation_coordinator import NoteDeletionError
from security.access_guard import can_delete_note
from ui.data_loader import DataLoader

TAG_OPTIONS = {
    "Manter status atual": None,
    "🔎 Iniciar busca (EM BUSCA)": STATUS_SEARCHING,
    "⚖️ Abrir TAD": STATUS_DISPUTED,
}

STATE_ICONS = {
    LifecycleState.NORMAL: "📄",
    LifecycleState.SEARCHING: "🔎",
    LifecycleState.DISPUTED: "⚖️",
    LifecycleState.RESOLVED: "✅",
}


def _encode_uploads(uploads) -> list:
    images = []
    for upload in uploads or []:
        encoded = base64.b64encode(upload.getvalue()).decode("ascii")
        images.append(f"data:{upload.type};base64,{encoded}")
    return images


def text_to_restore(outcome):
    """Typed text goes back to the form only when the note was rolled back."""
    return outcome.text if outcome.rolled_back else None


def render_note_panel(processed, actor):
    """Render the note history and the note / resolve / delete actions"""
    document = processed.document
    store = DataLoader.get_store()
    coordinator = DataLoader.get_coordinator()
    snapshot = store.snapshot
    key = f"{document.cte}_{document.serie}"

    icon = STATE_ICONS.get(processed.lifecycle_state, "📄")
    st.markdown(f"### {icon} CTE {document.cte} / {document.serie or '-'}")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.write(f"**Prazo:** {processed.deadline_status.value}")
        st.write(f"**Data limite:** {document.limit_date or 'N/A'}")
    with col2:
        st.write(f"**Coleta:** {document.collection_unit or 'N/A'}")
        st.write(f"**Entrega:** {document.delivery_unit or 'N/A'}")
    with col3:
        st.write(f"**Destinatário:** {document.recipient or 'N/A'}")
        st.write(f"**Valor:** {document.cte_value or 'N/A'}")

    # Process history
    history = snapshot.journal.history_for(document.cte, document.serie)
    if history:
        with st.expander(f"📜 Histórico do processo ({len(history)})"):
            for transition in history:
                st.write(f"**{transition.status_tag}** • {transition.actor} • {transition.timestamp}")
                st.caption(transition.description)

    # Notes
    st.markdown("#### 📝 Notas")
    notes = snapshot.notes.notes_for(document.cte)
    if not notes:
        st.info("Nenhuma nota registrada")

    for note in notes:
        pending = " ⏳ enviando..." if note.pending else ""
        tag = f" `{note.status_tag}`" if note.status_tag else ""
        st.write(f"**{note.author}** • {note.timestamp}{tag}{pending}")
        st.write(note.text)
        if note.image_link:
            st.markdown(f"[🖼️ Imagem]({note.image_link})")

        if can_delete_note(actor, note):
            if st.button("🗑️ Excluir", key=f"delete_{note.id}"):
                try:
                    coordinator.delete_note(note, actor)
                except NoteDeletionError as e:
                    st.error(str(e))
                DataLoader.invalidate()
                st.rerun()

    if processed.lifecycle_state == LifecycleState.RESOLVED:
        st.success("Mercadoria localizada")
        return

    # New note
    text_key = f"note_text_{key}"
    restore_key = f"note_restore_{key}"
    if restore_key in st.session_state:
        st.session_state[text_key] = st.session_state.pop(restore_key)

    with st.form(key=f"note_form_{key}", clear_on_submit=True):
        text = st.text_area("Nova nota", key=text_key)
        uploads = st.file_uploader(
            "Anexar imagens",
            type=["png", "jpg", "jpeg"],
            accept_multiple_files=True,
            key=f"note_images_{key}",
        )
        tag_label = st.radio("Status", list(TAG_OPTIONS.keys()), horizontal=True, key=f"note_tag_{key}")
        submitted = st.form_submit_button("📨 ENVIAR NOTA", use_container_width=True, type="primary")

    if submitted:
        outcome = coordinator.submit_note(
            document,
            actor.username,
            text,
            images=_encode_uploads(uploads),
            requested_tag=TAG_OPTIONS[tag_label],
        )
        restored = text_to_restore(outcome)
        if restored:
            st.session_state[restore_key] = restored
        DataLoader.invalidate()
        st.rerun()

    if st.button("✅ Marcar como LOCALIZADA", key=f"resolve_{key}", use_container_width=True):
        coordinator.resolve_document(document, actor.username)
        DataLoader.invalidate()
        st.rerun()
