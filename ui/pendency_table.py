"""
Pendency Tables - one list view per tab with drill-down into notes
"""
import pandas as pd
import streamlit as st

from pendency.core.pendency_metrics import filter_documents
from pendency.core.reconciler import latest_activity
from ui.data_loader import DataLoader
from ui.note_panel import render_note_panel


def to_frame(rows, snapshot=None) -> pd.DataFrame:
    """Flatten processed documents for st.dataframe"""
    records = []
    for p in rows:
        document = p.document
        if snapshot is not None:
            activity = latest_activity(document, snapshot.notes, snapshot.journal)
        else:
            activity = p.latest_note.text if p.latest_note is not None else None
        records.append({
            "CTE": document.cte,
            "Série": document.serie,
            "Emissão": document.issue_date,
            "Data Limite": document.limit_date,
            "Prazo": p.deadline_status.value,
            "Situação": p.lifecycle_state.tag or document.declared_status,
            "Coleta": document.collection_unit,
            "Entrega": document.delivery_unit,
            "Destinatário": document.recipient,
            "Valor": document.cte_value,
            "Frete": document.payment_type,
            "Notas": p.note_count,
            "Última atividade": activity or "",
        })
    return pd.DataFrame(records)


def render_document_table(rows, title, key, actor):
    """Render a searchable table and the note panel of the selected CTE"""
    st.markdown(f"## {title}")

    search = st.text_input("🔍 Buscar CTE, destinatário ou unidade", key=f"search_{key}")
    filtered = filter_documents(rows, search=search)

    if not filtered:
        st.info("Nenhum CTE nesta lista")
        return

    st.caption(f"{len(filtered)} CTEs")
    st.dataframe(
        to_frame(filtered, DataLoader.get_store().snapshot),
        use_container_width=True,
        height=400,
        hide_index=True,
        column_config={
            "CTE": st.column_config.TextColumn("CTE", width="small"),
            "Notas": st.column_config.NumberColumn("Notas", width="small"),
        },
    )

    labels = {f"{p.document.cte} / {p.document.serie}": p for p in filtered}
    selected = st.selectbox(
        "Abrir CTE",
        ["-"] + list(labels.keys()),
        key=f"select_{key}",
    )
    if selected in labels:
        st.divider()
        render_note_panel(labels[selected], actor)
