"""
CTE Pendency Control Tower
Minimal main file: session data loaded once, tabs render from one snapshot
"""
import logging
from datetime import datetime

import streamlit as st

from pendency.config import LOG_LEVEL
from pendency.core.models import Actor
from pendency.core.pendency_metrics import (
    critical_view,
    disputed_view,
    needs_attention,
    pendency_view,
    resolved_view,
    searching_view,
)
from pendency.notifications.in_app_notifier import LEVEL_ERROR, LEVEL_SUCCESS, LEVEL_WARNING
from security.roles import ALL_ROLES, OPERATOR
from ui.dashboard import render_dashboard
from ui.data_loader import DataLoader
from ui.pendency_table import render_document_table

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

TOAST_ICONS = {
    LEVEL_SUCCESS: "✅",
    LEVEL_WARNING: "⚠️",
    LEVEL_ERROR: "❌",
}

# ═══════════════════════════════════════════════════════════════
# PAGE CONFIG (MUST BE FIRST)
# ═══════════════════════════════════════════════════════════════
st.set_page_config(
    page_title="CTE Pendency Control Tower",
    layout="wide",
    initial_sidebar_state="expanded"
)

# ═══════════════════════════════════════════════════════════════
# RENDER CYCLE
# ═══════════════════════════════════════════════════════════════
DataLoader.invalidate()
processed = DataLoader.get_processed_view()
snapshot = DataLoader.get_store().snapshot

# ═══════════════════════════════════════════════════════════════
# SIDEBAR: IDENTITY + PARAMETERS
# ═══════════════════════════════════════════════════════════════
with st.sidebar:
    st.markdown("### 👤 Operador")
    username = st.text_input("Usuário", value="operador", key="actor_username")
    role = st.selectbox("Perfil", ALL_ROLES, index=ALL_ROLES.index(OPERATOR), key="actor_role")
    units = sorted({p.document.delivery_unit for p in processed if p.document.delivery_unit})
    unit = st.selectbox("Unidade de entrega", ["Todas"] + units, key="actor_unit")
    actor = Actor(
        username=username.strip(),
        role=role,
        delivery_unit=None if unit == "Todas" else unit,
    )

    st.divider()
    st.markdown("### 📅 Parâmetros")
    parameters = snapshot.parameters
    if parameters is not None:
        st.write(f"**Hoje:** {parameters.reference_today.strftime('%d/%m/%Y')}")
        st.write(f"**Amanhã:** {parameters.reference_tomorrow.strftime('%d/%m/%Y')}")
        st.write(f"**Tolerância:** {parameters.tolerance_days} dia(s)")
    else:
        st.caption("Parâmetros não carregados")

    if st.button("🔄 Atualizar dados", use_container_width=True):
        DataLoader.refresh()
        st.rerun()

# ═══════════════════════════════════════════════════════════════
# NOTIFICATIONS (NON-BLOCKING)
# ═══════════════════════════════════════════════════════════════
for notification in DataLoader.get_notifier().drain():
    st.toast(notification["message"], icon=TOAST_ICONS.get(notification["level"], "ℹ️"))

# ═══════════════════════════════════════════════════════════════
# HEADER
# ═══════════════════════════════════════════════════════════════
st.title("📦 CTE Pendency Control Tower")
st.caption("Prazos • Busca de mercadorias • TAD")

# ═══════════════════════════════════════════════════════════════
# SEARCH ALARM (DISMISSIBLE)
# ═══════════════════════════════════════════════════════════════
unacknowledged = {p.document.cte for p in needs_attention(processed, snapshot.notes, actor)}
dismissed = st.session_state.setdefault("alarm_dismissed", set())
if unacknowledged - dismissed:
    st.error(
        f"🚨 MERCADORIA EM BUSCA: {len(unacknowledged)} CTE(s) sem nota sua "
        f"({', '.join(sorted(unacknowledged))}). Verifique e adicione uma nota para confirmar ciência."
    )
    if st.button("CIENTE, VERIFICAR AGORA", key="alarm_dismiss", type="primary"):
        st.session_state["alarm_dismissed"] = dismissed | unacknowledged
        st.rerun()

# ═══════════════════════════════════════════════════════════════
# TAB NAVIGATION
# ═══════════════════════════════════════════════════════════════
searching = searching_view(processed)
disputed = disputed_view(processed)

tab_names = [
    "📊 Dashboard",
    "📋 Pendências",
    "🚨 Críticos",
    f"🔎 Em Busca ({len(searching)})",
    f"⚖️ TAD ({len(disputed)})",
    "✅ Resolvidos",
]
tabs = st.tabs(tab_names)

with tabs[0]:
    render_dashboard(processed, actor)

with tabs[1]:
    render_document_table(pendency_view(processed, actor), "📋 Pendências", "pendency", actor)

with tabs[2]:
    render_document_table(critical_view(processed, actor), "🚨 Críticos", "critical", actor)

with tabs[3]:
    render_document_table(searching, "🔎 Em Busca", "searching", actor)

with tabs[4]:
    render_document_table(disputed, "⚖️ TAD", "disputed", actor)

with tabs[5]:
    render_document_table(resolved_view(processed, actor), "✅ Resolvidos", "resolved", actor)

# ═══════════════════════════════════════════════════════════════
# FOOTER
# ═══════════════════════════════════════════════════════════════
st.divider()
st.caption(f"{len(processed)} CTEs carregados • Última renderização: {datetime.now().strftime('%H:%M:%S')}")
