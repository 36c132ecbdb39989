"""
Dashboard Tab - KPIs and aggregate charts
"""
import pandas as pd
import plotly.express as px
import streamlit as st

from pendency.core.models import DeadlineStatus
from pendency.core.pendency_metrics import compute_kpi_counts, summarize_by, totals
from security.access_guard import bound_unit, visible_documents

STATUS_COLORS = {
    DeadlineStatus.CRITICAL.value: "#dc2626",
    DeadlineStatus.OVERDUE.value: "#f97316",
    DeadlineStatus.DUE_TODAY.value: "#eab308",
    DeadlineStatus.DUE_TOMORROW.value: "#3b82f6",
    DeadlineStatus.ON_TIME.value: "#10b981",
    DeadlineStatus.NO_DEADLINE.value: "#9ca3af",
    "EM BUSCA": "#7c3aed",
    "TAD": "#be185d",
}

PAYMENT_COLORS = {
    "CIF": "#10b981",
    "FOB": "#ef4444",
    "FATURAR_REMETENTE": "#f59e0b",
    "FATURAR_DEST": "#3b82f6",
    "OUTROS": "#9ca3af",
}


def format_currency(value: float) -> str:
    """R$ 1.234,56"""
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def _summary_frame(summary: dict, label: str) -> pd.DataFrame:
    rows = [
        {label: name, "Quantidade": data["qty"], "Valor": data["value"]}
        for name, data in summary.items()
    ]
    return pd.DataFrame(rows, columns=[label, "Quantidade", "Valor"])


def render_dashboard(processed, actor=None):
    """Render KPI cards and the status / payment / unit breakdowns"""
    st.markdown("## 📊 Painel de Controle")

    unit = bound_unit(actor)
    if unit:
        st.caption(f"Unidade: **{unit}**")

    # KPI cards
    counts = compute_kpi_counts(processed, actor)
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Pendências", counts["pendencias"])
    col2.metric("Críticos", counts["criticos"])
    col3.metric("Em Busca", counts["em_busca"])
    col4.metric("TAD", counts["tad"])
    col5.metric("Resolvidos", counts["resolvidos"])

    scoped = visible_documents(processed, actor)
    if not scoped:
        st.info("Nenhum CTE carregado")
        return

    overall = totals(scoped)
    st.write(f"**Total:** {overall['qty']} CTEs • {format_currency(overall['value'])}")

    view_mode = st.radio("Métrica", ["Quantidade", "Valor"], horizontal=True, key="dashboard_view_mode")

    chart1, chart2 = st.columns(2, gap="large")

    with chart1:
        st.markdown("**🚦 Por Status**")
        status_df = _summary_frame(summarize_by(scoped, "status"), "Status")
        fig_status = px.bar(
            status_df,
            x="Status",
            y=view_mode,
            color="Status",
            color_discrete_map=STATUS_COLORS,
            text=view_mode,
        )
        fig_status.update_layout(
            height=350,
            margin=dict(l=10, r=10, t=20, b=40),
            showlegend=False,
            plot_bgcolor='rgba(0,0,0,0)',
            paper_bgcolor='rgba(0,0,0,0)',
        )
        st.plotly_chart(fig_status, use_container_width=True)

    with chart2:
        st.markdown("**💳 Por Tipo de Frete**")
        payment_df = _summary_frame(summarize_by(scoped, "payment_type"), "Frete")
        fig_payment = px.pie(
            payment_df,
            values=view_mode,
            names="Frete",
            color="Frete",
            color_discrete_map=PAYMENT_COLORS,
            hole=0.4,
        )
        fig_payment.update_layout(height=350, margin=dict(l=10, r=10, t=20, b=10))
        st.plotly_chart(fig_payment, use_container_width=True)

    # Units (or recipients when the actor is bound to one unit)
    if unit:
        st.markdown("**🏢 Top Destinatários**")
        group_df = _summary_frame(
            summarize_by(scoped, lambda p: (p.document.recipient or "").strip() or "OUTROS"),
            "Grupo",
        )
    else:
        st.markdown("**🏢 Top Unidades de Entrega**")
        group_df = _summary_frame(summarize_by(scoped, "delivery_unit"), "Grupo")

    top_20 = group_df.nlargest(20, view_mode)
    fig_units = px.bar(top_20, x="Grupo", y=view_mode)
    fig_units.update_layout(
        height=350,
        margin=dict(l=10, r=10, t=20, b=40),
        xaxis_tickangle=-45,
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
    )
    st.plotly_chart(fig_units, use_container_width=True)
