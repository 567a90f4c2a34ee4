# File: modules/views.py
import logging
from io import BytesIO
from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
import plotly.express as px
import streamlit as st

from kpi_dashboard.modules import aggregator as agg
from kpi_dashboard.modules import data_handler as dh
from kpi_dashboard.modules import kpi_table as kt
from kpi_dashboard.modules.config import Goal, Settings, configure_logging, load_settings
from kpi_dashboard.modules.errors import ConfigError, DataLoadError
from kpi_dashboard.modules.trend import TrendSeries

logger = logging.getLogger(__name__)

KPI_COLORS = px.colors.qualitative.Plotly


# ---------------- Page boundaries ----------------
def load_settings_or_stop() -> Settings:
    """Read settings from the environment; a bad override stops the page."""
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        st.error("Configuração inválida.")
        st.exception(e)
        st.stop()
    configure_logging(settings.log_level)
    return settings


# ---------------- Cached computations ----------------
@st.cache_data(show_spinner="Carregando dados...")
def cached_tickets(csv_path: str) -> pd.DataFrame:
    return dh.load_tickets(csv_path)


def load_tickets_or_stop(csv_path: str) -> pd.DataFrame:
    """Load the tickets once per session; report a failure once and stop the page."""
    try:
        return cached_tickets(csv_path)
    except DataLoadError as e:
        logger.error("Could not load %s: %s", csv_path, e)
        st.error("Falha ao carregar os dados.")
        st.caption(str(e))
        st.stop()


@st.cache_data(show_spinner=False)
def cached_report(tickets: pd.DataFrame, agent: str, start_date, end_date,
                  goals: Dict[str, Goal], top_n: int, sample_size: int,
                  seed: Optional[int]) -> agg.DeviationReport:
    rng = np.random.default_rng(seed)
    return agg.aggregate(tickets, agent, start_date, end_date, goals, top_n, sample_size, rng)


# ---------------- Figures ----------------
def deviation_bar_figure(plot_data: List[Dict], agent: str):
    long_df = pd.DataFrame(
        [
            {"Combinação": x, "KPI": series["name"], "Tickets": y}
            for series in plot_data
            for x, y in zip(series["x"], series["y"])
        ],
        columns=["Combinação", "KPI", "Tickets"],
    )
    order = plot_data[0]["x"] if plot_data else []
    fig = px.bar(
        long_df,
        x="Combinação",
        y="Tickets",
        color="KPI",
        barmode="stack",
        category_orders={"Combinação": order, "KPI": [s["name"] for s in plot_data]},
        color_discrete_sequence=KPI_COLORS,
        title=f"Top {len(order)} Combinações (Driver + Next Step) para o Atendente: {agent}",
    )
    fig.update_xaxes(title="Driver e Next Step", automargin=True, tickangle=-45)
    fig.update_yaxes(title="Volume Total de Tickets", automargin=True)
    fig.update_layout(
        height=600,
        hovermode="closest",
        paper_bgcolor="#ffffff",
        plot_bgcolor="#ffffff",
        legend_title_text="KPIs com Desvio",
    )
    return fig


def trend_figure(series: TrendSeries, indicator: str):
    frame = pd.DataFrame({"Data": series.dates, indicator: series.averages})
    fig = px.line(frame, x="Data", y=indicator, markers=True,
                  title=f"Tendência de {indicator} ao longo do tempo")
    fig.update_traces(line=dict(width=3, color="#2563EB"), marker=dict(size=8), name=indicator, showlegend=True)
    if series.goal is not None:
        fig.add_hline(y=series.goal, line_dash="dash", line_color="#DC2626", line_width=2,
                      annotation_text="Meta", annotation_position="top left")
    fig.update_layout(
        height=600,
        title_x=0.5,
        plot_bgcolor="#FFFFFF",
        paper_bgcolor="#FFFFFF",
        legend=dict(x=0, y=1.1, orientation="h"),
    )
    fig.update_xaxes(gridcolor="#E5E7EB", zerolinecolor="#E5E7EB")
    fig.update_yaxes(gridcolor="#E5E7EB", zerolinecolor="#E5E7EB")
    return fig


def styled_table(page_rows: pd.DataFrame, goals: Mapping[str, Goal]):
    """Formatted table page with deviation cells shaded red."""
    shown = kt.display_table(page_rows, goals)
    labels = dict(kt.table_columns(goals))
    colors = pd.DataFrame("", index=shown.index, columns=shown.columns)
    for name in goals:
        key = f"{name}_Deviation"
        colors[labels[key]] = page_rows[key].map(
            lambda d: f"background-color: {kt.deviation_color(d)}" if kt.deviation_color(d) else ""
        )
    return shown.style.apply(lambda _: colors, axis=None)


# ---------------- Streamlit renderers ----------------
def back_to_homepage(key: str):
    if st.button("Back to Homepage", key=key):
        st.session_state["current_app"] = "Homepage"
        st.rerun()


def table_to_excel(table: pd.DataFrame, goals: Mapping[str, Goal]) -> bytes:
    out = BytesIO()
    with pd.ExcelWriter(out, engine="xlsxwriter") as writer:
        kt.display_table(table, goals).to_excel(writer, index=False, sheet_name="KPIs")
    return out.getvalue()


def render_download_button(table: pd.DataFrame, goals: Mapping[str, Goal], agent: str):
    st.download_button(
        label="Baixar tabela (Excel)",
        data=table_to_excel(table, goals),
        file_name=f"KPIs_{agent.replace(' ', '_')}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        key="download_kpi_table",
    )


def render_review_tickets(report: agg.DeviationReport, agent: str):
    st.subheader("Tickets Selecionados para Escuta")
    if report.selected_tickets is None or report.selected_tickets.empty:
        st.write("Nenhum ticket selecionado para este atendente.")
        return
    st.markdown(f"**Atendente:** {agent} · **KPI com maior desvio:** {report.worst_kpi}")
    sample = report.selected_tickets[["id", "driver", "next_step"]].rename(
        columns={"id": "ID", "driver": "Driver", "next_step": "Next Step"}
    )
    st.dataframe(sample, use_container_width=True, hide_index=True)


def render_missing_kpis(report: agg.DeviationReport):
    groups = [c for c in report.combinations + report.insufficient if c.missing_kpis]
    gaps = [(c.label.replace("\n", " / "), ", ".join(c.missing_kpis)) for c in groups]
    if gaps:
        with st.expander("KPIs sem dados suficientes"):
            st.dataframe(pd.DataFrame(gaps, columns=["Combinação", "KPIs sem dados"]),
                         use_container_width=True, hide_index=True)
