# File: trend_app.py
import streamlit as st

from kpi_dashboard.modules import data_handler as dh
from kpi_dashboard.modules import trend
from kpi_dashboard.modules import views

APP_TITLE = "Dashboard de Tendência de Indicadores"

FILTER_KEYS = {
    "indicator": "trend_indicator",
    "employee": "trend_employee",
    "start_date": "trend_start",
    "end_date": "trend_end",
    "driver_level2": "trend_driver",
    "next_step": "trend_next_step",
}


def _apply_defaults(defaults: trend.TrendFilters, force: bool = False):
    for attr, key in FILTER_KEYS.items():
        if force or key not in st.session_state:
            st.session_state[key] = getattr(defaults, attr)


def main():
    settings = views.load_settings_or_stop()

    views.back_to_homepage("trend_back_homepage")
    st.title(APP_TITLE)
    st.caption("Acompanhe os principais indicadores de desempenho ao longo do tempo")

    tickets = views.load_tickets_or_stop(settings.csv_path)
    defaults = trend.default_filters(tickets)
    _apply_defaults(defaults)

    with st.container(border=True):
        c1, c2, c3 = st.columns(3)
        indicators = [goal.column for goal in settings.goals.values()]
        c1.selectbox("Indicador", indicators, key=FILTER_KEYS["indicator"])
        c2.selectbox("Funcionário", [trend.ANY] + dh.unique_values(tickets[~tickets["agent_missing"]], dh.AGENT_COL, sort=True),
                     key=FILTER_KEYS["employee"])
        c3.date_input("Data Início", key=FILTER_KEYS["start_date"])
        c4, c5, c6 = st.columns(3)
        c4.date_input("Data Fim", key=FILTER_KEYS["end_date"])
        c5.selectbox("Driver Level2", [trend.ANY] + dh.unique_values(tickets, dh.DRIVER_L2_COL, sort=True),
                     key=FILTER_KEYS["driver_level2"])
        c6.selectbox("Próximo Passo", [trend.ANY] + dh.unique_values(tickets, dh.NEXT_STEP_COL, sort=True),
                     key=FILTER_KEYS["next_step"])
        st.button("Resetar Filtros", on_click=_apply_defaults, args=(defaults, True), key="trend_reset")

    filters = trend.TrendFilters(**{attr: st.session_state[key] for attr, key in FILTER_KEYS.items()})
    series = trend.daily_average(tickets, filters, settings.goals)

    st.subheader("Gráfico de Tendência")
    if series.is_empty:
        st.info("📊 Nenhum dado para exibir com os filtros selecionados.")
        return
    st.plotly_chart(views.trend_figure(series, filters.indicator), use_container_width=True)


if __name__ == "__main__":
    st.set_page_config(page_title=APP_TITLE, layout="wide")
    main()
